"""
Course Service - catalogue operations.

Course titles are unique. A course that still has enrolled students cannot
be deleted; grade records of a deleted course are kept with their course
reference cleared.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.exceptions import BusinessRuleError, DuplicateEntryError, NotFoundError
from app.models.course import Course
from app.logging_config import get_logger, log_with_context

logger = get_logger("courses")

COURSE_FIELDS = ("title", "duration", "description", "instructor", "category", "price", "available_seats")


def _ensure_title_free(db: Session, title: Optional[str], exclude_id: Optional[str] = None):
    if not title:
        return
    query = select(Course.id).where(Course.title == title.strip())
    if exclude_id:
        query = query.where(Course.id != exclude_id)
    if db.execute(query).first():
        raise DuplicateEntryError("Course with this title already exists", field="title")


def _commit(db: Session, course: Course):
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateEntryError("Course with this title already exists", field="title") from e
    db.refresh(course)


def list_courses(db: Session):
    return db.execute(select(Course).order_by(Course.created_at.desc())).scalars().all()


def get_course(db: Session, course_id: str) -> Course:
    course = db.get(Course, course_id)
    if course is None:
        raise NotFoundError("Course not found", {"course_id": course_id})
    return course


def create_course(db: Session, data: dict) -> Course:
    try:
        _ensure_title_free(db, data.get("title"))
        course = Course(
            enrolled_students=0,
            **{k: v for k, v in data.items() if k in COURSE_FIELDS}
        )
        db.add(course)
    except Exception:
        db.rollback()
        raise

    _commit(db, course)
    log_with_context(logger, "INFO", "Created course {}".format(course.title),
                     context={"course_id": course.id},
                     extra_data={"available_seats": course.available_seats})
    return course


def update_course(db: Session, course: Course, data: dict) -> Course:
    try:
        _ensure_title_free(db, data.get("title"), exclude_id=course.id)
        for key, value in data.items():
            if key in COURSE_FIELDS and value is not None:
                setattr(course, key, value)
    except Exception:
        db.rollback()
        raise

    _commit(db, course)
    log_with_context(logger, "INFO", "Updated course {}".format(course.title),
                     context={"course_id": course.id})
    return course


def delete_course(db: Session, course: Course):
    if (course.enrolled_students or 0) > 0:
        raise BusinessRuleError("Cannot delete course with enrolled students",
                                {"enrolled_students": course.enrolled_students})
    course_id, title = course.id, course.title
    try:
        db.delete(course)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise BusinessRuleError("Course is still referenced by student records",
                                {"course_id": course_id}) from e
    log_with_context(logger, "INFO", "Deleted course {}".format(title),
                     context={"course_id": course_id})
