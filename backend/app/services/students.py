"""
Student Service - repository operations for the student record store.

Implements creation (with atomic studentId assignment), lookup, search,
updates, deletion and the enrollment/grade/status mutations. Course seat
counters are kept in step with every enrollment change.

All functions commit on success. On failure they roll the session back and
raise an application exception; database unique violations are translated
into DuplicateEntryError.
"""

import uuid
from typing import Iterable, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.database import utcnow
from app.exceptions import BusinessRuleError, DuplicateEntryError, NotFoundError, ValidationError
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.grade import GradeRecord
from app.models.student import Student, STUDENT_STATUSES
from app.services.sequence import next_student_id
from app.logging_config import get_logger, log_with_context

logger = get_logger("students")

# Fields a caller may set directly on a student record
PROFILE_FIELDS = (
    "first_name", "last_name", "email", "phone", "address", "date_of_birth", "nic",
    "guardian_name", "guardian_phone", "previous_education", "previous_institution",
    "notes", "status",
)

UNIQUE_FIELDS = {"student_id": "studentId", "email": "email", "nic": "nic"}


def _escape_like(text: str) -> str:
    """Make user search text match literally inside a LIKE pattern."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _student_query():
    return select(Student).options(
        selectinload(Student.enrolled_courses).selectinload(Enrollment.course),
        selectinload(Student.grades),
    )


def _duplicate_from_integrity_error(error: IntegrityError):
    """Map a unique violation to the field that caused it."""
    text = str(error.orig).lower()
    if "check constraint" in text:
        return ValidationError("Student record violates a field constraint", details={"reason": str(error.orig)})
    for column, field in UNIQUE_FIELDS.items():
        if "students.{}".format(column) in text or "students_{}_key".format(column) in text:
            return DuplicateEntryError("A student with this {} already exists".format(field), field=field)
    return DuplicateEntryError("Student record conflicts with an existing record")


def _ensure_unique(db: Session, email: str = None, nic: str = None, exclude_id: str = None):
    """Friendly pre-check for email/NIC conflicts; the unique indexes still decide."""
    checks = (("email", Student.email, email), ("nic", Student.nic, nic))
    for field, column, value in checks:
        if value is None:
            continue
        query = select(Student.id).where(column == value)
        if exclude_id:
            query = query.where(Student.id != exclude_id)
        if db.execute(query).first():
            raise DuplicateEntryError("A student with this {} already exists".format(field), field=field)


def _load_courses(db: Session, course_ids: Iterable[str]) -> List[Course]:
    courses = []
    for course_id in dict.fromkeys(course_ids or []):
        course = db.get(Course, course_id)
        if course is None:
            raise NotFoundError("Course not found", {"course_id": course_id})
        courses.append(course)
    return courses


def _commit(db: Session, student: Student):
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise _duplicate_from_integrity_error(e) from e
    db.refresh(student)


def get_student(db: Session, key: str) -> Student:
    """Fetch a student by internal id or by studentId (STU######)."""
    student = db.execute(
        _student_query().where(or_(Student.id == key, Student.student_id == key))
    ).scalar_one_or_none()
    if student is None:
        raise NotFoundError("Student not found", {"key": key})
    return student


def list_students(db: Session, search: Optional[str] = None, status: Optional[str] = None,
                  course_id: Optional[str] = None, page: int = 1, per_page: int = 50):
    """
    List students newest first with optional search and filters.

    Returns (students, total) where total counts every match before paging.
    """
    query = select(Student)
    if search:
        pattern = "%{}%".format(_escape_like(search.strip()))
        query = query.where(or_(
            Student.first_name.ilike(pattern, escape="\\"),
            Student.last_name.ilike(pattern, escape="\\"),
            Student.email.ilike(pattern, escape="\\"),
            Student.student_id.ilike(pattern, escape="\\"),
            Student.nic.ilike(pattern, escape="\\"),
        ))
    if status:
        if status not in STUDENT_STATUSES:
            raise ValidationError("Unknown status filter: {}".format(status), field="status")
        query = query.where(Student.status == status)
    if course_id:
        query = query.where(Student.enrolled_courses.any(Enrollment.course_id == course_id))

    total = db.execute(select(func.count()).select_from(query.subquery())).scalar_one()
    ids = [
        row[0] for row in db.execute(
            query.with_only_columns(Student.id)
            .order_by(Student.created_at.desc(), Student.student_id.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
    ]
    if not ids:
        return [], total

    loaded = {s.id: s for s in db.execute(_student_query().where(Student.id.in_(ids))).scalars()}
    return [loaded[i] for i in ids], total


def create_student(db: Session, data: dict, course_ids: Iterable[str] = ()) -> Student:
    """
    Create a student, assign the next studentId and enroll in ``course_ids``.

    The studentId is reserved from the counter inside the same transaction as
    the INSERT, so a failed write leaves the sequence untouched.
    """
    try:
        fields = {k: v for k, v in data.items() if k in PROFILE_FIELDS and v is not None}
        fields.setdefault("status", "active")
        student = Student(id=str(uuid.uuid4()), **fields)
        student.validate_required()
        _ensure_unique(db, email=student.email, nic=student.nic)

        now = utcnow()
        student.enrollment_date = now
        for course in _load_courses(db, course_ids):
            student.enrolled_courses.append(
                Enrollment(course=course, enrollment_date=now, status="active", progress=0)
            )
            course.seat_taken()

        if student.student_id is None:
            student.student_id = next_student_id(db)
        db.add(student)
    except Exception:
        db.rollback()
        raise

    _commit(db, student)
    log_with_context(logger, "INFO", "Created student {}".format(student.student_id),
                     context={"student_id": student.student_id},
                     extra_data={"courses": len(student.enrolled_courses)})
    return student


def update_student(db: Session, student: Student, data: dict,
                   course_ids: Optional[Iterable[str]] = None) -> Student:
    """
    Update profile fields and, when ``course_ids`` is given, the enrollment set.

    Existing enrollments for courses still listed are kept as they are,
    enrollments for courses no longer listed are removed and new courses are
    appended as fresh active entries.
    """
    try:
        if "student_id" in data and data["student_id"] != student.student_id:
            raise ValidationError("studentId is assigned once and cannot be changed", field="studentId")

        fields = {k: v for k, v in data.items() if k in PROFILE_FIELDS and v is not None}
        if "email" in fields:
            fields["email"] = fields["email"].strip().lower()
        if "nic" in fields:
            fields["nic"] = fields["nic"].strip()
        _ensure_unique(db, email=fields.get("email"), nic=fields.get("nic"), exclude_id=student.id)
        for key, value in fields.items():
            setattr(student, key, value)

        if course_ids is not None:
            _sync_enrollments(db, student, list(dict.fromkeys(course_ids)))
    except Exception:
        db.rollback()
        raise

    _commit(db, student)
    log_with_context(logger, "INFO", "Updated student {}".format(student.student_id),
                     context={"student_id": student.student_id},
                     extra_data={"fields": sorted(fields)})
    return student


def _sync_enrollments(db: Session, student: Student, course_ids: List[str]):
    wanted = set(course_ids)
    for enrollment in list(student.enrolled_courses):
        if enrollment.course_id not in wanted:
            enrollment.course.seat_released()
            student.enrolled_courses.remove(enrollment)

    current = {e.course_id for e in student.enrolled_courses}
    new_ids = [c for c in course_ids if c not in current]
    for course in _load_courses(db, new_ids):
        student.enrolled_courses.append(
            Enrollment(course=course, enrollment_date=utcnow(), status="active", progress=0)
        )
        course.seat_taken()
    student.enrolled_courses.reorder()


def delete_student(db: Session, student: Student):
    """Delete a student and release the seats of every enrolled course."""
    student_id = student.student_id
    try:
        for enrollment in student.enrolled_courses:
            enrollment.course.seat_released()
        db.delete(student)
        db.commit()
    except Exception:
        db.rollback()
        raise
    log_with_context(logger, "INFO", "Deleted student {}".format(student_id),
                     context={"student_id": student_id})


def set_status(db: Session, student: Student, status: str) -> Student:
    """
    Set the overall record status. Any literal may follow any other.

    Graduating stamps graduation_date unless one was recorded already.
    """
    previous = student.status
    try:
        student.status = status
        if status == "graduated" and student.graduation_date is None:
            student.graduation_date = utcnow()
    except Exception:
        db.rollback()
        raise
    _commit(db, student)
    log_with_context(logger, "INFO", "Student {} status {} -> {}".format(student.student_id, previous, status),
                     context={"student_id": student.student_id})
    return student


def enroll(db: Session, student: Student, course_id: str) -> Enrollment:
    """Append an active enrollment for ``course_id``."""
    try:
        course = db.get(Course, course_id)
        if course is None:
            raise NotFoundError("Course not found", {"course_id": course_id})
        if student.find_enrollment(course_id) is not None:
            raise BusinessRuleError("Student already enrolled in this course", {"course_id": course_id})

        enrollment = Enrollment(course=course, enrollment_date=utcnow(), status="active", progress=0)
        student.enrolled_courses.append(enrollment)
        course.seat_taken()
    except Exception:
        db.rollback()
        raise

    _commit(db, student)
    log_with_context(logger, "INFO", "Enrolled {} in {}".format(student.student_id, course.title),
                     context={"student_id": student.student_id, "course_id": course_id})
    return enrollment


def update_enrollment(db: Session, student: Student, course_id: str,
                      status: Optional[str] = None, progress: Optional[float] = None) -> Enrollment:
    """
    Update an enrollment's status and/or progress.

    Moving to ``completed`` stamps completion_date.
    """
    try:
        enrollment = student.find_enrollment(course_id)
        if enrollment is None:
            raise NotFoundError("Enrollment not found", {"course_id": course_id})
        if status is not None:
            enrollment.status = status
            if status == "completed":
                enrollment.completion_date = utcnow()
        if progress is not None:
            enrollment.progress = progress
    except Exception:
        db.rollback()
        raise

    _commit(db, student)
    log_with_context(logger, "INFO", "Updated enrollment of {} in course {}".format(student.student_id, course_id),
                     context={"student_id": student.student_id, "course_id": course_id},
                     extra_data={"status": enrollment.status, "progress": enrollment.progress})
    return enrollment


def unenroll(db: Session, student: Student, course_id: str):
    """Remove the enrollment for ``course_id`` and release the seat."""
    try:
        enrollment = student.find_enrollment(course_id)
        if enrollment is None:
            raise NotFoundError("Enrollment not found", {"course_id": course_id})
        enrollment.course.seat_released()
        student.enrolled_courses.remove(enrollment)
        student.enrolled_courses.reorder()
    except Exception:
        db.rollback()
        raise

    _commit(db, student)
    log_with_context(logger, "INFO", "Unenrolled {} from course {}".format(student.student_id, course_id),
                     context={"student_id": student.student_id, "course_id": course_id})


def add_grade(db: Session, student: Student, course_id: Optional[str], grade: Optional[str],
              marks: Optional[float], exam_date=None) -> GradeRecord:
    """Append a grade record to the student's academic info."""
    try:
        if course_id is not None and db.get(Course, course_id) is None:
            raise NotFoundError("Course not found", {"course_id": course_id})
        record = GradeRecord(course_id=course_id, grade=grade, marks=marks, exam_date=exam_date)
        student.grades.append(record)
    except Exception:
        db.rollback()
        raise

    _commit(db, student)
    log_with_context(logger, "INFO", "Recorded grade for {}".format(student.student_id),
                     context={"student_id": student.student_id, "course_id": course_id},
                     extra_data={"grade": grade, "marks": marks})
    return record


def set_profile_picture(db: Session, student: Student, path: str) -> Student:
    student.profile_picture = path
    _commit(db, student)
    return student


def student_stats(db: Session) -> dict:
    """Totals by status plus course and active enrollment counts."""
    by_status = {status: 0 for status in STUDENT_STATUSES}
    for status, count in db.execute(select(Student.status, func.count()).group_by(Student.status)):
        by_status[status] = count
    return {
        "totalStudents": sum(by_status.values()),
        "byStatus": by_status,
        "totalCourses": db.execute(select(func.count()).select_from(Course)).scalar_one(),
        "activeEnrollments": db.execute(
            select(func.count()).select_from(Enrollment).where(Enrollment.status == "active")
        ).scalar_one(),
    }
