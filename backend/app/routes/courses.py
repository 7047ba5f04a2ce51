"""
Course API routes - the course catalogue students enroll in.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.course import Course
from app.services import courses as course_service

router = APIRouter()


class CourseCreate(BaseModel):
    """Schema for creating a course."""
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1)
    duration: str = Field(..., min_length=1, description="e.g. '6 months'")
    description: Optional[str] = None
    instructor: Optional[str] = None
    category: Optional[str] = None
    price: float = Field(..., ge=0)
    available_seats: int = Field(..., ge=0, alias="availableSeats")


class CourseUpdate(BaseModel):
    """Schema for updating a course. Omitted fields are left unchanged."""
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(None, min_length=1)
    duration: Optional[str] = None
    description: Optional[str] = None
    instructor: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    available_seats: Optional[int] = Field(None, ge=0, alias="availableSeats")


def serialize_course(course: Course) -> dict:
    return {
        "_id": course.id,
        "title": course.title,
        "duration": course.duration,
        "description": course.description,
        "instructor": course.instructor,
        "category": course.category,
        "price": course.price,
        "availableSeats": course.available_seats,
        "enrolledStudents": course.enrolled_students,
        "createdAt": course.created_at.isoformat() if course.created_at else None,
        "updatedAt": course.updated_at.isoformat() if course.updated_at else None,
    }


@router.get("/api/courses")
def list_courses(db: Session = Depends(get_db)):
    """List courses newest first."""
    return [serialize_course(c) for c in course_service.list_courses(db)]


@router.post("/api/courses", status_code=201)
def create_course(payload: CourseCreate, db: Session = Depends(get_db)):
    course = course_service.create_course(db, payload.model_dump())
    return serialize_course(course)


@router.get("/api/courses/{course_id}")
def get_course(course_id: str, db: Session = Depends(get_db)):
    return serialize_course(course_service.get_course(db, course_id))


@router.put("/api/courses/{course_id}")
def update_course(course_id: str, payload: CourseUpdate, db: Session = Depends(get_db)):
    course = course_service.get_course(db, course_id)
    course = course_service.update_course(db, course, payload.model_dump(exclude_none=True))
    return serialize_course(course)


@router.delete("/api/courses/{course_id}")
def delete_course(course_id: str, db: Session = Depends(get_db)):
    """Delete a course; refused while students are enrolled."""
    course = course_service.get_course(db, course_id)
    course_service.delete_course(db, course)
    return {"message": "Course deleted successfully"}
