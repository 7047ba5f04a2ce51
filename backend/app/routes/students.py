"""
Student API routes - the student record store over HTTP.

Provides endpoints for:
- Listing, searching and fetching students
- Creating, updating and deleting students
- Status changes, enrollments and grade records
- Profile picture upload (multipart/form-data)

Field names in request and response bodies are camelCase so the existing
dashboards can consume them unchanged.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.grade import GradeRecord
from app.models.student import Student
from app.services import students as student_service
from app.storage import remove_profile_picture, save_profile_picture
from app.logging_config import get_logger, log_with_context

router = APIRouter()
logger = get_logger("http")


# ── Pydantic schemas ─────────────────────────────────────────

class StudentFields(BaseModel):
    """Fields shared by create and update payloads."""
    model_config = ConfigDict(populate_by_name=True)

    guardian_name: Optional[str] = Field(None, alias="guardianName")
    guardian_phone: Optional[str] = Field(None, alias="guardianPhone")
    previous_education: Optional[str] = Field(None, alias="previousEducation")
    previous_institution: Optional[str] = Field(None, alias="previousInstitution")
    notes: Optional[str] = None
    status: Optional[str] = Field(None, description="active | inactive | graduated | suspended")


class StudentCreate(StudentFields):
    """Schema for creating a student. studentId is always assigned by the server."""
    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    email: str
    phone: str
    address: str
    date_of_birth: datetime = Field(..., alias="dateOfBirth")
    nic: str
    course_ids: List[str] = Field(default_factory=list, alias="courseIds")


class StudentUpdate(StudentFields):
    """Schema for updating a student. Omitted fields are left unchanged."""
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[datetime] = Field(None, alias="dateOfBirth")
    nic: Optional[str] = None
    student_id: Optional[str] = Field(None, alias="studentId")
    course_ids: Optional[List[str]] = Field(None, alias="courseIds")


class StatusUpdate(BaseModel):
    status: str


class EnrollmentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    course_id: str = Field(..., alias="courseId")


class EnrollmentUpdate(BaseModel):
    status: Optional[str] = Field(None, description="active | completed | suspended | dropped")
    progress: Optional[float] = Field(None, description="Percentage in [0, 100]")


class GradeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    course_id: Optional[str] = Field(None, alias="courseId")
    grade: Optional[str] = None
    marks: Optional[float] = None
    exam_date: Optional[datetime] = Field(None, alias="examDate")


# ── Serialization ────────────────────────────────────────────

def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_course_ref(course: Course) -> Optional[dict]:
    """Populated course reference, as embedded in enrollment entries."""
    if course is None:
        return None
    return {
        "_id": course.id,
        "title": course.title,
        "duration": course.duration,
        "price": course.price,
    }


def serialize_enrollment(enrollment: Enrollment) -> dict:
    return {
        "_id": enrollment.id,
        "courseId": serialize_course_ref(enrollment.course),
        "enrollmentDate": _iso(enrollment.enrollment_date),
        "status": enrollment.status,
        "progress": enrollment.progress,
        "completionDate": _iso(enrollment.completion_date),
    }


def serialize_grade(record: GradeRecord) -> dict:
    return {
        "_id": record.id,
        "courseId": record.course_id,
        "grade": record.grade,
        "marks": record.marks,
        "examDate": _iso(record.exam_date),
    }


def serialize_student(student: Student) -> dict:
    """Serialize a Student ORM object, derived attributes included."""
    return {
        "_id": student.id,
        "studentId": student.student_id,
        "firstName": student.first_name,
        "lastName": student.last_name,
        "fullName": student.full_name,
        "email": student.email,
        "phone": student.phone,
        "address": student.address,
        "dateOfBirth": _iso(student.date_of_birth),
        "age": student.age,
        "nic": student.nic,
        "guardianName": student.guardian_name,
        "guardianPhone": student.guardian_phone,
        "profilePicture": student.profile_picture,
        "enrolledCourses": [serialize_enrollment(e) for e in student.enrolled_courses],
        "academicInfo": {
            "previousEducation": student.previous_education,
            "previousInstitution": student.previous_institution,
            "grades": [serialize_grade(g) for g in student.grades],
        },
        "status": student.status,
        "enrollmentDate": _iso(student.enrollment_date),
        "graduationDate": _iso(student.graduation_date),
        "notes": student.notes,
        "createdAt": _iso(student.created_at),
        "updatedAt": _iso(student.updated_at),
    }


# ── Endpoints ────────────────────────────────────────────────

@router.get("/api/students")
def list_students(
    response: Response,
    search: Optional[str] = Query(None, description="Search name, email, studentId or NIC"),
    status: Optional[str] = Query(None, description="Filter by record status"),
    course_id: Optional[str] = Query(None, alias="courseId", description="Filter by enrolled course"),
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(50, ge=1, le=200, alias="perPage", description="Results per page"),
    db: Session = Depends(get_db)
):
    """
    List students newest first with search, filters and pagination.

    The body is a plain array; the match count and paging are sent in the
    X-Total-Count, X-Page and X-Per-Page headers.
    """
    students, total = student_service.list_students(
        db, search=search, status=status, course_id=course_id, page=page, per_page=per_page
    )
    response.headers["X-Total-Count"] = str(total)
    response.headers["X-Page"] = str(page)
    response.headers["X-Per-Page"] = str(per_page)
    return [serialize_student(s) for s in students]


@router.post("/api/students", status_code=201)
def create_student(payload: StudentCreate, db: Session = Depends(get_db)):
    """Create a student; the studentId is assigned by the server."""
    data = payload.model_dump(exclude={"course_ids"})
    student = student_service.create_student(db, data, payload.course_ids)
    return serialize_student(student)


@router.get("/api/students/stats")
def get_student_stats(db: Session = Depends(get_db)):
    """Dashboard counters."""
    return student_service.student_stats(db)


@router.get("/api/students/{key}")
def get_student(key: str, db: Session = Depends(get_db)):
    """Fetch a student by internal id or studentId."""
    return serialize_student(student_service.get_student(db, key))


@router.put("/api/students/{key}")
def update_student(key: str, payload: StudentUpdate, db: Session = Depends(get_db)):
    student = student_service.get_student(db, key)
    data = payload.model_dump(exclude={"course_ids"}, exclude_none=True)
    student = student_service.update_student(db, student, data, payload.course_ids)
    return serialize_student(student)


@router.delete("/api/students/{key}")
def delete_student(key: str, db: Session = Depends(get_db)):
    student = student_service.get_student(db, key)
    picture = student.profile_picture
    student_service.delete_student(db, student)
    remove_profile_picture(picture)
    return {"message": "Student deleted successfully"}


@router.patch("/api/students/{key}/status")
def update_student_status(key: str, payload: StatusUpdate, db: Session = Depends(get_db)):
    """Set the overall record status; no transition graph is enforced."""
    student = student_service.get_student(db, key)
    student = student_service.set_status(db, student, payload.status)
    return serialize_student(student)


@router.post("/api/students/{key}/enrollments")
def enroll_student(key: str, payload: EnrollmentRequest, db: Session = Depends(get_db)):
    student = student_service.get_student(db, key)
    student_service.enroll(db, student, payload.course_id)
    return {"message": "Student enrolled successfully", "student": serialize_student(student)}


@router.put("/api/students/{key}/enrollments/{course_id}")
def update_enrollment(key: str, course_id: str, payload: EnrollmentUpdate,
                      db: Session = Depends(get_db)):
    student = student_service.get_student(db, key)
    student_service.update_enrollment(db, student, course_id,
                                      status=payload.status, progress=payload.progress)
    return {"message": "Enrollment updated successfully", "student": serialize_student(student)}


@router.delete("/api/students/{key}/enrollments/{course_id}")
def remove_enrollment(key: str, course_id: str, db: Session = Depends(get_db)):
    student = student_service.get_student(db, key)
    student_service.unenroll(db, student, course_id)
    return {"message": "Student unenrolled successfully", "student": serialize_student(student)}


@router.post("/api/students/{key}/grades", status_code=201)
def add_grade(key: str, payload: GradeRequest, db: Session = Depends(get_db)):
    student = student_service.get_student(db, key)
    student_service.add_grade(db, student, payload.course_id, payload.grade,
                              payload.marks, payload.exam_date)
    return serialize_student(student)


@router.put("/api/students/{key}/profile-picture")
def upload_profile_picture(
    key: str,
    profile_picture: UploadFile = File(..., alias="profilePicture"),
    db: Session = Depends(get_db)
):
    """Store a profile picture sent as multipart/form-data field ``profilePicture``."""
    student = student_service.get_student(db, key)
    previous = student.profile_picture
    path = save_profile_picture(profile_picture, student.student_id)
    try:
        student = student_service.set_profile_picture(db, student, str(path))
    except Exception:
        remove_profile_picture(str(path))
        raise
    remove_profile_picture(previous)
    log_with_context(logger, "INFO", "Profile picture updated for {}".format(student.student_id),
                     context={"student_id": student.student_id})
    return serialize_student(student)
