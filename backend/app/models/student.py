"""
Student model - the enrolled learner record.

Each student has an internal UUID primary key and a human-readable
``student_id`` (STU000001, STU000002, ...) assigned once when the record is
first persisted. Email, NIC and student_id are unique across the table.

Validation happens at the persistence layer: attribute validators trim and
check values as they are assigned, and a mapper hook checks required fields
before every INSERT/UPDATE.
"""

import math
import uuid
from datetime import timedelta

from sqlalchemy import Column, Text, DateTime, String, CheckConstraint, Index, event
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import relationship, validates

from app.database import Base, utcnow, to_naive_utc
from app.exceptions import ValidationError

STUDENT_STATUSES = ("active", "inactive", "graduated", "suspended")

REQUIRED_FIELDS = {
    "first_name": "firstName",
    "last_name": "lastName",
    "email": "email",
    "phone": "phone",
    "address": "address",
    "date_of_birth": "dateOfBirth",
    "nic": "nic",
}

# Age is whole years of 365.25 days, not a calendar-aware difference
YEAR = timedelta(days=365.25)


class Student(Base):
    """
    SQLAlchemy model for the students table.

    Enrollments are kept in insertion order (``position``) and grade records
    hang off the student as a separate table.
    """
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Internal identifier (exposed as _id)")
    student_id = Column(String(16), nullable=False, unique=True,
                        doc="Human-readable identifier, STU + 6 digits")
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False)
    email = Column(Text, nullable=False, unique=True,
                   doc="Trimmed, lower-cased email")
    phone = Column(Text, nullable=False)
    address = Column(Text, nullable=False)
    date_of_birth = Column(DateTime, nullable=False)
    nic = Column(Text, nullable=False, unique=True,
                 doc="National identity card number")
    guardian_name = Column(Text, nullable=True)
    guardian_phone = Column(Text, nullable=True)
    previous_education = Column(Text, nullable=True)
    previous_institution = Column(Text, nullable=True)
    profile_picture = Column(Text, nullable=True,
                             doc="Stored path of the uploaded profile picture")
    status = Column(Text, nullable=False, default="active",
                    doc="Record status: active | inactive | graduated | suspended")
    enrollment_date = Column(DateTime, nullable=False, default=utcnow)
    graduation_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    enrolled_courses = relationship(
        "Enrollment",
        back_populates="student",
        order_by="Enrollment.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
    )
    grades = relationship(
        "GradeRecord",
        back_populates="student",
        order_by="GradeRecord.exam_date",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'inactive', 'graduated', 'suspended')",
            name="ck_students_status",
        ),
        Index("ix_students_status", "status"),
        Index("ix_students_created_at", "created_at"),
    )

    # ── Validation ───────────────────────────────────────────

    @validates("first_name", "last_name", "phone", "address", "nic",
               "guardian_name", "guardian_phone", "previous_education",
               "previous_institution", "notes")
    def _trim(self, key, value):
        if isinstance(value, str):
            value = value.strip()
        if key in REQUIRED_FIELDS and not value:
            raise ValidationError(
                "{} is required".format(REQUIRED_FIELDS[key]), field=REQUIRED_FIELDS[key])
        return value

    @validates("email")
    def _normalize_email(self, key, value):
        value = (value or "").strip().lower()
        if not value:
            raise ValidationError("email is required", field="email")
        return value

    @validates("status")
    def _validate_status(self, key, value):
        if value not in STUDENT_STATUSES:
            raise ValidationError(
                "status must be one of: {}".format(", ".join(STUDENT_STATUSES)),
                field="status", details={"value": value})
        return value

    @validates("date_of_birth", "enrollment_date", "graduation_date")
    def _normalize_dates(self, key, value):
        if value is None and key == "date_of_birth":
            raise ValidationError("dateOfBirth is required", field="dateOfBirth")
        try:
            return to_naive_utc(value)
        except TypeError as e:
            raise ValidationError(str(e), field=key) from e

    @validates("student_id")
    def _guard_student_id(self, key, value):
        if self.student_id is not None and value != self.student_id:
            raise ValidationError(
                "studentId is assigned once and cannot be changed",
                field="studentId", details={"current": self.student_id})
        return value

    def validate_required(self):
        """Raise ValidationError for the first required field left empty."""
        for attr, field in REQUIRED_FIELDS.items():
            value = getattr(self, attr)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError("{} is required".format(field), field=field)

    # ── Derived attributes ──────────────────────────────────

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def age_at(self, now=None) -> int:
        """Whole 365.25-day years between date_of_birth and ``now``."""
        now = to_naive_utc(now) if now is not None else utcnow()
        return math.floor((now - to_naive_utc(self.date_of_birth)) / YEAR)

    @property
    def age(self) -> int:
        return self.age_at()

    def find_enrollment(self, course_id: str):
        for enrollment in self.enrolled_courses:
            if enrollment.course_id == course_id:
                return enrollment
        return None

    def __repr__(self):
        return f"<Student(id={self.id}, student_id='{self.student_id}', email='{self.email}')>"


@event.listens_for(Student, "before_insert")
@event.listens_for(Student, "before_update")
def _check_required_fields(mapper, connection, target):
    target.validate_required()
