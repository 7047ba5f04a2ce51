"""
Enrollment model - attaches a student to a course.

Each entry tracks its own status and progress. Progress is a percentage and
must stay within [0, 100]; out-of-range values are rejected, never clamped.
"""

import uuid
from sqlalchemy import Column, Float, Integer, DateTime, ForeignKey, String, Text, CheckConstraint, Index
from sqlalchemy.orm import relationship, validates

from app.database import Base, utcnow, to_naive_utc
from app.exceptions import ValidationError

ENROLLMENT_STATUSES = ("active", "completed", "suspended", "dropped")


class Enrollment(Base):
    """SQLAlchemy model for the enrollments table."""
    __tablename__ = "enrollments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_pk = Column(String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False,
                        doc="Owning student's internal id")
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0,
                      doc="Order of the entry in the student's enrollment list")
    enrollment_date = Column(DateTime, nullable=False, default=utcnow)
    status = Column(Text, nullable=False, default="active",
                    doc="active | completed | suspended | dropped")
    progress = Column(Float, nullable=False, default=0)
    completion_date = Column(DateTime, nullable=True)

    student = relationship("Student", back_populates="enrolled_courses")
    course = relationship("Course", back_populates="enrollments")

    __table_args__ = (
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_enrollments_progress_range"),
        CheckConstraint(
            "status IN ('active', 'completed', 'suspended', 'dropped')",
            name="ck_enrollments_status",
        ),
        Index("ix_enrollments_student_pk", "student_pk"),
        Index("ix_enrollments_course_id", "course_id"),
    )

    @validates("status")
    def _validate_status(self, key, value):
        if value not in ENROLLMENT_STATUSES:
            raise ValidationError(
                "enrollment status must be one of: {}".format(", ".join(ENROLLMENT_STATUSES)),
                field="status", details={"value": value})
        return value

    @validates("progress")
    def _validate_progress(self, key, value):
        if value is None:
            return 0
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError("progress must be a number", field="progress")
        if value < 0 or value > 100:
            raise ValidationError(
                "progress must be between 0 and 100", field="progress", details={"value": value})
        return value

    @validates("enrollment_date", "completion_date")
    def _normalize_dates(self, key, value):
        return to_naive_utc(value)

    def __repr__(self):
        return f"<Enrollment(student={self.student_pk}, course={self.course_id}, status='{self.status}', progress={self.progress})>"
