"""
GradeRecord model - exam results attached to a student's academic record.
"""

import uuid
from sqlalchemy import Column, Float, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship, validates

from app.database import Base, to_naive_utc


class GradeRecord(Base):
    """SQLAlchemy model for the grade_records table."""
    __tablename__ = "grade_records"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_pk = Column(String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="SET NULL"), nullable=True,
                       doc="Course the exam belongs to")
    grade = Column(Text, nullable=True,
                   doc="Letter grade as issued, e.g. 'A', 'B+'")
    marks = Column(Float, nullable=True)
    exam_date = Column(DateTime, nullable=True)

    student = relationship("Student", back_populates="grades")
    course = relationship("Course")

    @validates("grade")
    def _trim(self, key, value):
        return value.strip() if isinstance(value, str) else value

    @validates("exam_date")
    def _normalize_date(self, key, value):
        return to_naive_utc(value)

    def __repr__(self):
        return f"<GradeRecord(student={self.student_pk}, course={self.course_id}, grade='{self.grade}')>"
