"""
Course model - courses offered by the institute.

Students attach to courses through enrollment entries. The course keeps
running seat counters that enrollment operations adjust.
"""

import uuid
from sqlalchemy import Column, Text, Integer, Float, DateTime, String, CheckConstraint
from sqlalchemy.orm import relationship, validates

from app.database import Base, utcnow
from app.exceptions import ValidationError


class Course(Base):
    """
    SQLAlchemy model for the courses table.

    ``enrolled_students`` and ``available_seats`` move in opposite directions
    whenever a student is enrolled or released.
    """
    __tablename__ = "courses"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique course identifier")
    title = Column(Text, nullable=False, unique=True,
                   doc="Course title (unique)")
    duration = Column(Text, nullable=True,
                      doc="Free text duration, e.g. '6 months'")
    description = Column(Text, nullable=True)
    instructor = Column(Text, nullable=True)
    category = Column(Text, nullable=True)
    price = Column(Float, nullable=False,
                   doc="Course fee in LKR")
    available_seats = Column(Integer, nullable=False, default=0,
                             doc="Seats still open for enrollment")
    enrolled_students = Column(Integer, nullable=False, default=0,
                               doc="Number of students currently enrolled")
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    enrollments = relationship("Enrollment", back_populates="course")

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_courses_price_non_negative"),
    )

    @validates("title", "duration", "description", "instructor", "category")
    def _trim(self, key, value):
        if isinstance(value, str):
            value = value.strip()
        if key == "title" and not value:
            raise ValidationError("Course title is required", field="title")
        return value

    @validates("price")
    def _validate_price(self, key, value):
        if value is None or isinstance(value, bool) or value < 0:
            raise ValidationError("Price must be a non-negative number", field="price")
        return value

    def seat_taken(self):
        """Record one more enrolled student."""
        self.enrolled_students = (self.enrolled_students or 0) + 1
        self.available_seats = (self.available_seats or 0) - 1

    def seat_released(self):
        """Record one enrolled student leaving."""
        self.enrolled_students = max((self.enrolled_students or 0) - 1, 0)
        self.available_seats = (self.available_seats or 0) + 1

    def __repr__(self):
        return f"<Course(id={self.id}, title='{self.title}', enrolled={self.enrolled_students})>"
