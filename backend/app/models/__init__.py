from app.models.course import Course
from app.models.student import Student
from app.models.enrollment import Enrollment
from app.models.grade import GradeRecord
from app.models.counter import Counter

__all__ = ["Course", "Student", "Enrollment", "GradeRecord", "Counter"]
