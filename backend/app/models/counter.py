"""
Counter model - named sequences for human-readable identifiers.

One row per sequence. Values are only ever changed with an atomic
``UPDATE ... SET value = value + 1`` (see app.services.sequence).
"""

from sqlalchemy import Column, Integer, String, DDL, event

from app.database import Base

STUDENT_SEQUENCE = "student_id"


class Counter(Base):
    """SQLAlchemy model for the counters table."""
    __tablename__ = "counters"

    name = Column(String(64), primary_key=True)
    value = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<Counter(name='{self.name}', value={self.value})>"


# Seed the student sequence whenever the table is created via create_all
event.listen(
    Counter.__table__,
    "after_create",
    DDL(f"INSERT INTO counters (name, value) VALUES ('{STUDENT_SEQUENCE}', 0)"),
)
