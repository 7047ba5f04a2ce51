"""
Sequence Service - atomic counters for human-readable identifiers.

Student IDs are derived from a dedicated counter row rather than from the
number of existing students. The counter is bumped with a single
``UPDATE counters SET value = value + 1`` and read back inside the same
transaction, so the row lock held by the UPDATE serialises concurrent
creators until they commit or roll back. A rolled-back creation also rolls
back its increment.
"""

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.models.counter import Counter, STUDENT_SEQUENCE
from app.logging_config import get_logger, log_with_context

logger = get_logger("sequence")

STUDENT_ID_PREFIX = "STU"
STUDENT_ID_DIGITS = 6


def next_value(db: Session, name: str) -> int:
    """
    Increment the named counter and return its new value.

    The caller owns the transaction: the increment becomes visible to other
    sessions only when the caller commits.
    """
    result = db.execute(
        update(Counter)
        .where(Counter.name == name)
        .values(value=Counter.value + 1)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        # Databases created without the seed row start the sequence here
        db.add(Counter(name=name, value=1))
        db.flush()
        log_with_context(logger, "INFO", "Initialized counter {}".format(name),
                         context={"counter": name})
        return 1

    value = db.execute(select(Counter.value).where(Counter.name == name)).scalar_one()
    log_with_context(logger, "DEBUG", "Counter {} advanced to {}".format(name, value),
                     context={"counter": name}, extra_data={"value": value})
    return value


def format_student_id(value: int) -> str:
    """Render a sequence value as STU + zero-padded 6 digits (STU000042)."""
    return f"{STUDENT_ID_PREFIX}{value:0{STUDENT_ID_DIGITS}d}"


def next_student_id(db: Session) -> str:
    """Reserve the next student ID inside the caller's transaction."""
    return format_student_id(next_value(db, STUDENT_SEQUENCE))
