import re
import threading
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.orm import sessionmaker

from app.database import build_engine, create_tables
from app.models.counter import Counter, STUDENT_SEQUENCE
from app.services.sequence import format_student_id, next_student_id, next_value
from app.services.students import create_student

STUDENT_ID_PATTERN = re.compile(r"^STU\d{6}$")


def test_format_pads_to_six_digits():
    assert format_student_id(1) == "STU000001"
    assert format_student_id(42) == "STU000042"
    assert format_student_id(999999) == "STU999999"


def test_counter_is_seeded_when_table_is_created(db_session):
    value = db_session.execute(
        select(Counter.value).where(Counter.name == STUDENT_SEQUENCE)
    ).scalar_one()
    assert value == 0


def test_next_value_increments(db_session):
    assert next_value(db_session, STUDENT_SEQUENCE) == 1
    assert next_value(db_session, STUDENT_SEQUENCE) == 2
    db_session.commit()
    assert next_student_id(db_session) == "STU000003"


def test_rolled_back_increment_is_not_consumed(db_session):
    assert next_value(db_session, STUDENT_SEQUENCE) == 1
    db_session.rollback()
    assert next_value(db_session, STUDENT_SEQUENCE) == 1


def test_missing_counter_row_starts_at_one(db_session):
    db_session.execute(delete(Counter))
    db_session.commit()
    assert next_value(db_session, "invoice") == 1
    db_session.commit()
    assert next_value(db_session, "invoice") == 2


def test_concurrent_creations_get_distinct_ids(tmp_path):
    engine = build_engine(
        f"sqlite:///{tmp_path / 'concurrency.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    create_tables(bind=engine)
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    workers = 6
    barrier = threading.Barrier(workers)
    assigned, errors = [], []
    lock = threading.Lock()

    def create(n):
        session = Session()
        try:
            barrier.wait()
            student = create_student(session, {
                "first_name": "Student",
                "last_name": str(n),
                "email": f"concurrent{n}@example.lk",
                "phone": "0770000000",
                "address": "Colombo",
                "date_of_birth": datetime(2002, 1, 1),
                "nic": f"20020010{n:04d}",
            })
            with lock:
                assigned.append(student.student_id)
        except Exception as e:
            with lock:
                errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=create, args=(n,)) for n in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    engine.dispose()

    assert errors == []
    assert all(STUDENT_ID_PATTERN.match(sid) for sid in assigned)
    assert sorted(assigned) == [format_student_id(n) for n in range(1, workers + 1)]
