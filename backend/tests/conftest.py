import os
import itertools

# Must be set before the app modules read it at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import storage
from app.database import build_engine, create_tables, get_db


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory, tmp_path, monkeypatch):
    from app.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    monkeypatch.setattr(storage, "UPLOAD_DIR", tmp_path / "uploads")
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def student_payload():
    """Build a valid create payload; every call gets a fresh email and NIC."""
    counter = itertools.count(1)

    def build(**overrides):
        n = next(counter)
        payload = {
            "firstName": "Kasun",
            "lastName": "Perera",
            "email": f"student{n}@example.lk",
            "phone": "0771234567",
            "address": "12 Galle Road, Colombo 03",
            "dateOfBirth": "2003-04-15T00:00:00",
            "nic": f"2003106{n:05d}",
        }
        payload.update(overrides)
        return payload

    return build


@pytest.fixture
def create_course(client):
    def create(title="Diploma in Information Technology", seats=30, **overrides):
        body = {"title": title, "duration": "12 months", "price": 85000, "availableSeats": seats}
        body.update(overrides)
        resp = client.post("/api/courses", json=body)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return create
