import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import uuid
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quiz_admin.database import Base, get_db
from quiz_admin.main import app
from quiz_admin.models import FinancialItem, GameSession, User
from quiz_admin.services.record_store import RecordStore

BASE_TIME = datetime(2024, 3, 1, 10, 0, 0)


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def store(db):
    return RecordStore(db)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(**fields):
        values = {
            "id": str(uuid.uuid4()),
            "role": "student",
            "student_name": "Student",
            "student_id": "S-{}".format(uuid.uuid4().hex[:6]),
            "mobile_number": "9000000000",
            "is_active": True,
            "created_at": BASE_TIME,
        }
        values.update(fields)
        user = User(**values)
        db.add(user)
        db.commit()
        return user
    return _make


@pytest.fixture
def make_session(db):
    def _make(user, **fields):
        values = {
            "id": str(uuid.uuid4()),
            "user_id": user.id,
            "level": 1,
            "score": 8,
            "total_questions": 10,
            "percentage": 80.0,
            "time_taken_seconds": 120,
            "start_time": BASE_TIME,
            "end_time": BASE_TIME,
            "status": "completed",
            "accuracy": 80.0,
            "average_time_per_question": 12.0,
            "created_at": BASE_TIME,
        }
        values.update(fields)
        session = GameSession(**values)
        db.add(session)
        db.commit()
        return session
    return _make


@pytest.fixture
def make_item(db):
    def _make(item_id, **fields):
        values = {
            "id": str(uuid.uuid4()),
            "item_id": item_id,
            "name": "Item {}".format(item_id),
            "level": 1,
            "usage_count": 0,
            "correct_answer_rate": 0.0,
            "is_active": True,
            "created_at": BASE_TIME,
        }
        values.update(fields)
        item = FinancialItem(**values)
        db.add(item)
        db.commit()
        return item
    return _make
