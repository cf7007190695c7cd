"""
Database engine and request-scoped sessions for the reporting service.

PostgreSQL in deployment, SQLite for local work and tests. All
timestamps are stored as naive UTC; use ``utc_now`` when writing them.
"""

import os
from datetime import datetime, timezone
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, DeclarativeBase

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./quiz_admin.db")


def _engine_options(url: str) -> dict:
    if url.startswith("postgresql"):
        return {"echo": False, "pool_size": 10, "max_overflow": 20, "pool_pre_ping": True}
    if url.startswith("sqlite"):
        return {"echo": False, "connect_args": {"check_same_thread": False}}
    return {"echo": False}


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))

if DATABASE_URL.startswith("sqlite"):
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_db():
    """FastAPI dependency: one session per request, always closed."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """SQLite only; PostgreSQL schemas come from the alembic revisions."""
    Base.metadata.create_all(bind=engine)
