"""
Database configuration for SQLAlchemy + SQLite.

The engine and session factory are built once at import time;
tables are created by init_db(), which the app lifespan calls once at startup.
"""

import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from .settings import settings

logger = logging.getLogger(__name__)

DATABASE_URL = f"sqlite:///{settings.sqlite_path}"

# SQLite needs check_same_thread=False for FastAPI because FastAPI uses threads.
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
)

# Session factory used by dependency injection
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class Base(DeclarativeBase):
    """Base class for ORM models."""
    pass


def init_db(bind: Engine = engine) -> None:
    """Create all tables. Call once at process start."""
    # models must be imported so their tables are registered on Base.metadata
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=bind)
    logger.info("Database ready at %s", bind.url)


def get_db():
    """
    FastAPI dependency that yields a DB session per request,
    then closes it cleanly afterwards.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
