"""
Database engine and sessions for MedReminder
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from config import settings


logger = logging.getLogger(__name__)


def _build_engine(url: str) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(
            url,
            echo=settings.DATABASE_ECHO,
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True
        )

    sqlite_engine = create_engine(
        url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=settings.DATABASE_ECHO
    )

    # Slot and reminder rows rely on foreign keys being enforced
    @event.listens_for(sqlite_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


engine = _build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session for FastAPI dependencies"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context(session_factory=None) -> Generator[Session, None, None]:
    """
    Session for work outside a request: the sweep job and service calls made
    without a caller-owned session. Commits on success, rolls back on error.

    Loaded attributes survive the commit, so objects returned from the block
    stay readable after the session closes.
    """
    db = (session_factory or SessionLocal)(expire_on_commit=False)
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Create every table registered on Base"""
    import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info(f"Database initialized at: {settings.DATABASE_URL}")


def is_connected() -> bool:
    """Whether the database answers a trivial query"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
