"""
Database connection and session management for MedMinder
"""

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from contextlib import contextmanager
from typing import Generator
import logging

from config import settings


logger = logging.getLogger(__name__)


def build_engine(database_url: str, echo: bool = False):
    """Create an engine with the pool settings for the given backend"""
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=echo
        )

        # Enable foreign keys for SQLite
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    # PostgreSQL or other databases
    return create_engine(
        database_url,
        echo=echo,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True
    )


engine = build_engine(settings.DATABASE_URL, settings.DATABASE_ECHO)

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# Base class for ORM models
Base = declarative_base()


@contextmanager
def get_db_context(session_factory=None) -> Generator[Session, None, None]:
    """
    Context manager for database session.
    Commits on success and rolls back on any error.

    Usage:
        with get_db_context() as db:
            db.query(StoreEntry).all()
    """
    db = (session_factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind=None) -> None:
    """
    Initialize database tables.
    Creates all tables defined in models.
    """
    # Import models to register them with Base
    import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info(f"Database initialized at: {settings.DATABASE_URL}")


def is_connected() -> bool:
    """Check if database is connected"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


__all__ = [
    "engine",
    "build_engine",
    "SessionLocal",
    "Base",
    "get_db_context",
    "init_db",
    "is_connected",
]
