"""
Database Configuration and Connection Management

Provides database setup, connection pooling, and session management with
proper error handling and connection lifecycle management.

Design Considerations:
- Connection pooling for file-backed and server databases
- Single shared connection for in-memory SQLite (tests)
- SQLAlchemy session management with commit/rollback
"""

import os
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool

from src.storage.models import Base

logger = logging.getLogger(__name__)

# Database configuration
DB_PATH = os.getenv("DATABASE_URL", "sqlite:///data/inbox_automation.db")
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))


def build_engine(url: str) -> Engine:
    """Create an engine with pooling suited to the backend."""
    echo = os.getenv("SQL_ECHO", "False").lower() == "true"
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=echo
        )
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=DB_POOL_SIZE,
        max_overflow=DB_MAX_OVERFLOW,
        pool_timeout=DB_POOL_TIMEOUT,
        connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
        echo=echo
    )


engine = build_engine(DB_PATH)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def configure_database(url: Optional[str] = None) -> Engine:
    """
    Rebind the module engine and session factory to another database URL.

    Args:
        url: SQLAlchemy URL; defaults to DATABASE_URL

    Returns:
        The newly created engine
    """
    global engine
    engine = build_engine(url or DB_PATH)
    SessionLocal.configure(bind=engine)
    logger.info(f"Database bound to {engine.url.render_as_string(hide_password=True)}")
    return engine


def init_db() -> None:
    """
    Create all tables if they don't exist.

    Raises:
        RuntimeError: If schema creation fails
    """
    try:
        logger.info("Initializing database schema")
        if engine.url.drivername.startswith("sqlite") and engine.url.database:
            directory = os.path.dirname(engine.url.database)
            if directory:
                os.makedirs(directory, exist_ok=True)
        Base.metadata.create_all(bind=engine)
        logger.info("Database schema initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise RuntimeError(f"Failed to initialize database: {str(e)}")


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Provide database session with rollback on error and guaranteed cleanup.

    Yields:
        SQLAlchemy session for database operations

    Raises:
        Exception: Re-raises any exceptions that occur during session use
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Database session error: {str(e)}")
        raise
    finally:
        session.close()
