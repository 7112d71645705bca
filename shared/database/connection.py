"""
Database connection management.
"""
from functools import lru_cache
from typing import Generator, Optional
from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import sessionmaker, Session

from shared.configs.config import get_settings


@lru_cache()
def get_engine(database_url: Optional[str] = None) -> Engine:
    """
    Get or create database engine.

    Args:
        database_url: Database URL (uses settings if None)

    Returns:
        SQLAlchemy engine
    """
    settings = get_settings()
    url = database_url or settings.database_url

    kwargs = {"pool_pre_ping": True, "echo": settings.debug}
    if not url.startswith("sqlite"):
        kwargs.update(pool_size=10, max_overflow=20)
    return create_engine(url, **kwargs)


def get_session(engine: Engine) -> Session:
    """
    Get database session from engine.

    Args:
        engine: SQLAlchemy engine

    Returns:
        Database session
    """
    SessionFactory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    return SessionFactory()


def get_db(database_url: Optional[str] = None) -> Generator[Session, None, None]:
    """
    Get database session.

    Yields:
        Database session
    """
    db = get_session(get_engine(database_url))
    try:
        yield db
    finally:
        db.close()


def init_db(database_url: Optional[str] = None) -> None:
    """Initialize database tables."""
    from shared.database.models import Base
    Base.metadata.create_all(bind=get_engine(database_url))
