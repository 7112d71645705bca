"""
Integration test fixtures and configuration.

This module provides a transactional database session per test and
registered users for the watchlist flows.
"""

import os
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import NullPool, StaticPool

from shared.database.models import Base
from services.watchlist_manager.users import SqlUserFactory


# Test database configuration
TEST_DB_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")


@pytest.fixture(scope="session")
def integration_db_engine():
    """
    Create a database engine for integration tests.
    An in-memory SQLite database has to share one connection.
    """
    if TEST_DB_URL.startswith("sqlite"):
        engine = create_engine(
            TEST_DB_URL,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=False,
        )
    else:
        engine = create_engine(
            TEST_DB_URL,
            poolclass=NullPool,  # Don't pool connections in tests
            echo=False,
        )

    # Create all tables
    Base.metadata.create_all(engine)

    yield engine

    # Clean up
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def integration_db_session(integration_db_engine) -> Generator[Session, None, None]:
    """
    Create a fresh database session for each test.
    Commits made by the code under test stay inside an outer transaction
    that is rolled back after each test.
    """
    connection = integration_db_engine.connect()
    transaction = connection.begin()

    SessionLocal = sessionmaker(bind=connection)
    session = SessionLocal()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def user_factory(integration_db_session) -> SqlUserFactory:
    return SqlUserFactory(integration_db_session)


@pytest.fixture
def alice(user_factory):
    """Registered user who watches pages."""
    return user_factory.new_from_name("Alice", create=True)


@pytest.fixture
def bob(user_factory):
    """Registered user who edits pages."""
    return user_factory.new_from_name("Bob", create=True)


@pytest.fixture
def alice_performer(user_factory, alice):
    return user_factory.new_authority(alice)
