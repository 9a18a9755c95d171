"""
Pytest configuration and fixtures

Tests run against an in-memory SQLite database. Tables are created fresh for
every test that asks for `db_session` and dropped afterwards, so nothing
leaks between tests.
"""
import os
import sys

import pytest

# Must be set before core.config / core.database are imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_FORMAT", "text")

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.database import Base, SessionLocal, engine  # noqa: E402
import models  # noqa: E402,F401


@pytest.fixture(scope="function")
def db_session():
    """Session on freshly created tables; dropped after the test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()

    yield session

    session.rollback()
    session.close()
    Base.metadata.drop_all(bind=engine)
