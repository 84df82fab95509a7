"""Shared fixtures for the test suite."""

import pytest

from app.logging.context import clear_log_context
from app.persistence import close_database, init_database


@pytest.fixture
def database():
    """Initialize a fresh in-memory database for one test."""
    init_database("sqlite:///:memory:")
    yield
    close_database()


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set the environment variables the service reads."""
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.setenv("PROFILE_ID", "test-profile")
    monkeypatch.delenv("LOG_LEVEL", raising=False)


@pytest.fixture(autouse=True)
def clean_log_context():
    """Clear logging context before and after each test."""
    clear_log_context()
    yield
    clear_log_context()
