# tests/conftest.py

"""
Pytest configuration and shared fixtures for testing.
"""

import pytest
from fastapi.testclient import TestClient
from typing import Generator

from core.config import Settings
from core.rate_limiter import reset_rate_limits
from main import create_app


EXPORT_KEY = "test-export-key"


@pytest.fixture
def signups_path(tmp_path):
    """Location of the CSV store for one test."""
    return tmp_path / "signups.csv"


@pytest.fixture
def settings(signups_path) -> Settings:
    return Settings(
        SIGNUP_STORE_BACKEND="csv",
        SIGNUPS_FILE=str(signups_path),
        EXPORT_KEY=EXPORT_KEY,
        SIGNUP_RATE_LIMIT_MAX=10,
        SIGNUP_RATE_LIMIT_WINDOW_SECONDS=900,
    )


@pytest.fixture(scope="function")
def app(settings):
    """Create a test FastAPI application instance."""
    return create_app(settings)


@pytest.fixture(scope="function")
def client(app) -> Generator[TestClient, None, None]:
    """Create a test client; entering it runs startup (store creation)."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(autouse=True)
def reset_limits():
    """Reset the signup rate limiter before each test."""
    reset_rate_limits()
    yield
    reset_rate_limits()
