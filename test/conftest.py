import sys
import os
from pathlib import Path
import logging

import pytest

# Add src to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

# Set environment variables before importing modules
os.environ.setdefault('GOOGLE_CLIENT_ID', 'test-client-id.apps.googleusercontent.com')
os.environ.setdefault('JWT_SECRET', 'test-jwt-secret-with-enough-length-for-hs256')

from schema import User


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """Configure logging for tests."""
    logging.basicConfig(level=logging.INFO)


@pytest.fixture
def cached_user() -> User:
    return User(id="1", name="Cached Name", email="rider@example.com", photo=None)


@pytest.fixture
def fresh_user() -> User:
    return User(
        id="1",
        name="Fresh Name",
        email="rider@example.com",
        photo="https://example.com/photo.png",
        is_rider=False,
    )
