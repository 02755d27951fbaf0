"""
Pytest configuration and shared fixtures.
"""

import pytest
from fastapi.testclient import TestClient

from api.main import app
from api.models import BookPayload
from api.store import BookStore


@pytest.fixture
def store():
    """Create an empty book store."""
    return BookStore()


@pytest.fixture
def sample_book_data():
    """Create sample book request body for testing."""
    return {
        "name": "Buku A",
        "year": 2010,
        "author": "John Doe",
        "summary": "Lorem ipsum dolor sit amet",
        "publisher": "Dicoding Indonesia",
        "pageCount": 100,
        "readPage": 25,
        "reading": False
    }


@pytest.fixture
def sample_payload(sample_book_data):
    """Create sample book payload for testing."""
    return BookPayload(**sample_book_data)


@pytest.fixture
def client():
    """Create test client; entering the lifespan gives every test an empty store."""
    with TestClient(app) as test_client:
        yield test_client
