"""
Pytest configuration and fixtures for the test suite.

This module provides shared fixtures for unit and integration tests.
"""

import os
import uuid
from typing import Any, AsyncGenerator, Dict
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio
from faker import Faker
from httpx import AsyncClient, ASGITransport

# Set test environment before importing app modules
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_LEVEL", "WARNING")

fake = Faker()

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# =============================================================================
# Test Data Generators
# =============================================================================

@pytest.fixture
def document_payload() -> Dict[str, Any]:
    """Generate a random document body, without an ID."""
    return {
        "Title": fake.sentence(nb_words=4),
        "Author": fake.name(),
        "Language": fake.language_code(),
        "Tags": fake.words(nb=3),
    }


@pytest.fixture
def annotation_payload() -> Dict[str, Any]:
    """Generate a random annotation body, without identifiers."""
    return {
        "Text": fake.sentence(),
        "Author": fake.name(),
    }


# =============================================================================
# Database / Store Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def database():
    """Fresh in-memory database with all tables created."""
    from docstore.core.db_client import DatabaseManager

    db = DatabaseManager(TEST_DATABASE_URL, echo=False)
    await db.create_tables()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def store(database):
    """Document store over the in-memory database."""
    from docstore.services.store import DocumentStore

    return DocumentStore(database)


@pytest.fixture
def mock_store():
    """Create a store double whose entity stores are AsyncMocks."""
    store = Mock()
    for name in ("documents", "pages", "annotations"):
        entity_store = Mock()
        entity_store.find_one = AsyncMock()
        entity_store.find_many = AsyncMock(return_value=[])
        entity_store.insert = AsyncMock()
        entity_store.upsert = AsyncMock()
        setattr(store, name, entity_store)
    store.test_connection = AsyncMock(return_value=True)
    store.create_tables = AsyncMock()
    store.close = AsyncMock()
    return store


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest.fixture
def app(store):
    """Create a test FastAPI application around the in-memory store."""
    from docstore.main import create_app

    return create_app(store=store)


@pytest.fixture
def mock_app(mock_store):
    """Create a test FastAPI application around the mock store."""
    from docstore.main import create_app

    return create_app(store=mock_store)


@pytest_asyncio.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for API testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client


@pytest_asyncio.fixture
async def mock_client(mock_app) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client over the mock-store application."""
    async with AsyncClient(
        transport=ASGITransport(app=mock_app),
        base_url="http://test"
    ) as client:
        yield client


# =============================================================================
# Helper Fixtures
# =============================================================================

@pytest.fixture
def new_id():
    """Generate identifiers in the same format the service uses."""
    return lambda: uuid.uuid4().hex


@pytest.fixture
def add_annotation(store):
    """Store an annotation for a document and return its ID."""
    from docstore.models.document import Annotation

    async def _add(doc_id: str, **fields) -> str:
        annotation = Annotation(doc_id=doc_id, **fields)
        await store.annotations.insert(annotation)
        return annotation.id

    return _add
