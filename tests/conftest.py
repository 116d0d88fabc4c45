"""
Global test fixtures for the storefront backend.

This module provides shared fixtures for all tests including:
- Mock MongoDB (mongomock-motor)
- Mock Redis (fakeredis)
- Fully wired services on top of the mock database
- Sample documents
"""

import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Cheap bcrypt for the test run; must be set before storefront.core.security loads
os.environ.setdefault("BCRYPT_ROUNDS", "4")

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))


# =============================================================================
# MongoDB Fixtures (mongomock)
# =============================================================================

@pytest_asyncio.fixture
async def mock_async_mongo_client():
    """
    Create an async mock MongoDB client using mongomock-motor.
    """
    try:
        from mongomock_motor import AsyncMongoMockClient
    except ImportError:
        pytest.skip("mongomock-motor not installed")
    client = AsyncMongoMockClient()
    yield client
    client.close()


@pytest_asyncio.fixture
async def mock_shop_db(mock_async_mongo_client):
    """Provide the mock shop database with the same indexes as the real app."""
    from storefront.database.registry import create_indexes

    db = mock_async_mongo_client["storefront_test"]
    await create_indexes(db)
    yield db


# =============================================================================
# Redis Fixtures (fakeredis)
# =============================================================================

@pytest_asyncio.fixture
async def mock_async_redis():
    """
    Create an async mock Redis client using fakeredis.
    """
    try:
        import fakeredis.aioredis
    except ImportError:
        pytest.skip("fakeredis with aioredis not installed")
    redis_client = fakeredis.aioredis.FakeRedis(decode_responses=True)
    yield redis_client
    await redis_client.flushall()
    await redis_client.aclose()


# =============================================================================
# Service Fixtures
# =============================================================================

@pytest.fixture
def test_settings():
    """Settings with a fixed default locale."""
    from storefront.config import Settings
    return Settings(default_lang="en", _env_file=None)


@pytest.fixture
def event_bus():
    from storefront.events.bus import EventBus
    return EventBus()


@pytest.fixture
def recorded_events(event_bus):
    """
    Every event published on `event_bus`, as (name, payload) tuples.
    """
    from storefront.events.subscribers import FORWARDED_EVENTS

    events = []
    for name in FORWARDED_EVENTS:
        event_bus.subscribe(name, lambda *payload, _name=name: events.append((_name, payload)))
    return events


@pytest.fixture
def services(mock_shop_db, event_bus, test_settings):
    """All services wired like the app does at startup."""
    from storefront.wiring import build_services
    return build_services(mock_shop_db, event_bus, test_settings)


# =============================================================================
# Document Fixtures
# =============================================================================

@pytest.fixture
def attribute_data() -> dict:
    """A valid attribute document before save."""
    return {
        "code": "color",
        "type": "color",
        "param": "Non",
        "_type": "products",
        "position": 2,
        "translation": {
            "en": {"name": "Color", "values": {"red": "Red"}},
            "fr": {"name": "Couleur"},
        },
    }


@pytest.fixture
def user_data() -> dict:
    """A valid user document before save."""
    return {
        "email": "jane.doe@example.com",
        "password": "SecurePassword123",
        "firstname": "Jane",
        "lastname": "Doe",
    }


@pytest_asyncio.fixture
async def saved_attribute(services, attribute_data) -> dict:
    result = await services.attributes.save(attribute_data)
    return result.document


@pytest_asyncio.fixture
async def saved_user(services, user_data) -> dict:
    result = await services.users.save(user_data)
    return result.document


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================

@pytest.fixture
def app(services):
    """
    FastAPI app whose routes use the mock-database services.

    The lifespan is not run, so no real connection is opened.
    """
    from storefront.dependencies.services import get_services
    from storefront.main import app

    app.dependency_overrides[get_services] = lambda: services
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def async_client(app):
    """
    Create an async test client.
    """
    from httpx import AsyncClient, ASGITransport

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac
