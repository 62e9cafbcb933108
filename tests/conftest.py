"""
Pytest configuration and fixtures for the poll API tests.

Every test runs against a fresh in-memory SQLite database built from the ORM
metadata, through an httpx client bound to the ASGI app.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test_secret_key_for_testing_only")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "warning")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker  # noqa: E402

from main import app  # noqa: E402
from core.async_engine import build_engine  # noqa: E402
from core.base import Base  # noqa: E402
from core.cache import poll_cache, user_polls_cache  # noqa: E402
from core.connection_manager import manager  # noqa: E402
from core.depends import get_session  # noqa: E402
from core.security import rate_limiter  # noqa: E402
from core.settings import settings  # noqa: E402
from tests.helpers import create_poll, register_user  # noqa: E402


@pytest.fixture
async def engine():
    test_engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, autocommit=False, expire_on_commit=False)


@pytest.fixture(autouse=True)
def reset_shared_state(monkeypatch):
    """Caches, rate limiter and realtime connections are process-wide singletons."""
    poll_cache.clear()
    user_polls_cache.clear()
    rate_limiter.reset_all()
    monkeypatch.setattr(rate_limiter, "max_requests", 1000)
    manager.active_connections.clear()
    yield
    manager.active_connections.clear()


@pytest.fixture
async def async_client(session_factory):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        response = await client.get(f"{settings.API_PREFIX}/csrf")
        client.headers[settings.CSRF_HEADER_NAME] = response.json()["csrf_token"]
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def test_user(async_client):
    return await register_user(async_client)


@pytest.fixture
async def other_user(async_client):
    return await register_user(async_client)


@pytest.fixture
async def public_poll(async_client, test_user):
    return await create_poll(async_client, test_user)
