from contextlib import asynccontextmanager

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from qrcheckin.config.database import async_session_maker, engine
from qrcheckin.events.repository import orm_models  # noqa: F401
from qrcheckin.main import app
from qrcheckin.models import BaseModel


@pytest_asyncio.fixture
async def database():
    """Fresh schema in the test database for the duration of one test."""
    async with engine.begin() as conn:
        await conn.run_sync(BaseModel.metadata.drop_all)
        await conn.run_sync(BaseModel.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(BaseModel.metadata.drop_all)


@pytest_asyncio.fixture
async def async_session(database):
    async with async_session_maker() as session:
        yield session


@pytest.fixture
def client_factory():
    """Build an HTTP client for the app with the given dependency overrides."""

    @asynccontextmanager
    async def _client_factory(overrides: dict | None = None):
        app.dependency_overrides.update(overrides or {})
        try:
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                yield client
        finally:
            app.dependency_overrides.clear()

    return _client_factory


@pytest_asyncio.fixture
async def client(client_factory):
    async with client_factory() as test_client:
        yield test_client
