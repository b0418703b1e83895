# This project was developed with assistance from AI tools.
"""Shared fixtures: in-memory SQLite schema, mock blob storage, HTTP client.

Each test gets a fresh schema on an in-memory SQLite database (aiosqlite),
so services run their real queries, commits and constraints. Blob storage
is replaced by a mock patched into every service module that uploads.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
import pytest_asyncio
from db import Base
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.services.storage import StorageService

_STORAGE_USERS = (
    "src.services.property.get_storage_service",
    "src.services.registration.get_storage_service",
    "src.services.loan_application.get_storage_service",
)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def async_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    return async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Blob storage
# ---------------------------------------------------------------------------


def _fake_upload(bucket, data, key, content_type):
    return f"http://storage.test/{bucket}/{key}"


@pytest.fixture
def mock_storage():
    """Mock StorageService patched into every uploading service.

    ``upload_file`` succeeds by default; set ``side_effect`` to simulate failures.
    """
    storage = MagicMock()
    storage.build_object_key.side_effect = StorageService.build_object_key
    storage.upload_file = AsyncMock(side_effect=_fake_upload)

    patchers = [patch(target, return_value=storage) for target in _STORAGE_USERS]
    for patcher in patchers:
        patcher.start()
    yield storage
    for patcher in patchers:
        patcher.stop()


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture
def client_factory(db_session):
    """Factory returning an async httpx client acting as ``user`` (None = anonymous).

    The app's session dependency yields the test session, so requests and
    assertions share one database.
    """
    from db import get_db

    from src.main import app
    from src.middleware.auth import get_current_user

    async def _make(user):
        async def _get_db():
            yield db_session

        async def _get_current_user():
            return user

        app.dependency_overrides[get_db] = _get_db
        if user is not None:
            app.dependency_overrides[get_current_user] = _get_current_user
        transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
        return httpx.AsyncClient(transport=transport, base_url="http://test")

    yield _make

    app.dependency_overrides.clear()


@pytest.fixture
def client():
    """Synchronous TestClient without overrides, for public endpoints."""
    from fastapi.testclient import TestClient

    from src.main import app

    return TestClient(app)
