"""
Photo Enhancement Backend — Test Configuration (conftest.py)
=============================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Overview:
    ├── mock_db_session:     AsyncMock session (no database)
    ├── sqlite_session:      Real AsyncSession on an in-memory aiosqlite database
    ├── make_photo:          Factory inserting Photo rows into sqlite_session
    ├── enhance_recorder:    httpx.MockTransport that records dispatch requests
    ├── enhancement_client:  Open EnhancementClient wired to enhance_recorder
    └── test_client:         HTTPX AsyncClient against a fresh app, with the
                             database and enhancement client overridden
"""

import json
import os
import tempfile

# Settings are read at import time, so the environment is set before any
# app module is imported.
_TEST_DIR = tempfile.mkdtemp(prefix="photo_enhance_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["CRON_SECRETS"] = "test-cron-secret,previous-cron-secret"
os.environ["ENHANCE_BASE_URL"] = "http://enhance.test"
os.environ["ENHANCE_SERVICE_TOKEN"] = ""
os.environ["QUEUE_CLAIM_ITEMS"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.models.photo import Photo, PhotoStatus
from app.services.enhancement_client import EnhancementClient

BASE_TIME = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        mock_db_session.execute.return_value.scalars.return_value.all.return_value = [photo]
        await queue_service.fetch_pending_batch(mock_db_session)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest_asyncio.fixture
async def sqlite_session():
    """
    Provides a real AsyncSession on a fresh in-memory SQLite database.

    StaticPool keeps the single in-memory connection alive for the whole test.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def make_photo(sqlite_session) -> Callable:
    """
    Factory that inserts a Photo and commits it.

    Usage:
        photo = await make_photo("p1", minutes_ago=10)
    """

    async def _make(
        photo_id: str,
        user_id: str = "user-1",
        status: PhotoStatus = PhotoStatus.PENDING,
        minutes_ago: float = 0,
        updated_minutes_ago: Optional[float] = None,
    ) -> Photo:
        created = BASE_TIME - timedelta(minutes=minutes_ago)
        updated = created if updated_minutes_ago is None else BASE_TIME - timedelta(
            minutes=updated_minutes_ago
        )
        photo = Photo(
            id=photo_id,
            user_id=user_id,
            title=f"Photo {photo_id}",
            original_url=f"https://blob.test/{photo_id}.jpg",
            status=status.value,
            created_at=created,
            updated_at=updated,
        )
        sqlite_session.add(photo)
        await sqlite_session.commit()
        return photo

    return _make


# ══════════════════════════════════════════════════════════════════════════
# Enhancement Endpoint Fixtures
# ══════════════════════════════════════════════════════════════════════════

class EnhanceRecorder:
    """
    Fake enhancement endpoint for httpx.MockTransport.

    Records every request. `responses` maps photo ids to a status code or an
    exception to raise; unlisted photos get 200.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.responses = {}

    @property
    def photo_ids(self) -> List[str]:
        return [json.loads(r.content)["photoId"] for r in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        photo_id = json.loads(request.content)["photoId"]
        outcome = self.responses.get(photo_id, 200)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome >= 400:
            return httpx.Response(outcome, text=f"enhancement failed for {photo_id}")
        return httpx.Response(outcome, json={"success": True, "photoId": photo_id})


@pytest.fixture
def enhance_recorder() -> EnhanceRecorder:
    return EnhanceRecorder()


@pytest_asyncio.fixture
async def enhancement_client(enhance_recorder):
    """An open EnhancementClient whose requests go to enhance_recorder."""
    client = EnhancementClient(
        base_url="http://enhance.test",
        service_name="cron-processor",
        transport=httpx.MockTransport(enhance_recorder),
    )
    async with client:
        yield client


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client Fixture
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(sqlite_session, enhance_recorder):
    """
    Provides an async HTTP test client for endpoint testing.

    The app's session dependency yields sqlite_session and its enhancement
    client talks to enhance_recorder. `client.db_calls` counts how often a
    database session was handed out; `client.test_app` is the app itself,
    for tests that need to change its dependency overrides.

    Usage:
        async def test_something(test_client):
            response = await test_client.get("/health")
    """
    from app.database import get_db_session
    from app.main import create_app
    from app.routes.cron import get_enhancement_client

    app = create_app()
    db_calls = []

    async def override_db_session():
        db_calls.append(1)
        yield sqlite_session

    async def override_enhancement_client():
        async with EnhancementClient(
            base_url="http://enhance.test",
            service_name="cron-processor",
            transport=httpx.MockTransport(enhance_recorder),
        ) as client:
            yield client

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_enhancement_client] = override_enhancement_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        client.db_calls = db_calls
        client.test_app = app
        yield client
