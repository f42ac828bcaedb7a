"""App and HTTP client fixtures for API tests backed by SQLite."""

from collections.abc import AsyncGenerator
from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from canvass_api.core.background import JobStatus
from canvass_api.core.config import Settings, get_settings
from canvass_api.core.dependencies import get_async_session, get_job_queue, get_object_store
from canvass_api.main import create_app


class RecordingQueue:
    """JobQueue that records deliveries instead of running them."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any], str | None]] = []

    def enqueue(self, job_name: str, payload: dict[str, Any], *, key: str | None = None) -> str:
        self.calls.append((job_name, payload, key))
        return f"handle-{len(self.calls)}"

    def get_status(self, handle: str) -> JobStatus:
        return JobStatus.PENDING


@pytest.fixture
def queue() -> RecordingQueue:
    return RecordingQueue()


@pytest.fixture
def app(
    monkeypatch: pytest.MonkeyPatch,
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    queue: RecordingQueue,
    memory_store,
) -> FastAPI:
    """Full application with database, queue and storage overridden."""
    monkeypatch.setenv("DATABASE_URL", settings.database_url)
    monkeypatch.setenv("JWT_SECRET_KEY", settings.jwt_secret_key)
    test_app = create_app()

    async def _session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            yield session

    test_app.dependency_overrides[get_async_session] = _session
    test_app.dependency_overrides[get_settings] = lambda: settings
    test_app.dependency_overrides[get_job_queue] = lambda: queue
    test_app.dependency_overrides[get_object_store] = lambda: memory_store
    return test_app


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def admin_headers(admin_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def canvasser_headers(canvasser_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {canvasser_token}"}
