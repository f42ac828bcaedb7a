"""Shared test fixtures for async database, sessions, tenants, and auth tokens."""

import uuid
from collections.abc import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from canvass_api.core.config import Settings
from canvass_api.core.security import create_access_token
from canvass_api.lib.storage import ObjectNotAccessibleError
from canvass_api.models import Organization, User
from canvass_api.models.base import Base

TEST_SECRET = "test-secret-key-not-for-production-use"


class MemoryObjectStore:
    """ObjectStore keeping objects in a dict."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.reachable = True

    async def get(self, key: str) -> bytes:
        if key not in self.objects:
            raise ObjectNotAccessibleError("memory", key, "NoSuchKey")
        return self.objects[key]

    async def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        self.objects[key] = data
        self.content_types[key] = content_type

    async def ensure_bucket(self) -> None:
        if not self.reachable:
            raise ObjectNotAccessibleError("memory", None, "NoSuchBucket")


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret_key=TEST_SECRET,
        jwt_algorithm="HS256",
        import_progress_interval=2,
        placeholder_jitter=0.0,
    )


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory async SQLite engine shared by every session in a test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest.fixture
async def async_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    """Create a per-test async session."""
    async with session_factory() as session:
        yield session


async def _make_tenant(session: AsyncSession, name: str) -> tuple[Organization, User, User]:
    org = Organization(id=uuid.uuid4(), name=name)
    session.add(org)
    await session.flush()
    admin = User(id=uuid.uuid4(), tenant_id=org.id, name=f"{name} Admin", email="admin@example.org", role="admin")
    canvasser = User(
        id=uuid.uuid4(), tenant_id=org.id, name=f"{name} Canvasser", email="walker@example.org", role="canvasser"
    )
    session.add_all([admin, canvasser])
    await session.commit()
    return org, admin, canvasser


@pytest.fixture
async def tenant(async_session: AsyncSession) -> tuple[Organization, User, User]:
    """An organization with one admin and one canvasser."""
    return await _make_tenant(async_session, "Acme Campaign")


@pytest.fixture
async def other_tenant(async_session: AsyncSession) -> tuple[Organization, User, User]:
    """A second, unrelated organization."""
    return await _make_tenant(async_session, "Rival Campaign")


@pytest.fixture
def org(tenant: tuple[Organization, User, User]) -> Organization:
    return tenant[0]


@pytest.fixture
def admin(tenant: tuple[Organization, User, User]) -> User:
    return tenant[1]


@pytest.fixture
def canvasser(tenant: tuple[Organization, User, User]) -> User:
    return tenant[2]


@pytest.fixture
def admin_token(admin: User) -> str:
    """Generate a JWT access token for the tenant admin."""
    return create_access_token(admin.id, admin.tenant_id, "admin", TEST_SECRET)


@pytest.fixture
def canvasser_token(canvasser: User) -> str:
    """Generate a JWT access token for the tenant canvasser."""
    return create_access_token(canvasser.id, canvasser.tenant_id, "canvasser", TEST_SECRET)


@pytest.fixture
def memory_store() -> MemoryObjectStore:
    return MemoryObjectStore()
