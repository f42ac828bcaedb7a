"""Tests for authentication and role dependencies."""

import uuid

import pytest
from fastapi import HTTPException

from canvass_api.core.config import Settings
from canvass_api.core.dependencies import CurrentUser, get_current_user, get_object_store, require_role
from canvass_api.core.security import create_access_token


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="sqlite+aiosqlite://", jwt_secret_key="d" * 32)


class TestGetCurrentUser:
    """Tests for bearer token resolution."""

    @pytest.mark.asyncio
    async def test_valid_token(self, settings: Settings) -> None:
        user_id, tenant_id = uuid.uuid4(), uuid.uuid4()
        token = create_access_token(user_id, tenant_id, "admin", settings.jwt_secret_key)

        user = await get_current_user(token, settings)

        assert user == CurrentUser(id=user_id, tenant_id=tenant_id, role="admin")

    @pytest.mark.asyncio
    async def test_wrong_secret(self, settings: Settings) -> None:
        token = create_access_token(uuid.uuid4(), uuid.uuid4(), "admin", "e" * 32)
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(token, settings)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_malformed_tenant_claim(self, settings: Settings) -> None:
        token = create_access_token(uuid.uuid4(), "not-a-uuid", "admin", settings.jwt_secret_key)
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(token, settings)
        assert exc_info.value.status_code == 401


class TestRequireRole:
    """Tests for role enforcement."""

    @pytest.mark.asyncio
    async def test_allowed_role(self) -> None:
        user = CurrentUser(id=uuid.uuid4(), tenant_id=uuid.uuid4(), role="admin")
        assert await require_role("admin")(current_user=user) is user

    @pytest.mark.asyncio
    async def test_forbidden_role(self) -> None:
        user = CurrentUser(id=uuid.uuid4(), tenant_id=uuid.uuid4(), role="canvasser")
        with pytest.raises(HTTPException) as exc_info:
            await require_role("admin")(current_user=user)
        assert exc_info.value.status_code == 403


class TestGetObjectStore:
    """Tests for the storage dependency."""

    def test_none_when_unconfigured(self, settings: Settings) -> None:
        assert get_object_store(settings) is None
