"""FastAPI dependency injection for database sessions, tenancy, and access control.

Every authenticated request resolves to a ``CurrentUser`` carrying the
tenant id that all service calls are scoped by.
"""

import uuid
from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass
from typing import Annotated, Any

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from canvass_api.core.background import JobQueue, job_queue
from canvass_api.core.config import Settings, get_settings
from canvass_api.core.database import get_session_factory
from canvass_api.core.security import decode_token
from canvass_api.lib.storage import ObjectStore, create_object_store

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/auth/verify")


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated principal resolved from a bearer token."""

    id: uuid.UUID
    tenant_id: uuid.UUID
    role: str


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Yield an async database session with per-request lifecycle."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


def get_job_queue() -> JobQueue:
    """Return the job queue the HTTP layer enqueues onto."""
    return job_queue


def get_object_store(settings: Annotated[Settings, Depends(get_settings)]) -> ObjectStore | None:
    """Return the configured upload store, or None when storage is not configured."""
    return create_object_store(settings)


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CurrentUser:
    """Decode the bearer JWT into a tenant-scoped principal.

    Raises:
        HTTPException: If the token is invalid or lacks tenant claims.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(token, settings.jwt_secret_key, settings.jwt_algorithm)
        user_id = uuid.UUID(payload["sub"])
        tenant_id = uuid.UUID(payload["tenant_id"])
        role = str(payload.get("role") or "canvasser")
    except (jwt.InvalidTokenError, KeyError, TypeError, ValueError) as exc:
        raise credentials_exception from exc

    return CurrentUser(id=user_id, tenant_id=tenant_id, role=role)


def require_role(*roles: str) -> Callable[..., Any]:
    """Factory that creates a dependency requiring specific user roles.

    Args:
        *roles: Allowed role names (e.g., "admin", "canvasser").

    Returns:
        A FastAPI dependency function that validates the user's role.
    """

    async def role_checker(
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
    ) -> CurrentUser:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{current_user.role}' does not have access to this resource",
            )
        return current_user

    return role_checker
