"""Audit trail and lifecycle event endpoints (admin only)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from canvass_api.core.dependencies import CurrentUser, get_async_session, require_role
from canvass_api.schemas.audit import (
    AuditLogListResponse,
    AuditLogResponse,
    PlatformEventListResponse,
    PlatformEventResponse,
)
from canvass_api.services import audit_service

audit_router = APIRouter(tags=["audit"])


@audit_router.get("/audit-logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    current_user: Annotated[CurrentUser, Depends(require_role("admin"))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    action: Annotated[str | None, Query(max_length=50)] = None,
) -> AuditLogListResponse:
    """The tenant's audit trail, oldest first, optionally narrowed to one action."""
    logs = await audit_service.list_audit_logs(session, tenant_id=current_user.tenant_id, action=action)
    return AuditLogListResponse(items=[AuditLogResponse.model_validate(log) for log in logs])


@audit_router.get("/events", response_model=PlatformEventListResponse)
async def list_events(
    current_user: Annotated[CurrentUser, Depends(require_role("admin"))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    event_type: Annotated[str | None, Query(alias="eventType", max_length=50)] = None,
) -> PlatformEventListResponse:
    """The tenant's import lifecycle events, oldest first."""
    events = await audit_service.list_events(session, tenant_id=current_user.tenant_id, event_type=event_type)
    items = [
        PlatformEventResponse(
            id=event.id,
            event_type=event.event_type,
            user_id=event.user_id,
            occurred_at=event.occurred_at,
            metadata=event.event_metadata,
        )
        for event in events
    ]
    return PlatformEventListResponse(items=items)
