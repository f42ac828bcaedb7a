"""Audit log and lifecycle event Pydantic v2 schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class AuditLogResponse(BaseModel):
    """One audit record."""

    id: UUID
    action: str
    actor_user_id: UUID
    occurred_at: datetime
    details: dict | None = None

    model_config = {"from_attributes": True}


class AuditLogListResponse(BaseModel):
    items: list[AuditLogResponse]


class PlatformEventResponse(BaseModel):
    """One lifecycle event; ``user_id`` is None for events the worker records."""

    id: UUID
    event_type: str
    user_id: UUID | None = None
    occurred_at: datetime
    metadata: dict | None = None


class PlatformEventListResponse(BaseModel):
    items: list[PlatformEventResponse]
