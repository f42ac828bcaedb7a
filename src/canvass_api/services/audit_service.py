"""Audit and lifecycle event recording.

Both record types are append-only. Neither helper commits: records are added
to the caller's session so they land atomically with the change they describe.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from canvass_api.models.audit_log import AuditLog
from canvass_api.models.platform_event import PlatformEvent


def record_audit(
    session: AsyncSession,
    *,
    tenant_id: uuid.UUID,
    actor_user_id: uuid.UUID,
    action: str,
    details: dict | None = None,
) -> AuditLog:
    """Add an immutable audit log record to the session.

    Args:
        session: The database session.
        tenant_id: Organization the action happened in.
        actor_user_id: The acting user's ID.
        action: The action performed (import.success, voter.merge, voter.update, merge_alert.update).
        details: Additional context (moved record counts, changed fields...).

    Returns:
        The pending AuditLog record.
    """
    entry = AuditLog(action=action, actor_user_id=actor_user_id, tenant_id=tenant_id, details=details)
    session.add(entry)
    return entry


def record_event(
    session: AsyncSession,
    *,
    tenant_id: uuid.UUID,
    user_id: uuid.UUID | None,
    event_type: str,
    metadata: dict | None = None,
) -> PlatformEvent:
    """Add a lifecycle event (import.started, import.completed, import.failed) to the session."""
    event = PlatformEvent(tenant_id=tenant_id, user_id=user_id, event_type=event_type, event_metadata=metadata)
    session.add(event)
    return event


async def list_events(
    session: AsyncSession,
    *,
    tenant_id: uuid.UUID,
    event_type: str | None = None,
) -> list[PlatformEvent]:
    """Return a tenant's lifecycle events, oldest first."""
    query = select(PlatformEvent).where(PlatformEvent.tenant_id == tenant_id)
    if event_type:
        query = query.where(PlatformEvent.event_type == event_type)
    result = await session.execute(query.order_by(PlatformEvent.occurred_at, PlatformEvent.id))
    return list(result.scalars().all())


async def list_audit_logs(
    session: AsyncSession,
    *,
    tenant_id: uuid.UUID,
    action: str | None = None,
) -> list[AuditLog]:
    """Return a tenant's audit records, oldest first."""
    query = select(AuditLog).where(AuditLog.tenant_id == tenant_id)
    if action:
        query = query.where(AuditLog.action == action)
    result = await session.execute(query.order_by(AuditLog.occurred_at, AuditLog.id))
    return list(result.scalars().all())
