"""AuditLog model for immutable tracking of sensitive actions."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from canvass_api.models.base import Base, JSONType, UUIDMixin


class AuditLog(Base, UUIDMixin):
    """Immutable record of an admin or pipeline action. Write-only (no updates or deletes)."""

    __tablename__ = "audit_logs"

    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    actor_user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("organizations.id"), nullable=False, index=True)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    details: Mapped[dict | None] = mapped_column("metadata", JSONType, nullable=True)
