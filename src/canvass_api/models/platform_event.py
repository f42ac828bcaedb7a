"""PlatformEvent model: lifecycle events emitted by background jobs."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from canvass_api.models.base import Base, JSONType, UUIDMixin


class PlatformEvent(Base, UUIDMixin):
    """A tenant-scoped lifecycle event such as ``import.started``."""

    __tablename__ = "platform_events"

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("organizations.id"), nullable=False, index=True)
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    event_metadata: Mapped[dict | None] = mapped_column("metadata", JSONType, nullable=True)
