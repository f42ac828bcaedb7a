"""Interaction model: the outcome of one door-to-door contact attempt."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from canvass_api.models.base import Base, UUIDMixin

RESULT_CODES = ("contacted", "not_home", "refused", "moved", "inaccessible", "deceased")


class Interaction(Base, UUIDMixin):
    """Canvassing history for a voter; rewired to the surviving voter on merge."""

    __tablename__ = "interactions"

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("organizations.id"), nullable=False, index=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    voter_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("voters.id"), nullable=False, index=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    channel: Mapped[str] = mapped_column(String(20), nullable=False, default="canvass")
    result_code: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    client_interaction_uuid: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (UniqueConstraint("tenant_id", "client_interaction_uuid", name="uq_interactions_client_uuid"),)
