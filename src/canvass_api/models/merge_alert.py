"""MergeAlert model: a reviewable possible duplicate between a lead and an imported voter."""

import uuid

from sqlalchemy import ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from canvass_api.models.base import Base, TimestampMixin, UUIDMixin

ALERT_OPEN = "open"
ALERT_RESOLVED = "resolved"
ALERT_DISMISSED = "dismissed"
ALERT_STATUSES = (ALERT_OPEN, ALERT_RESOLVED, ALERT_DISMISSED)

REASON_PHONE_MATCH = "phone_match"


class MergeAlert(Base, UUIDMixin, TimestampMixin):
    """Candidate duplicate pairing; one row per (tenant, lead, imported) pair."""

    __tablename__ = "voter_merge_alerts"

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("organizations.id"), nullable=False, index=True)
    lead_voter_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("voters.id"), nullable=False)
    imported_voter_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("voters.id"), nullable=False)
    reason: Mapped[str] = mapped_column(String(50), nullable=False, default=REASON_PHONE_MATCH)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ALERT_OPEN, server_default=ALERT_OPEN, index=True
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "lead_voter_id", "imported_voter_id", name="uq_merge_alerts_pair"),
    )
