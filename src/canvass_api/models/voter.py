"""Voter model: imported voter file records and manually entered leads."""

import uuid

from sqlalchemy import Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from canvass_api.models.base import Base, TimestampMixin, UUIDMixin

VOTER_SOURCE_IMPORT = "import"
VOTER_SOURCE_MANUAL = "manual"


class Voter(Base, UUIDMixin, TimestampMixin):
    """A person record scoped to a tenant.

    ``external_id`` is the stable key from the source voter file and is
    unique per tenant; manual leads may leave it NULL. ``source`` never
    changes after insert, and ``merged_into_voter_id`` is only ever set on
    manual leads once they are reconciled with an imported voter.
    """

    __tablename__ = "voters"

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("organizations.id"), nullable=False, index=True)
    external_id: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    source: Mapped[str] = mapped_column(
        String(20), nullable=False, default=VOTER_SOURCE_IMPORT, server_default=VOTER_SOURCE_IMPORT
    )
    merged_into_voter_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("voters.id"), nullable=True)

    # Name fields
    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    middle_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    suffix: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Demographics
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    gender: Mapped[str | None] = mapped_column(Text, nullable=True)
    race: Mapped[str | None] = mapped_column(Text, nullable=True)
    party: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Contact
    phone: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Residence address
    address: Mapped[str] = mapped_column(Text, nullable=False)
    unit: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str] = mapped_column(Text, nullable=False)
    state: Mapped[str | None] = mapped_column(Text, nullable=True)
    zip: Mapped[str] = mapped_column(Text, nullable=False)

    # Placeholder until geocoded
    geom_lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    geom_lng: Mapped[float | None] = mapped_column(Float, nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "external_id", name="uq_voters_tenant_external_id"),
        Index("ix_voters_tenant_phone_source", "tenant_id", "phone", "source"),
        Index("ix_voters_name_search", "tenant_id", "last_name", "first_name"),
    )
