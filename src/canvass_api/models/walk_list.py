"""Walk list models: named voter lists handed to canvassers."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from canvass_api.models.base import Base, UUIDMixin


class WalkList(Base, UUIDMixin):
    """A named list of voters to canvass."""

    __tablename__ = "walk_lists"

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("organizations.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_by_user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class ListMember(Base, UUIDMixin):
    """Membership of one voter in one walk list."""

    __tablename__ = "list_members"

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("organizations.id"), nullable=False, index=True)
    list_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("walk_lists.id", ondelete="CASCADE"), nullable=False)
    voter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("voters.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (UniqueConstraint("tenant_id", "list_id", "voter_id", name="uq_list_members_voter"),)
