"""Organization model: the tenant isolation boundary."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from canvass_api.models.base import Base, TimestampMixin, UUIDMixin


class Organization(Base, UUIDMixin, TimestampMixin):
    """A campaign organization; every other entity belongs to exactly one."""

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", server_default="active")
    plan_id: Mapped[str] = mapped_column(String(50), nullable=False, default="starter", server_default="starter")
