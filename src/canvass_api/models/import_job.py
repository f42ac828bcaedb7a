"""ImportJob model: one execution of the voter import pipeline."""

import uuid

from sqlalchemy import ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from canvass_api.models.base import Base, JSONType, TimestampMixin, UUIDMixin

IMPORT_TYPE_VOTERS = "import_voters"

JOB_PENDING = "pending"
JOB_PROCESSING = "processing"
JOB_COMPLETED = "completed"
JOB_FAILED = "failed"
TERMINAL_STATUSES = frozenset({JOB_COMPLETED, JOB_FAILED})


class ImportJob(Base, UUIDMixin, TimestampMixin):
    """Tracks a voter import job. Append-only: jobs are never deleted."""

    __tablename__ = "import_jobs"

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("organizations.id"), nullable=False, index=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False, default=IMPORT_TYPE_VOTERS)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=JOB_PENDING, server_default=JOB_PENDING, index=True
    )
    file_key: Mapped[str | None] = mapped_column(String(512), nullable=True)

    # Progress, duplicate-file detection and upload details. The attribute is
    # renamed because ``metadata`` is reserved on declarative classes.
    job_metadata: Mapped[dict | None] = mapped_column("metadata", JSONType, nullable=True)
    result: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Checkpoint for resume: number of source rows committed so far
    last_processed_offset: Mapped[int | None] = mapped_column(Integer, nullable=True)
