"""Initial schema: organizations, users, voters, import_jobs, platform_events, audit_logs.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("plan_id", sa.String(50), nullable=False, server_default="starter"),
        *_timestamps(),
    )

    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", UUID(as_uuid=True), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.Text, nullable=True),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),
    )
    op.create_index("ix_users_tenant_id", "users", ["tenant_id"])
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "voters",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", UUID(as_uuid=True), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("external_id", sa.Text, nullable=True),
        sa.Column("source", sa.String(20), nullable=False, server_default="import"),
        sa.Column("merged_into_voter_id", UUID(as_uuid=True), sa.ForeignKey("voters.id"), nullable=True),
        sa.Column("first_name", sa.Text, nullable=False),
        sa.Column("middle_name", sa.Text, nullable=True),
        sa.Column("last_name", sa.Text, nullable=False),
        sa.Column("suffix", sa.Text, nullable=True),
        sa.Column("age", sa.Integer, nullable=True),
        sa.Column("gender", sa.Text, nullable=True),
        sa.Column("race", sa.Text, nullable=True),
        sa.Column("party", sa.Text, nullable=True),
        sa.Column("phone", sa.Text, nullable=True),
        sa.Column("address", sa.Text, nullable=False),
        sa.Column("unit", sa.Text, nullable=True),
        sa.Column("city", sa.Text, nullable=False),
        sa.Column("state", sa.Text, nullable=True),
        sa.Column("zip", sa.Text, nullable=False),
        sa.Column("geom_lat", sa.Float, nullable=True),
        sa.Column("geom_lng", sa.Float, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", "external_id", name="uq_voters_tenant_external_id"),
    )
    op.create_index("ix_voters_tenant_id", "voters", ["tenant_id"])
    op.create_index("ix_voters_external_id", "voters", ["external_id"])
    op.create_index("ix_voters_tenant_phone_source", "voters", ["tenant_id", "phone", "source"])
    op.create_index("ix_voters_name_search", "voters", ["tenant_id", "last_name", "first_name"])

    op.create_table(
        "import_jobs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", UUID(as_uuid=True), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("file_key", sa.String(512), nullable=True),
        sa.Column("metadata", JSONB, nullable=True),
        sa.Column("result", JSONB, nullable=True),
        sa.Column("error", sa.Text, nullable=True),
        sa.Column("last_processed_offset", sa.Integer, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_import_jobs_tenant_id", "import_jobs", ["tenant_id"])
    op.create_index("ix_import_jobs_status", "import_jobs", ["status"])
    op.execute("CREATE INDEX ix_import_jobs_file_hash ON import_jobs (tenant_id, (metadata->>'file_hash'))")

    op.create_table(
        "platform_events",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", UUID(as_uuid=True), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("metadata", JSONB, nullable=True),
    )
    op.create_index("ix_platform_events_tenant_id", "platform_events", ["tenant_id"])
    op.create_index("ix_platform_events_event_type", "platform_events", ["event_type"])

    op.create_table(
        "audit_logs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("actor_user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("tenant_id", UUID(as_uuid=True), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("metadata", JSONB, nullable=True),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_actor_user_id", "audit_logs", ["actor_user_id"])
    op.create_index("ix_audit_logs_tenant_id", "audit_logs", ["tenant_id"])
    op.create_index("ix_audit_logs_occurred_at", "audit_logs", ["occurred_at"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("platform_events")
    op.execute("DROP INDEX IF EXISTS ix_import_jobs_file_hash")
    op.drop_table("import_jobs")
    op.drop_table("voters")
    op.drop_table("users")
    op.drop_table("organizations")
