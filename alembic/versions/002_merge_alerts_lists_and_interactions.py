"""Add voter_merge_alerts, walk_lists, list_members and interactions tables.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import UUID

revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "voter_merge_alerts",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", UUID(as_uuid=True), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("lead_voter_id", UUID(as_uuid=True), sa.ForeignKey("voters.id"), nullable=False),
        sa.Column("imported_voter_id", UUID(as_uuid=True), sa.ForeignKey("voters.id"), nullable=False),
        sa.Column("reason", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="open"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("tenant_id", "lead_voter_id", "imported_voter_id", name="uq_merge_alerts_pair"),
    )
    op.create_index("ix_voter_merge_alerts_tenant_id", "voter_merge_alerts", ["tenant_id"])
    op.create_index("ix_voter_merge_alerts_status", "voter_merge_alerts", ["status"])

    op.create_table(
        "walk_lists",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", UUID(as_uuid=True), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("created_by_user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_walk_lists_tenant_id", "walk_lists", ["tenant_id"])

    op.create_table(
        "list_members",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", UUID(as_uuid=True), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column(
            "list_id", UUID(as_uuid=True), sa.ForeignKey("walk_lists.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("voter_id", UUID(as_uuid=True), sa.ForeignKey("voters.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("tenant_id", "list_id", "voter_id", name="uq_list_members_voter"),
    )
    op.create_index("ix_list_members_tenant_id", "list_members", ["tenant_id"])
    op.create_index("ix_list_members_voter_id", "list_members", ["voter_id"])

    op.create_table(
        "interactions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", UUID(as_uuid=True), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("voter_id", UUID(as_uuid=True), sa.ForeignKey("voters.id"), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("channel", sa.String(20), nullable=False),
        sa.Column("result_code", sa.String(20), nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("client_interaction_uuid", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("tenant_id", "client_interaction_uuid", name="uq_interactions_client_uuid"),
    )
    op.create_index("ix_interactions_tenant_id", "interactions", ["tenant_id"])
    op.create_index("ix_interactions_voter_id", "interactions", ["voter_id"])


def downgrade() -> None:
    op.drop_table("interactions")
    op.drop_table("list_members")
    op.drop_table("walk_lists")
    op.drop_table("voter_merge_alerts")
