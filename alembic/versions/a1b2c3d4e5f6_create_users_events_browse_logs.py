"""create users, events and browse logs tables

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a1b2c3d4e5f6"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("pubkey", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("sig", sa.String(512), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_id"), "users", ["id"])
    op.create_index(op.f("ix_users_pubkey"), "users", ["pubkey"], unique=True)

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user", sa.String(255), nullable=False),
        sa.Column("ops", sa.String(1), nullable=False),
        sa.Column("code", sa.Integer(), nullable=False),
        sa.Column("sig", sa.String(512), nullable=True),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("client_created_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_events_id"), "events", ["id"])
    op.create_index("idx_events_user_created", "events", ["user", "created_at"])

    op.create_table(
        "browse_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("identity", sa.String(255), nullable=True),
        sa.Column("anonymous_id", sa.String(255), nullable=False),
        sa.Column("target_id", sa.String(255), nullable=False),
        sa.Column("target_type", sa.String(64), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("dedup_key", sa.String(300), nullable=False),
        sa.Column("dedup_bucket", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("target_id", "dedup_key", "dedup_bucket", name="uq_browse_logs_dedup"),
    )
    op.create_index(op.f("ix_browse_logs_id"), "browse_logs", ["id"])
    op.create_index(op.f("ix_browse_logs_identity"), "browse_logs", ["identity"])
    op.create_index(op.f("ix_browse_logs_target_id"), "browse_logs", ["target_id"])
    op.create_index(op.f("ix_browse_logs_created_at"), "browse_logs", ["created_at"])
    op.create_index("idx_browse_logs_target_created", "browse_logs", ["target_id", "created_at"])
    op.create_index("idx_browse_logs_anonymous", "browse_logs", ["anonymous_id", "identity"])


def downgrade() -> None:
    op.drop_table("browse_logs")
    op.drop_table("events")
    op.drop_table("users")
