"""create admin_users, api_configs, app_state and hosting_plans

Revision ID: 5b0e7c41a9d2
Revises: 
Create Date: 2026-10-19 09:12:04.118220

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '5b0e7c41a9d2'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "admin_users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_admin_users_email", "admin_users", ["email"], unique=True)

    op.create_table(
        "api_configs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("label", sa.String(255), nullable=False),
        sa.Column("base_url", sa.String(2048), nullable=False),
        sa.Column("encrypted_token", sa.Text(), nullable=False),
        sa.Column("brand_id", sa.String(255), nullable=False, server_default="default"),
        sa.Column("environment", sa.String(20), nullable=False, server_default="production"),
        sa.Column("timeout", sa.Float(), nullable=False, server_default="30"),
        sa.Column("retry_attempts", sa.Integer(), nullable=False, server_default="3"),
        *_timestamps(),
    )
    op.create_index("ix_api_configs_position", "api_configs", ["position"])

    op.create_table(
        "app_state",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", sa.String(255), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "hosting_plans",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("period", sa.String(10), nullable=False, server_default="month"),
        sa.Column("features", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("icon_emoji", sa.String(16), nullable=False),
        sa.Column("is_popular", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("upmind_url", sa.String(2048), nullable=False, server_default=""),
        sa.Column("upmind_product_id", sa.String(255), nullable=True),
        sa.Column("upmind_sync_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("upmind_last_synced", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_hosting_plans_slug", "hosting_plans", ["slug"], unique=True)
    op.create_index("ix_hosting_plans_sort_order", "hosting_plans", ["sort_order"])
    op.create_index("ix_hosting_plans_upmind_product_id", "hosting_plans", ["upmind_product_id"])


def downgrade() -> None:
    op.drop_table("hosting_plans")
    op.drop_table("app_state")
    op.drop_table("api_configs")
    op.drop_table("admin_users")
