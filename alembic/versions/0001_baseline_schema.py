"""baseline schema

Revision ID: 0001_baseline_schema
Revises: None
Create Date: 2026-01-12

Creates the owner profiles table (without public slugs) and the generic
app_settings key/value table.

Notes:
- Local DBs may have been bootstrapped with `Base.metadata.create_all()`, so the
  online-mode upgrade skips tables and indexes that already exist.
"""

from __future__ import annotations

from alembic import context, op
import sqlalchemy as sa


revision = "0001_baseline_schema"
down_revision = None
branch_labels = None
depends_on = None


def _is_offline() -> bool:
    try:
        return bool(context.is_offline_mode())
    except Exception:
        return False


def _insp():
    return sa.inspect(op.get_bind())


def _has_table(name: str) -> bool:
    return _insp().has_table(name)


def upgrade() -> None:
    if _is_offline() or not _has_table("profiles"):
        op.create_table(
            "profiles",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("email", sa.String(length=320), nullable=True, unique=True),
            sa.Column("full_name", sa.String(length=256), nullable=True),
            sa.Column("public_profile_enabled", sa.Boolean(), server_default=sa.false(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        )

    if _is_offline() or not _has_table("app_settings"):
        op.create_table(
            "app_settings",
            sa.Column("key", sa.String(length=256), primary_key=True),
            sa.Column("value", sa.Text(), server_default="null", nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        )


def downgrade() -> None:
    op.drop_table("app_settings")
    op.drop_table("profiles")
