"""profile public slug

Revision ID: 0002_profile_public_slug
Revises: 0001_baseline_schema
Create Date: 2026-02-03

Adds:
- profiles.public_slug with a case-insensitive unique index
- profile_slug_aliases: single-hop redirects from renamed slugs

Slugs claimed in app_settings while this migration was pending can be copied over
with `slugregistry backfill`.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import context, op

revision = "0002_profile_public_slug"
down_revision = "0001_baseline_schema"
branch_labels = None
depends_on = None

SLUG_INDEX = "uniq_profiles_public_slug_lower"


def _is_offline() -> bool:
    try:
        return bool(context.is_offline_mode())
    except Exception:
        return False


def _insp():
    return sa.inspect(op.get_bind())


def _has_table(name: str) -> bool:
    return _insp().has_table(name)


def _get_columns(table: str) -> set[str]:
    cols = set()
    for c in _insp().get_columns(table):
        cols.add(str(c.get("name") or ""))
    return cols


def _get_indexes(table: str) -> set[str]:
    idx = set()
    for i in _insp().get_indexes(table):
        idx.add(str(i.get("name") or ""))
    return idx


def _add_column(table: str, column: sa.Column) -> None:
    if _is_offline():
        op.add_column(table, column)
        return
    if column.name in _get_columns(table):
        return
    op.add_column(table, column)


def _create_slug_index() -> None:
    # expression indexes are not always reported by the inspector on sqlite
    if not _is_offline():
        bind = op.get_bind()
        if bind.dialect.name == "sqlite":
            row = bind.execute(
                sa.text("SELECT 1 FROM sqlite_master WHERE type = 'index' AND name = :name"),
                {"name": SLUG_INDEX},
            ).first()
            if row is not None:
                return
        elif SLUG_INDEX in _get_indexes("profiles"):
            return
    op.create_index(
        SLUG_INDEX,
        "profiles",
        [sa.text("lower(public_slug)")],
        unique=True,
        sqlite_where=sa.text("public_slug IS NOT NULL"),
        postgresql_where=sa.text("public_slug IS NOT NULL"),
    )


def upgrade() -> None:
    _add_column("profiles", sa.Column("public_slug", sa.String(length=80), nullable=True))
    _create_slug_index()

    if _is_offline() or not _has_table("profile_slug_aliases"):
        op.create_table(
            "profile_slug_aliases",
            sa.Column("old_slug", sa.String(length=80), primary_key=True),
            sa.Column("target_slug", sa.String(length=80), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index("ix_profile_slug_aliases_target_slug", "profile_slug_aliases", ["target_slug"])


def downgrade() -> None:
    op.drop_table("profile_slug_aliases")
    op.drop_index(SLUG_INDEX, table_name="profiles")
    with op.batch_alter_table("profiles") as batch:
        batch.drop_column("public_slug")
