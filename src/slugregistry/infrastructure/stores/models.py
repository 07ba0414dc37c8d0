from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Boolean, DateTime, Index, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

PROFILE_SLUG_INDEX = "uniq_profiles_public_slug_lower"

SLUG_KEY_PREFIX = "public_slug:"
ALIAS_KEY_PREFIX = "public_slug_alias:"


class Base(DeclarativeBase):
    pass


class ProfileModel(Base):
    """
    One row per owner.

    ``public_slug`` and its unique lower() index arrive in migration 0002; deployments
    still on 0001 have the table without them, so queries against this table select
    columns explicitly instead of loading whole ORM rows.
    """

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True, unique=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    public_profile_enabled: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    public_slug: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)


profile_slug_index = Index(
    PROFILE_SLUG_INDEX,
    func.lower(ProfileModel.__table__.c.public_slug),
    unique=True,
    sqlite_where=ProfileModel.__table__.c.public_slug.isnot(None),
    postgresql_where=ProfileModel.__table__.c.public_slug.isnot(None),
)


class ProfileSlugAliasModel(Base):
    """Single-hop redirect from a previous slug to its replacement."""

    __tablename__ = "profile_slug_aliases"

    old_slug: Mapped[str] = mapped_column(String(80), primary_key=True)
    target_slug: Mapped[str] = mapped_column(String(80), index=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class AppSettingModel(Base):
    """
    Generic key/value settings table.

    Also serves as the slug registry when the profiles schema is not ready:
    ``public_slug:<slug>`` -> {"owner": ...} and ``public_slug_alias:<slug>`` -> {"target": ...}.
    """

    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(String(256), primary_key=True)
    value_json: Mapped[str] = mapped_column("value", Text, default="null")
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def set_value(self, data: Any) -> None:
        self.value_json = json.dumps(data, ensure_ascii=False)

    def get_value(self) -> Any:
        try:
            return json.loads(self.value_json or "null")
        except Exception:
            return None

    def get_dict(self) -> Dict[str, Any]:
        data = self.get_value()
        return data if isinstance(data, dict) else {}
