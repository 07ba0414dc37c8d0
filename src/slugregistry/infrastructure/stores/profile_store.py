from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from slugregistry.core.errors import DuplicateProfileError
from slugregistry.infrastructure.stores.models import Base, ProfileModel
from slugregistry.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url

_profiles = ProfileModel.__table__

# public_slug is deliberately absent: it may not exist yet and is resolved by the registry
_PROFILE_COLUMNS = (
    _profiles.c.id,
    _profiles.c.email,
    _profiles.c.full_name,
    _profiles.c.public_profile_enabled,
    _profiles.c.created_at,
    _profiles.c.updated_at,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SqlAlchemyProfileStore:
    """Owner records. Slug fields are never read or written here."""

    def __init__(
        self,
        db_url: Optional[str] = None,
        *,
        engine: Optional[Engine] = None,
        auto_create_schema: bool = True,
    ):
        self.db_url = db_url or get_db_url()
        self._provider = SessionProvider(self.db_url, engine=engine)
        if auto_create_schema:
            # Safety net for local dev. In production, prefer Alembic migrations.
            Base.metadata.create_all(self._provider.engine)

    def create_profile(
        self,
        *,
        email: Optional[str],
        full_name: Optional[str] = None,
        profile_id: Optional[str] = None,
        public_profile_enabled: bool = False,
    ) -> Dict[str, Any]:
        now = _utcnow()
        values = {
            "id": profile_id or str(uuid.uuid4()),
            "email": (email or "").strip().lower() or None,
            "full_name": (full_name or "").strip() or None,
            "public_profile_enabled": public_profile_enabled,
            "created_at": now,
            "updated_at": now,
        }
        with self._provider.session() as session:
            try:
                session.execute(insert(_profiles).values(**values))
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise DuplicateProfileError(
                    message="email already registered",
                    context={"email": values["email"]},
                ) from e
        return dict(values)

    def get_profile(self, profile_id: str) -> Optional[Dict[str, Any]]:
        with self._provider.session() as session:
            row = session.execute(select(*_PROFILE_COLUMNS).where(_profiles.c.id == profile_id)).first()
            return dict(row._mapping) if row else None

    def set_public_profile_enabled(self, profile_id: str, enabled: bool) -> bool:
        with self._provider.session() as session:
            result = session.execute(
                update(_profiles)
                .where(_profiles.c.id == profile_id)
                .values(public_profile_enabled=enabled, updated_at=_utcnow())
            )
            session.commit()
            return result.rowcount > 0
