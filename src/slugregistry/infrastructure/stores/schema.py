"""
Schema capability probing for the profiles slug column.

The primary store is usable only when ``profiles.public_slug``, its unique lower()
index and the ``profile_slug_aliases`` table all exist. ``CapabilityDetector`` probes
that at startup, exposes the latest snapshot, and can run the idempotent ensure DDL
when an operation trips over a missing column.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable, Optional

import sqlalchemy as sa
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from slugregistry.infrastructure.stores.models import (
    AppSettingModel,
    PROFILE_SLUG_INDEX,
    ProfileModel,
    ProfileSlugAliasModel,
    profile_slug_index,
)

logger = logging.getLogger(__name__)

PROFILES_TABLE = ProfileModel.__tablename__
ALIAS_TABLE = ProfileSlugAliasModel.__tablename__
SLUG_COLUMN = "public_slug"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Capabilities:
    has_profiles_table: bool = False
    has_slug_column: bool = False
    has_slug_index: bool = False
    has_alias_table: bool = False
    probed_at: datetime = field(default_factory=_utcnow)

    @property
    def primary_ready(self) -> bool:
        return self.has_profiles_table and self.has_slug_column and self.has_slug_index and self.has_alias_table

    @classmethod
    def ready(cls) -> "Capabilities":
        return cls(has_profiles_table=True, has_slug_column=True, has_slug_index=True, has_alias_table=True)

    @classmethod
    def degraded(cls) -> "Capabilities":
        return cls(has_profiles_table=True)

    def to_dict(self) -> dict:
        return {
            "primary_ready": self.primary_ready,
            "has_profiles_table": self.has_profiles_table,
            "has_slug_column": self.has_slug_column,
            "has_slug_index": self.has_slug_index,
            "has_alias_table": self.has_alias_table,
            "probed_at": self.probed_at.isoformat(),
        }


def _has_index(conn: Connection, table: str, name: str) -> bool:
    dialect = conn.dialect.name
    if dialect == "sqlite":
        row = conn.execute(
            sa.text("SELECT 1 FROM sqlite_master WHERE type = 'index' AND name = :name"),
            {"name": name},
        ).first()
        return row is not None
    if dialect == "postgresql":
        row = conn.execute(sa.text("SELECT 1 FROM pg_indexes WHERE indexname = :name"), {"name": name}).first()
        return row is not None
    return name in {str(i.get("name") or "") for i in sa.inspect(conn).get_indexes(table)}


def probe_capabilities(engine: Engine) -> Capabilities:
    with engine.connect() as conn:
        insp = sa.inspect(conn)
        if not insp.has_table(PROFILES_TABLE):
            return Capabilities(has_alias_table=insp.has_table(ALIAS_TABLE))
        columns = {c["name"] for c in insp.get_columns(PROFILES_TABLE)}
        return Capabilities(
            has_profiles_table=True,
            has_slug_column=SLUG_COLUMN in columns,
            has_slug_index=_has_index(conn, PROFILES_TABLE, PROFILE_SLUG_INDEX),
            has_alias_table=insp.has_table(ALIAS_TABLE),
        )


def ensure_profile_slug_schema(engine: Engine) -> None:
    """Idempotent DDL bringing the primary slug schema up to date. Raises on failure."""
    with engine.begin() as conn:
        insp = sa.inspect(conn)
        if not insp.has_table(PROFILES_TABLE):
            ProfileModel.__table__.create(conn, checkfirst=True)
        else:
            columns = {c["name"] for c in insp.get_columns(PROFILES_TABLE)}
            if SLUG_COLUMN not in columns:
                conn.exec_driver_sql(f"ALTER TABLE {PROFILES_TABLE} ADD COLUMN {SLUG_COLUMN} VARCHAR(80)")
        if not _has_index(conn, PROFILES_TABLE, PROFILE_SLUG_INDEX):
            profile_slug_index.create(conn)
        ProfileSlugAliasModel.__table__.create(conn, checkfirst=True)
        AppSettingModel.__table__.create(conn, checkfirst=True)


class CapabilityDetector:
    """
    Process-wide view of which slug backend is authoritative.

    Callers read ``current()`` once per operation. ``ensure_schema()`` is serialized and,
    after a failed attempt, not retried until the cooldown has elapsed.
    """

    def __init__(
        self,
        engine: Optional[Engine],
        *,
        auto_ensure: bool = True,
        ensure_cooldown_seconds: float = 60.0,
        initial: Optional[Capabilities] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._engine = engine
        self._auto_ensure = auto_ensure and engine is not None
        self._cooldown = ensure_cooldown_seconds
        self._clock = clock
        self._current = initial
        self._lock = threading.Lock()
        self._last_failed_ensure: Optional[float] = None

    @classmethod
    def fixed(cls, capabilities: Capabilities) -> "CapabilityDetector":
        """Detector pinned to ``capabilities``; never probes or runs DDL."""
        return cls(None, auto_ensure=False, initial=capabilities)

    @property
    def auto_ensure(self) -> bool:
        return self._auto_ensure

    def probe(self) -> Capabilities:
        if self._engine is None:
            return self.current()
        try:
            caps = probe_capabilities(self._engine)
        except SQLAlchemyError as e:
            logger.warning("slug schema probe failed: %s", e)
            caps = Capabilities()
        self._current = caps
        if not caps.primary_ready:
            logger.warning("SchemaDegraded: profiles slug schema not ready %s", caps.to_dict())
        return caps

    def current(self) -> Capabilities:
        caps = self._current
        if caps is None:
            if self._engine is None:
                caps = Capabilities()
                self._current = caps
                return caps
            return self.probe()
        return caps

    def primary_ready(self) -> bool:
        return self.current().primary_ready

    def mark_degraded(self) -> None:
        """Record that the primary reported a missing column despite a ready snapshot."""
        caps = self.current()
        if caps.primary_ready:
            self._current = replace(caps, has_slug_column=False, probed_at=_utcnow())

    def can_attempt_ensure(self) -> bool:
        if not self._auto_ensure:
            return False
        if self._last_failed_ensure is None:
            return True
        return (self._clock() - self._last_failed_ensure) >= self._cooldown

    def ensure_schema(self) -> bool:
        """Run the ensure DDL once (if allowed) and re-probe. Returns primary readiness."""
        if not self.can_attempt_ensure():
            return self.current().primary_ready
        with self._lock:
            # another thread may have finished the upgrade while we waited
            caps = self.probe()
            if caps.primary_ready:
                return True
            if not self.can_attempt_ensure():
                return False
            engine = self._engine
            if engine is None:
                return False
            try:
                ensure_profile_slug_schema(engine)
            except SQLAlchemyError as e:
                self._last_failed_ensure = self._clock()
                logger.warning("slug schema ensure failed: %s", e)
                return False
            caps = self.probe()
            if caps.primary_ready:
                logger.info("slug schema ensured; primary store is authoritative")
                self._last_failed_ensure = None
            else:
                self._last_failed_ensure = self._clock()
            return caps.primary_ready
