from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Tuple

from sqlalchemy import desc, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from slugregistry.core.errors import SlugRegistryError, StoreUnavailableError
from slugregistry.domain.slug import ClaimResult, SlugAlias, SlugClaim
from slugregistry.infrastructure.stores.models import ALIAS_KEY_PREFIX, SLUG_KEY_PREFIX, AppSettingModel
from slugregistry.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url

logger = logging.getLogger(__name__)

_WRITE_ATTEMPTS = 2


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def slug_key(slug: str) -> str:
    return f"{SLUG_KEY_PREFIX}{slug.lower()}"


def alias_key(slug: str) -> str:
    return f"{ALIAS_KEY_PREFIX}{slug.lower()}"


class KeyLocks:
    """Per-key mutexes; entries are dropped once no thread holds or waits on them."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, Tuple[threading.Lock, int]] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock, waiters = self._locks.get(key, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[key] = (lock, waiters + 1)
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                _, waiters = self._locks[key]
                if waiters <= 1:
                    del self._locks[key]
                else:
                    self._locks[key] = (lock, waiters - 1)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class KeyValueSlugStore:
    """
    Fallback slug backend on the generic ``app_settings`` key/value table.

    The table has no slug index, so uniqueness is enforced here: ``claim`` holds the
    key's lock (in-process mutex plus SELECT ... FOR UPDATE) for the whole
    check-and-set, and a lost insert race on the key is re-read, never overwritten.
    """

    name = "fallback"

    def __init__(
        self,
        db_url: Optional[str] = None,
        *,
        engine: Optional[Engine] = None,
        auto_create_schema: bool = True,
    ):
        self.db_url = db_url or get_db_url()
        self._provider = SessionProvider(self.db_url, engine=engine)
        self._locks = KeyLocks()
        if auto_create_schema:
            AppSettingModel.__table__.create(self._provider.engine, checkfirst=True)

    @contextmanager
    def _translate_errors(self, op: str) -> Iterator[None]:
        try:
            yield
        except SlugRegistryError:
            raise
        except SQLAlchemyError as e:
            raise StoreUnavailableError(
                message=f"fallback slug store failed during {op}: {e}",
                context={"op": op, "backend": self.name},
            ) from e

    def _get(self, session, key: str, *, for_update: bool = False) -> Optional[AppSettingModel]:
        stmt = select(AppSettingModel).where(AppSettingModel.key == key)
        if for_update:
            stmt = stmt.with_for_update()
        return session.execute(stmt).scalar_one_or_none()

    def _upsert(self, key: str, value: dict, *, op: str) -> None:
        with self._translate_errors(op), self._locks.hold(key):
            for _ in range(_WRITE_ATTEMPTS):
                with self._provider.session() as session:
                    row = self._get(session, key, for_update=True)
                    if row is None:
                        row = AppSettingModel(key=key)
                        session.add(row)
                    row.set_value(value)
                    row.updated_at = _utcnow()
                    try:
                        session.commit()
                        return
                    except IntegrityError:
                        session.rollback()
            raise StoreUnavailableError(message=f"could not write {key!r}", context={"op": op, "backend": self.name})

    def _owner_in(self, session, slug: str) -> Optional[str]:
        row = self._get(session, slug_key(slug))
        if row is None:
            return None
        holder = row.get_dict().get("owner")
        return str(holder) if holder else None

    def _blocked_by_alias(self, session, slug: str, owner: str) -> Optional[ClaimResult]:
        row = self._get(session, alias_key(slug), for_update=True)
        if row is None:
            return None
        target = row.get_dict().get("target")
        if target:
            target_owner = self._owner_in(session, str(target))
            if target_owner != owner:
                return ClaimResult.conflict(target_owner)
        # the target's owner is taking the old name back
        session.delete(row)
        return None

    def claim(self, slug: str, owner: str) -> ClaimResult:
        key = slug_key(slug)
        with self._translate_errors("claim"), self._locks.hold(key):
            for _ in range(_WRITE_ATTEMPTS):
                with self._provider.session() as session:
                    row = self._get(session, key, for_update=True)
                    if row is not None:
                        holder = row.get_dict().get("owner")
                        if holder == owner:
                            return ClaimResult.already_owned()
                        if holder:
                            return ClaimResult.conflict(str(holder))
                    blocked = self._blocked_by_alias(session, slug, owner)
                    if blocked is not None:
                        return blocked

                    now = _utcnow()
                    # a row without an owner is not a claim and is taken over
                    if row is None:
                        row = AppSettingModel(key=key)
                        session.add(row)
                    row.set_value({"owner": owner, "claimed_at": now.isoformat()})
                    row.updated_at = now
                    try:
                        session.commit()
                        return ClaimResult.claimed()
                    except IntegrityError:
                        # another process inserted the key first; re-read on the next pass
                        session.rollback()
            raise StoreUnavailableError(
                message=f"could not claim {slug!r} after {_WRITE_ATTEMPTS} attempts",
                context={"op": "claim", "backend": self.name, "slug": slug},
            )

    def move_claim(self, owner: str, previous: Optional[str], slug: str) -> ClaimResult:
        """
        Claim ``slug``, then alias ``previous`` to it, then free ``previous``.

        ``previous`` stays claimed by ``owner`` until the alias exists, so no other
        owner can take it in between; the final release is owner-guarded.
        """
        result = self.claim(slug, owner)
        if not result.ok:
            return result
        previous = (previous or "").lower()
        if previous and previous != slug.lower() and self.owner_of(previous) == owner:
            self.set_alias(previous, slug)
            self.release(previous, owner=owner)
        return result

    def release(self, slug: str, owner: Optional[str] = None) -> None:
        if not slug:
            return
        key = slug_key(slug)
        with self._translate_errors("release"), self._locks.hold(key), self._provider.session() as session:
            row = self._get(session, key, for_update=True)
            if row is None:
                return
            if owner is not None and row.get_dict().get("owner") != owner:
                return
            session.delete(row)
            session.commit()

    def owner_of(self, slug: str) -> Optional[str]:
        if not slug:
            return None
        with self._translate_errors("owner_of"), self._provider.session() as session:
            return self._owner_in(session, slug)

    def slug_of(self, owner: str) -> Optional[str]:
        with self._translate_errors("slug_of"), self._provider.session() as session:
            rows = session.execute(
                select(AppSettingModel)
                .where(AppSettingModel.key.startswith(SLUG_KEY_PREFIX, autoescape=True))
                .order_by(desc(AppSettingModel.updated_at))
            ).scalars()
            for row in rows:
                if row.get_dict().get("owner") == owner:
                    return row.key[len(SLUG_KEY_PREFIX):]
            return None

    def set_alias(self, old_slug: str, target_slug: str) -> None:
        old = (old_slug or "").lower()
        target = (target_slug or "").lower()
        if not old or not target or old == target:
            return
        self._upsert(alias_key(old), {"target": target}, op="set_alias")

    def alias_target(self, slug: str) -> Optional[str]:
        if not slug:
            return None
        with self._translate_errors("alias_target"), self._provider.session() as session:
            row = self._get(session, alias_key(slug))
            if row is None:
                return None
            target = row.get_dict().get("target")
            return str(target) if target else None

    def list_claims(self) -> List[SlugClaim]:
        with self._translate_errors("list_claims"), self._provider.session() as session:
            rows = session.execute(
                select(AppSettingModel)
                .where(AppSettingModel.key.startswith(SLUG_KEY_PREFIX, autoescape=True))
                .order_by(AppSettingModel.updated_at)
            ).scalars()
            claims = []
            for row in rows:
                holder = row.get_dict().get("owner")
                if holder:
                    claims.append(SlugClaim(slug=row.key[len(SLUG_KEY_PREFIX):], owner=str(holder)))
            return claims

    def list_aliases(self) -> List[SlugAlias]:
        with self._translate_errors("list_aliases"), self._provider.session() as session:
            rows = session.execute(
                select(AppSettingModel)
                .where(AppSettingModel.key.startswith(ALIAS_KEY_PREFIX, autoescape=True))
                .order_by(AppSettingModel.key)
            ).scalars()
            aliases = []
            for row in rows:
                target = row.get_dict().get("target")
                if target:
                    aliases.append(SlugAlias(old_slug=row.key[len(ALIAS_KEY_PREFIX):], target_slug=str(target)))
            return aliases
