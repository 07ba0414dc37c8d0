from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from sqlalchemy import func, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError, SQLAlchemyError

from slugregistry.core.errors import SchemaNotReadyError, SlugRegistryError, StoreUnavailableError
from slugregistry.domain.slug import ClaimResult, SlugAlias, SlugClaim
from slugregistry.infrastructure.stores.models import ProfileModel, ProfileSlugAliasModel
from slugregistry.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url

logger = logging.getLogger(__name__)

_profiles = ProfileModel.__table__

_SCHEMA_ERROR_MARKERS = (
    "public_slug",
    "profile_slug_aliases",
    "no such column",
    "no such table",
    "undefinedcolumn",
    "undefinedtable",
    "does not exist",
    "unknown column",
)

# one retry after a lost insert race
_CLAIM_ATTEMPTS = 2


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_missing_schema_error(exc: BaseException) -> bool:
    if not isinstance(exc, (OperationalError, ProgrammingError)):
        return False
    msg = str(exc).lower()
    return any(marker in msg for marker in _SCHEMA_ERROR_MARKERS)


class SqlAlchemyProfileSlugStore:
    """
    Primary slug backend: ``profiles.public_slug`` guarded by the unique lower() index.

    - claim(): lock the row holding the slug, then write it onto the owner's row
      (a bare profile row is inserted when the owner has none yet)
    - a unique-index violation is re-read and reported as the same conflict outcome
    - missing column/table errors surface as SchemaNotReadyError for the router
    """

    name = "primary"

    def __init__(self, db_url: Optional[str] = None, *, engine: Optional[Engine] = None):
        self.db_url = db_url or get_db_url()
        self._provider = SessionProvider(self.db_url, engine=engine)

    @property
    def engine(self) -> Engine:
        return self._provider.engine

    @contextmanager
    def _translate_errors(self, op: str) -> Iterator[None]:
        try:
            yield
        except SlugRegistryError:
            raise
        except SQLAlchemyError as e:
            if is_missing_schema_error(e):
                raise SchemaNotReadyError(
                    message=f"profiles slug schema not ready during {op}",
                    context={"op": op, "backend": self.name},
                ) from e
            raise StoreUnavailableError(
                message=f"primary slug store failed during {op}: {e}",
                context={"op": op, "backend": self.name},
            ) from e

    def _holder(self, session, slug: str, *, for_update: bool = False) -> Optional[str]:
        stmt = select(_profiles.c.id).where(func.lower(_profiles.c.public_slug) == slug.lower()).limit(1)
        if for_update:
            stmt = stmt.with_for_update()
        return session.execute(stmt).scalar_one_or_none()

    def _blocked_by_alias(self, session, slug: str, owner: str) -> Optional[ClaimResult]:
        """
        An aliased name stays redirected until the owner of its target claims it back;
        in that case the alias row is dropped in the caller's transaction.
        """
        alias = session.get(ProfileSlugAliasModel, slug, with_for_update=True)
        if alias is None:
            return None
        target_owner = self._holder(session, alias.target_slug)
        if target_owner != owner:
            return ClaimResult.conflict(target_owner)
        session.delete(alias)
        return None

    def _put_alias(self, session, old: str, target: str, now: datetime) -> None:
        row = session.get(ProfileSlugAliasModel, old, with_for_update=True)
        if row is None:
            session.add(ProfileSlugAliasModel(old_slug=old, target_slug=target, updated_at=now))
        else:
            row.target_slug = target
            row.updated_at = now

    def claim(self, slug: str, owner: str) -> ClaimResult:
        return self._write_claim(slug, owner, previous=None, op="claim")

    def move_claim(self, owner: str, previous: Optional[str], slug: str) -> ClaimResult:
        """
        Claim ``slug`` for ``owner`` and, in the same transaction, alias ``previous`` to it.

        The owner's row holds a single slug, so overwriting it frees ``previous``; doing
        that together with the alias write leaves no window in which another owner can
        take the old name and then lose it to the redirect.
        """
        return self._write_claim(slug, owner, previous=previous, op="move_claim")

    def _write_claim(self, slug: str, owner: str, *, previous: Optional[str], op: str) -> ClaimResult:
        slug = slug.lower()
        previous = (previous or "").lower() or None
        with self._translate_errors(op):
            for _ in range(_CLAIM_ATTEMPTS):
                with self._provider.session() as session:
                    holder = self._holder(session, slug, for_update=True)
                    if holder is not None:
                        if holder == owner:
                            return ClaimResult.already_owned()
                        return ClaimResult.conflict(holder)
                    blocked = self._blocked_by_alias(session, slug, owner)
                    if blocked is not None:
                        return blocked

                    current = session.execute(
                        select(_profiles.c.public_slug).where(_profiles.c.id == owner).with_for_update()
                    ).scalar_one_or_none()
                    now = _utcnow()
                    try:
                        result = session.execute(
                            update(_profiles)
                            .where(_profiles.c.id == owner)
                            .values(public_slug=slug, updated_at=now)
                        )
                        if result.rowcount == 0:
                            session.execute(
                                insert(_profiles).values(
                                    id=owner,
                                    public_slug=slug,
                                    public_profile_enabled=False,
                                    created_at=now,
                                    updated_at=now,
                                )
                            )
                        # only a slug this owner still held is redirected
                        if previous and previous != slug and (current or "").lower() == previous:
                            self._put_alias(session, previous, slug, now)
                        session.commit()
                        return ClaimResult.claimed()
                    except IntegrityError:
                        session.rollback()
                        holder = self._holder(session, slug)
                        if holder == owner:
                            return ClaimResult.already_owned()
                        if holder is not None:
                            logger.info("slug %r taken concurrently by %s", slug, holder)
                            return ClaimResult.conflict(holder)
                        # the owner row or alias row was inserted concurrently; retry
            raise StoreUnavailableError(
                message=f"could not claim {slug!r} after {_CLAIM_ATTEMPTS} attempts",
                context={"op": op, "backend": self.name, "slug": slug},
            )

    def release(self, slug: str, owner: Optional[str] = None) -> None:
        if not slug:
            return
        stmt = update(_profiles).where(func.lower(_profiles.c.public_slug) == slug.lower())
        if owner is not None:
            stmt = stmt.where(_profiles.c.id == owner)
        with self._translate_errors("release"), self._provider.session() as session:
            session.execute(stmt.values(public_slug=None, updated_at=_utcnow()))
            session.commit()

    def owner_of(self, slug: str) -> Optional[str]:
        if not slug:
            return None
        with self._translate_errors("owner_of"), self._provider.session() as session:
            return self._holder(session, slug)

    def slug_of(self, owner: str) -> Optional[str]:
        with self._translate_errors("slug_of"), self._provider.session() as session:
            return session.execute(
                select(_profiles.c.public_slug).where(_profiles.c.id == owner)
            ).scalar_one_or_none()

    def set_alias(self, old_slug: str, target_slug: str) -> None:
        old = (old_slug or "").lower()
        target = (target_slug or "").lower()
        if not old or not target or old == target:
            return
        with self._translate_errors("set_alias"):
            for _ in range(_CLAIM_ATTEMPTS):
                with self._provider.session() as session:
                    self._put_alias(session, old, target, _utcnow())
                    try:
                        session.commit()
                        return
                    except IntegrityError:
                        # concurrent insert of the same alias; next pass updates it
                        session.rollback()
            raise StoreUnavailableError(
                message=f"could not write alias {old!r} -> {target!r}",
                context={"op": "set_alias", "backend": self.name},
            )

    def alias_target(self, slug: str) -> Optional[str]:
        if not slug:
            return None
        with self._translate_errors("alias_target"), self._provider.session() as session:
            row = session.get(ProfileSlugAliasModel, slug.lower())
            return row.target_slug if row else None

    def list_claims(self) -> List[SlugClaim]:
        with self._translate_errors("list_claims"), self._provider.session() as session:
            rows = session.execute(
                select(_profiles.c.id, _profiles.c.public_slug)
                .where(_profiles.c.public_slug.isnot(None))
                .order_by(_profiles.c.public_slug)
            ).all()
            return [SlugClaim(slug=r.public_slug, owner=r.id) for r in rows]

    def list_aliases(self) -> List[SlugAlias]:
        with self._translate_errors("list_aliases"), self._provider.session() as session:
            rows = session.execute(select(ProfileSlugAliasModel).order_by(ProfileSlugAliasModel.old_slug)).scalars()
            return [SlugAlias(old_slug=r.old_slug, target_slug=r.target_slug) for r in rows]
