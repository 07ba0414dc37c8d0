"""
Slug registry: claim, rename, release and availability for profile slugs.

All storage goes through ``StoreRouter`` so every operation runs entirely on
whichever backend is authoritative for that call.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy.engine import Engine

from slugregistry.application.ports.slug_store_port import SlugStorePort
from slugregistry.application.registries.store_router import StoreRouter
from slugregistry.config.settings import Settings
from slugregistry.core.errors import (
    InvalidSlugError,
    ReservedSlugError,
    Result,
    SlugConflictError,
    StoreUnavailableError,
)
from slugregistry.domain.reserved import ReservedWords
from slugregistry.domain.slug import RenameOutcome, SlugAvailability, normalize_slug, with_suffix

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 20


def _registration_base(owner: str, seed_text: str, email: Optional[str] = None) -> str:
    local = normalize_slug((email or seed_text or "").split("@", 1)[0])
    if not local:
        local = "".join(ch for ch in str(owner).lower() if ch.isalnum())[:8]
    return normalize_slug(f"user-{local}")


class SlugRegistry:
    def __init__(
        self,
        router: StoreRouter,
        reserved: Optional[ReservedWords] = None,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        self.router = router
        self.reserved = reserved if reserved is not None else ReservedWords()
        self.max_attempts = max_attempts

    @classmethod
    def from_settings(cls, settings: Settings, engine: Optional[Engine] = None) -> "SlugRegistry":
        from slugregistry.infrastructure.stores.profile_slug_store import SqlAlchemyProfileSlugStore
        from slugregistry.infrastructure.stores.schema import CapabilityDetector
        from slugregistry.infrastructure.stores.settings_slug_store import KeyValueSlugStore
        from slugregistry.infrastructure.stores.sqlalchemy_db import create_db_engine

        if engine is None:
            engine = create_db_engine(
                settings.database.url, timeout=settings.database.timeout, echo=settings.database.echo
            )
        detector = CapabilityDetector(
            engine,
            auto_ensure=settings.slugs.schema_auto_ensure,
            ensure_cooldown_seconds=settings.slugs.ensure_cooldown_seconds,
        )
        detector.probe()
        router = StoreRouter(
            detector,
            primary=SqlAlchemyProfileSlugStore(settings.database.url, engine=engine),
            fallback=KeyValueSlugStore(settings.database.url, engine=engine),
        )
        return cls(
            router,
            ReservedWords(settings.slugs.reserved),
            max_attempts=settings.slugs.max_suffix_attempts,
        )

    # ---- registration ----

    def assign_on_registration(self, owner: str, seed_text: str, *, email: Optional[str] = None) -> Optional[str]:
        """
        Claim a slug for a freshly registered owner.

        Returns None when every candidate is taken or the store is down; registration
        proceeds without a slug in that case.
        """
        base = normalize_slug(seed_text)
        if not base or self.reserved.is_reserved(base):
            base = _registration_base(owner, seed_text, email)

        try:
            return self.router.run("assign", lambda store: self._assign_on(store, owner, base))
        except StoreUnavailableError as e:
            logger.warning("slug assignment skipped for %s: %s", owner, e)
            return None

    def _assign_on(self, store: SlugStorePort, owner: str, base: str) -> Optional[str]:
        for attempt in range(1, self.max_attempts + 1):
            candidate = with_suffix(base, attempt)
            # aliased names keep redirecting to their renamed owner
            if self.reserved.is_reserved(candidate) or store.alias_target(candidate):
                continue
            if store.claim(candidate, owner).ok:
                return candidate
        logger.warning("slug assignment exhausted %d attempts for %s (base=%r)", self.max_attempts, owner, base)
        return None

    # ---- availability ----

    def check_availability(self, candidate_text: str, requester: Optional[str] = None) -> SlugAvailability:
        slug = normalize_slug(candidate_text)
        if not slug:
            raise InvalidSlugError(message="invalid slug", context={"input": candidate_text})
        if self.reserved.is_reserved(slug):
            return SlugAvailability(slug=slug, available=False, reserved=True)
        return self.router.run("check_availability", lambda store: self._availability_on(store, slug, requester))

    def _availability_on(self, store: SlugStorePort, slug: str, requester: Optional[str]) -> SlugAvailability:
        alias_to = store.alias_target(slug)
        if alias_to:
            return SlugAvailability(slug=slug, available=False, alias_to=alias_to)
        owner = store.owner_of(slug)
        if owner is None:
            return SlugAvailability(slug=slug, available=True)
        return SlugAvailability(slug=slug, available=False, mine=requester is not None and owner == requester)

    # ---- rename / clear ----

    def rename(self, owner: str, new_candidate_text: str) -> Result[RenameOutcome, SlugConflictError]:
        slug = normalize_slug(new_candidate_text)
        if not slug:
            raise InvalidSlugError(message="invalid slug", context={"input": new_candidate_text})
        if self.reserved.is_reserved(slug):
            raise ReservedSlugError(message=f"slug {slug!r} is reserved", context={"slug": slug})
        return self.router.run("rename", lambda store: self._rename_on(store, owner, slug))

    def _rename_on(self, store: SlugStorePort, owner: str, slug: str) -> Result[RenameOutcome, SlugConflictError]:
        previous = store.slug_of(owner)
        if previous and previous.lower() == slug:
            return Result.ok(RenameOutcome(slug=previous, previous_slug=previous, unchanged=True, backend=store.name))

        # an alias on the new name blocks everyone but the owner of its target
        claim = store.move_claim(owner, previous, slug)
        if not claim.ok:
            return Result.err(self._conflict(slug, claim.conflict_owner))
        logger.info("slug renamed for %s: %r -> %r (%s)", owner, previous, slug, store.name)
        return Result.ok(RenameOutcome(slug=slug, previous_slug=previous, backend=store.name))

    @staticmethod
    def _conflict(slug: str, current_owner: Optional[str]) -> SlugConflictError:
        return SlugConflictError(
            message="public_slug conflict",
            context={"slug": slug, "current_owner": current_owner},
        )

    def clear(self, owner: str) -> Optional[str]:
        """Release the owner's slug without leaving an alias. Returns the released slug."""
        return self.router.run("clear", lambda store: self._clear_on(store, owner))

    @staticmethod
    def _clear_on(store: SlugStorePort, owner: str) -> Optional[str]:
        previous = store.slug_of(owner)
        if previous:
            store.release(previous, owner=owner)
        return previous

    # ---- reads ----

    def owner_of(self, slug_text: str) -> Optional[str]:
        slug = normalize_slug(slug_text)
        if not slug:
            return None
        return self.router.run("owner_of", lambda store: store.owner_of(slug))

    def slug_of(self, owner: str) -> Optional[str]:
        return self.router.run("slug_of", lambda store: store.slug_of(owner))

    def alias_target(self, slug_text: str) -> Optional[str]:
        slug = normalize_slug(slug_text)
        if not slug:
            return None
        return self.router.run("alias_target", lambda store: store.alias_target(slug))

    def annotate(self, profile: Dict[str, Any]) -> Dict[str, Any]:
        """Copy of ``profile`` carrying ``public_slug`` from whichever backend serves the call."""
        data = dict(profile)
        owner = data.get("id")
        data["public_slug"] = self.slug_of(str(owner)) if owner else None
        return data
