from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from slugregistry.domain.slug import ClaimResult, SlugAlias, SlugClaim


@runtime_checkable
class SlugStorePort(Protocol):
    """
    Storage contract shared by the relational (primary) and key/value (fallback) backends.

    Every method must be safe under concurrent callers. Slugs passed in are already
    normalized; lookups are case-insensitive regardless.
    """

    name: str

    def claim(self, slug: str, owner: str) -> ClaimResult:
        """Atomically bind ``slug`` to ``owner``; never overwrites another owner's claim.

        An aliased ``slug`` is refused unless ``owner`` holds the alias target, in which
        case the alias is dropped as part of the claim.
        """

    def move_claim(self, owner: str, previous: Optional[str], slug: str) -> ClaimResult:
        """Claim ``slug`` for ``owner`` and redirect ``previous`` to it, freeing ``previous``.

        ``previous`` is only aliased and released while ``owner`` still holds it.
        """

    def release(self, slug: str, owner: Optional[str] = None) -> None:
        """Remove the claim on ``slug``; with ``owner``, only if that owner holds it. No-op if absent."""

    def owner_of(self, slug: str) -> Optional[str]:
        """Owner currently holding ``slug``."""

    def slug_of(self, owner: str) -> Optional[str]:
        """Slug currently held by ``owner``."""

    def set_alias(self, old_slug: str, target_slug: str) -> None:
        """Upsert a single-hop redirect; no-op when equal or either side is empty."""

    def alias_target(self, slug: str) -> Optional[str]:
        """Redirect target for ``slug`` (one hop only)."""

    def list_claims(self) -> List[SlugClaim]:
        """All claims held by this backend."""

    def list_aliases(self) -> List[SlugAlias]:
        """All redirects held by this backend."""
