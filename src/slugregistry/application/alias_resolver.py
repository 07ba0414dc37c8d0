from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from slugregistry.application.registries.store_router import StoreRouter
from slugregistry.domain.slug import normalize_slug


@dataclass(frozen=True)
class AliasResolution:
    slug: str
    redirect_to: Optional[str] = None

    @property
    def is_redirect(self) -> bool:
        return self.redirect_to is not None


class AliasResolver:
    """
    Single-hop redirect lookup for public profile paths.

    A renamed slug A -> B -> C still resolves A to B: chains are not followed.
    """

    def __init__(self, router: StoreRouter):
        self._router = router

    def resolve(self, segment: str) -> AliasResolution:
        slug = normalize_slug(segment)
        if not slug:
            return AliasResolution(slug="")
        target = self._router.run("resolve_alias", lambda store: store.alias_target(slug))
        if not target or target == slug:
            return AliasResolution(slug=slug)
        return AliasResolution(slug=slug, redirect_to=target)
