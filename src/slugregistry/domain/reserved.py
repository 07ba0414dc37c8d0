from __future__ import annotations

from typing import Iterable, Optional

from slugregistry.domain.slug import normalize_slug

# Route segments the platform serves itself.
DEFAULT_RESERVED_SLUGS = (
    "admin",
    "api",
    "auth",
    "blog",
    "dashboard",
    "events",
    "forum",
    "instructor",
    "login",
    "logout",
    "me",
    "password-reset",
    "profile",
    "register",
    "settings",
    "static",
    "support",
    "www",
)


class ReservedWords:
    """Denylist of slugs nobody may claim. Entries are normalized and de-duplicated at load."""

    def __init__(self, words: Optional[Iterable[str]] = None):
        if words is None:
            words = DEFAULT_RESERVED_SLUGS
        self._words = frozenset(w for w in (normalize_slug(x) for x in words) if w)

    @classmethod
    def from_csv(cls, raw: Optional[str]) -> "ReservedWords":
        if raw is None:
            return cls()
        return cls(part.strip() for part in raw.split(","))

    def is_reserved(self, slug: str) -> bool:
        candidate = normalize_slug(slug)
        return bool(candidate) and candidate in self._words

    def __contains__(self, slug: object) -> bool:
        return isinstance(slug, str) and self.is_reserved(slug)

    def __len__(self) -> int:
        return len(self._words)

    def __iter__(self):
        return iter(sorted(self._words))
