"""
Slug value types and the canonical normalizer.

A slug is the lower-cased, URL-safe public name of a profile. Every entry point
(registration seed, rename request, availability check, public path segment) goes
through ``normalize_slug`` so stores only ever see canonical values.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

MAX_SLUG_LENGTH = 80

_SEPARATORS = re.compile(r"[@._]")
_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^a-z0-9-]")
_DASH_RUNS = re.compile(r"-+")


def normalize_slug(text: Any) -> str:
    """Return the canonical slug for ``text`` or ``""`` if nothing survives."""
    if not isinstance(text, str):
        return ""
    value = text.lower().strip()
    value = _SEPARATORS.sub("-", value)
    value = _WHITESPACE.sub("-", value)
    value = _DISALLOWED.sub("", value)
    value = _DASH_RUNS.sub("-", value)
    value = value.strip("-")
    # truncation can expose a trailing dash
    return value[:MAX_SLUG_LENGTH].rstrip("-")


def with_suffix(base: str, attempt: int) -> str:
    """``base`` for the first attempt, then ``base-2``, ``base-3`` ... within the length cap."""
    if attempt <= 1:
        return base[:MAX_SLUG_LENGTH]
    suffix = f"-{attempt}"
    head = base[: MAX_SLUG_LENGTH - len(suffix)].rstrip("-")
    return f"{head}{suffix}" if head else str(attempt)


@dataclass(frozen=True)
class SlugClaim:
    slug: str
    owner: str


@dataclass(frozen=True)
class SlugAlias:
    old_slug: str
    target_slug: str


@dataclass(frozen=True)
class ClaimResult:
    """Outcome of a store-level claim; ``conflict_owner`` is set only when ``ok`` is False."""

    ok: bool
    created: bool = False
    conflict_owner: Optional[str] = None

    @classmethod
    def claimed(cls) -> "ClaimResult":
        return cls(ok=True, created=True)

    @classmethod
    def already_owned(cls) -> "ClaimResult":
        return cls(ok=True, created=False)

    @classmethod
    def conflict(cls, owner: Optional[str]) -> "ClaimResult":
        return cls(ok=False, created=False, conflict_owner=owner)


@dataclass
class SlugAvailability:
    slug: str
    available: bool
    reserved: bool = False
    mine: bool = False
    alias_to: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"available": self.available}
        if self.reserved:
            data["reserved"] = True
        if self.alias_to:
            data["aliasTo"] = self.alias_to
        if not self.reserved and not self.alias_to:
            data["mine"] = self.mine
        return data


@dataclass
class RenameOutcome:
    slug: str
    previous_slug: Optional[str] = None
    unchanged: bool = False
    backend: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)
