from .reserved import DEFAULT_RESERVED_SLUGS, ReservedWords
from .slug import (
    MAX_SLUG_LENGTH,
    ClaimResult,
    RenameOutcome,
    SlugAlias,
    SlugAvailability,
    SlugClaim,
    normalize_slug,
    with_suffix,
)

__all__ = [
    "DEFAULT_RESERVED_SLUGS",
    "ReservedWords",
    "MAX_SLUG_LENGTH",
    "ClaimResult",
    "RenameOutcome",
    "SlugAlias",
    "SlugAvailability",
    "SlugClaim",
    "normalize_slug",
    "with_suffix",
]
