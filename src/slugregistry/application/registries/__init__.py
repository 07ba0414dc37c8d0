from .backfill import BackfillReport, backfill_fallback_claims
from .slug_registry import SlugRegistry
from .store_router import StoreRouter

__all__ = ["BackfillReport", "backfill_fallback_claims", "SlugRegistry", "StoreRouter"]
