from __future__ import annotations

import logging
from typing import Callable, TypeVar

from slugregistry.application.ports.slug_store_port import SlugStorePort
from slugregistry.core.errors import SchemaNotReadyError, StoreUnavailableError
from slugregistry.infrastructure.stores.schema import CapabilityDetector

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreRouter:
    """
    Picks the authoritative slug backend for one registry operation.

    Degradation rule, applied to the whole operation:
    1. capabilities ready -> run on primary
    2. primary reports a missing column/table -> ensure schema once, retry primary
    3. ensure unavailable or still missing -> re-run the operation on the fallback

    When the snapshot already says "not ready", one ensure attempt (subject to the
    detector's cooldown) is made before using the fallback.
    """

    def __init__(self, detector: CapabilityDetector, primary: SlugStorePort, fallback: SlugStorePort):
        self.detector = detector
        self.primary = primary
        self.fallback = fallback

    def run(self, op: str, fn: Callable[[SlugStorePort], T]) -> T:
        caps = self.detector.current()
        if caps.primary_ready or self.detector.ensure_schema():
            try:
                return fn(self.primary)
            except SchemaNotReadyError as e:
                logger.warning("SchemaDegraded: %s on primary: %s", op, e.message)
                self.detector.mark_degraded()
                if self.detector.ensure_schema():
                    try:
                        return fn(self.primary)
                    except SchemaNotReadyError as retry_error:
                        logger.warning("SchemaDegraded: %s still failing after ensure: %s", op, retry_error.message)
                        self.detector.mark_degraded()
        return self._run_fallback(op, fn)

    def _run_fallback(self, op: str, fn: Callable[[SlugStorePort], T]) -> T:
        logger.info("SchemaDegraded: serving %s from %s store", op, self.fallback.name)
        try:
            return fn(self.fallback)
        except SchemaNotReadyError as e:
            raise StoreUnavailableError(
                message=f"no slug store available for {op}",
                context={"op": op},
            ) from e
