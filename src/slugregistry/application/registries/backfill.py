from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from slugregistry.application.ports.slug_store_port import SlugStorePort
from slugregistry.domain.slug import SlugClaim

logger = logging.getLogger(__name__)


@dataclass
class BackfillReport:
    claims_copied: int = 0
    claims_present: int = 0
    aliases_copied: int = 0
    conflicts: List[Dict[str, Any]] = field(default_factory=list)
    dry_run: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "claims_copied": self.claims_copied,
            "claims_present": self.claims_present,
            "aliases_copied": self.aliases_copied,
            "conflicts": list(self.conflicts),
            "dry_run": self.dry_run,
        }


def backfill_fallback_claims(
    primary: SlugStorePort,
    fallback: SlugStorePort,
    *,
    dry_run: bool = False,
) -> BackfillReport:
    """
    Copy claims and aliases written to the fallback store while the primary schema was
    missing. Primary claims always win; clashing fallback claims are reported, never
    overwritten. The fallback rows are left in place.
    """
    report = BackfillReport(dry_run=dry_run)

    # newest claim per owner wins, matching KeyValueSlugStore.slug_of
    latest: Dict[str, SlugClaim] = {}
    for claim in fallback.list_claims():
        latest[claim.owner] = claim

    for claim in latest.values():
        holder = primary.owner_of(claim.slug)
        if holder == claim.owner:
            report.claims_present += 1
            continue
        if holder is not None:
            report.conflicts.append({"slug": claim.slug, "owner": claim.owner, "primary_owner": holder})
            continue
        if primary.slug_of(claim.owner):
            # owner already re-registered a slug on the primary
            report.conflicts.append({"slug": claim.slug, "owner": claim.owner, "primary_owner": None})
            continue
        if dry_run:
            report.claims_copied += 1
            continue
        result = primary.claim(claim.slug, claim.owner)
        if result.ok:
            report.claims_copied += 1
        else:
            report.conflicts.append(
                {"slug": claim.slug, "owner": claim.owner, "primary_owner": result.conflict_owner}
            )

    for alias in fallback.list_aliases():
        if primary.alias_target(alias.old_slug) is not None or primary.owner_of(alias.old_slug) is not None:
            continue
        if not dry_run:
            primary.set_alias(alias.old_slug, alias.target_slug)
        report.aliases_copied += 1

    if report.conflicts:
        logger.warning("slug backfill left %d conflicts unresolved", len(report.conflicts))
    logger.info("slug backfill finished: %s", report.to_dict())
    return report
