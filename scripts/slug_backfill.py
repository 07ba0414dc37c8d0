#!/usr/bin/env python3
from __future__ import annotations

import argparse

from slugregistry.application.registries.backfill import backfill_fallback_claims
from slugregistry.infrastructure.stores.profile_slug_store import SqlAlchemyProfileSlugStore
from slugregistry.infrastructure.stores.schema import ensure_profile_slug_schema
from slugregistry.infrastructure.stores.settings_slug_store import KeyValueSlugStore
from slugregistry.infrastructure.stores.sqlalchemy_db import create_db_engine


def main() -> int:
    parser = argparse.ArgumentParser(description="Copy slugs claimed in app_settings into profiles.public_slug.")
    parser.add_argument("--db-url", default=None, help="Override SLUGREG_DB_URL")
    parser.add_argument("--dry-run", action="store_true", help="Report what would be copied without writing")
    args = parser.parse_args()

    engine = create_db_engine(args.db_url)
    ensure_profile_slug_schema(engine)

    primary = SqlAlchemyProfileSlugStore(engine=engine)
    fallback = KeyValueSlugStore(engine=engine, auto_create_schema=False)
    report = backfill_fallback_claims(primary, fallback, dry_run=args.dry_run)

    print(
        f"copied={report.claims_copied} present={report.claims_present} "
        f"conflicts={len(report.conflicts)} "
        f"aliases_copied={report.aliases_copied} dry_run={args.dry_run}"
    )
    for conflict in report.conflicts:
        print(f"conflict: {conflict}")
    return 1 if report.conflicts else 0


if __name__ == "__main__":
    raise SystemExit(main())
