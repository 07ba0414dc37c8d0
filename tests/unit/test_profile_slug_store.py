from __future__ import annotations

import pytest
import sqlalchemy as sa

from slugregistry.core.errors import SchemaNotReadyError
from slugregistry.infrastructure.stores.profile_slug_store import SqlAlchemyProfileSlugStore, is_missing_schema_error
from slugregistry.infrastructure.stores.profile_store import SqlAlchemyProfileStore


def _slug_rows(engine, slug):
    with engine.connect() as conn:
        return conn.execute(
            sa.text("SELECT id FROM profiles WHERE lower(public_slug) = :s"), {"s": slug.lower()}
        ).all()


def test_claim_is_idempotent_for_same_owner(ready_engine):
    store = SqlAlchemyProfileSlugStore(engine=ready_engine)

    first = store.claim("ann", "u1")
    second = store.claim("ann", "u1")

    assert first.ok and first.created
    assert second.ok and not second.created
    assert len(_slug_rows(ready_engine, "ann")) == 1


def test_claim_conflict_reports_holder(ready_engine):
    store = SqlAlchemyProfileSlugStore(engine=ready_engine)
    store.claim("ann", "u1")

    result = store.claim("ANN", "u2")

    assert not result.ok
    assert result.conflict_owner == "u1"
    assert store.slug_of("u2") is None


def test_claim_updates_existing_profile_row(ready_engine):
    profiles = SqlAlchemyProfileStore(engine=ready_engine)
    profile = profiles.create_profile(email="ann@example.com", full_name="Ann")
    store = SqlAlchemyProfileSlugStore(engine=ready_engine)

    assert store.claim("ann", profile["id"]).ok
    assert store.claim("annie", profile["id"]).ok

    assert store.slug_of(profile["id"]) == "annie"
    assert store.owner_of("ann") is None
    assert profiles.get_profile(profile["id"])["email"] == "ann@example.com"


def test_unique_index_rejects_case_variants(ready_engine):
    store = SqlAlchemyProfileSlugStore(engine=ready_engine)
    store.claim("ann", "u1")
    with pytest.raises(sa.exc.IntegrityError):
        with ready_engine.begin() as conn:
            conn.execute(
                sa.text("INSERT INTO profiles (id, public_profile_enabled, public_slug) VALUES ('u2', 0, 'ANN')")
            )


def test_release_and_lookup(ready_engine):
    store = SqlAlchemyProfileSlugStore(engine=ready_engine)
    store.claim("ann", "u1")
    assert store.owner_of("Ann") == "u1"

    store.release("ann")

    assert store.owner_of("ann") is None
    assert store.slug_of("u1") is None
    assert store.owner_of("") is None


def test_release_with_owner_keeps_another_owners_claim(ready_engine):
    store = SqlAlchemyProfileSlugStore(engine=ready_engine)
    store.claim("ann", "u2")

    store.release("ann", owner="u1")

    assert store.owner_of("ann") == "u2"


def test_move_claim_frees_and_aliases_previous_together(ready_engine):
    store = SqlAlchemyProfileSlugStore(engine=ready_engine)
    store.claim("ann", "u1")

    assert store.move_claim("u1", "ann", "annie").ok

    assert store.owner_of("annie") == "u1"
    assert store.owner_of("ann") is None
    assert store.alias_target("ann") == "annie"
    # the freed name is redirected, so nobody else can take it
    result = store.claim("ann", "u2")
    assert not result.ok
    assert result.conflict_owner == "u1"


def test_move_claim_leaves_previous_taken_by_another_owner_alone(ready_engine):
    store = SqlAlchemyProfileSlugStore(engine=ready_engine)
    store.claim("ann", "u1")
    # u1 moved off "ann" and u2 picked it up before u1's rename finished
    store.claim("annie", "u1")
    assert store.claim("ann", "u2").ok

    assert store.move_claim("u1", "ann", "annie").ok
    store.release("ann", owner="u1")

    assert store.owner_of("ann") == "u2"
    assert store.alias_target("ann") is None
    assert store.slug_of("u2") == "ann"


def test_move_claim_conflict_writes_nothing(ready_engine):
    store = SqlAlchemyProfileSlugStore(engine=ready_engine)
    store.claim("ann", "u1")
    store.claim("bob", "u2")

    result = store.move_claim("u2", "bob", "ann")

    assert result.conflict_owner == "u1"
    assert store.slug_of("u2") == "bob"
    assert store.alias_target("bob") is None

def test_alias_round_trip(ready_engine):
    store = SqlAlchemyProfileSlugStore(engine=ready_engine)
    store.set_alias("ann", "annie")
    assert store.alias_target("ANN") == "annie"

    store.set_alias("ann", "anna")
    assert store.alias_target("ann") == "anna"
    assert [(a.old_slug, a.target_slug) for a in store.list_aliases()] == [("ann", "anna")]

    store.claim("anna", "u1")
    assert store.claim("ann", "u2").conflict_owner == "u1"
    assert store.claim("ann", "u1").ok
    assert store.alias_target("ann") is None


def test_self_alias_is_ignored(ready_engine):
    store = SqlAlchemyProfileSlugStore(engine=ready_engine)
    store.set_alias("ann", "ANN")
    assert store.alias_target("ann") is None


def test_list_claims(ready_engine):
    store = SqlAlchemyProfileSlugStore(engine=ready_engine)
    store.claim("bob", "u2")
    store.claim("ann", "u1")
    assert [(c.slug, c.owner) for c in store.list_claims()] == [("ann", "u1"), ("bob", "u2")]


def test_missing_column_raises_schema_not_ready(legacy_engine):
    store = SqlAlchemyProfileSlugStore(engine=legacy_engine)
    with pytest.raises(SchemaNotReadyError):
        store.claim("ann", "u1")
    with pytest.raises(SchemaNotReadyError):
        store.alias_target("ann")


def test_is_missing_schema_error_matches_driver_messages():
    missing = sa.exc.OperationalError("SELECT", {}, Exception("no such column: profiles.public_slug"))
    other = sa.exc.OperationalError("SELECT", {}, Exception("disk I/O error"))
    assert is_missing_schema_error(missing)
    assert not is_missing_schema_error(other)
    assert not is_missing_schema_error(ValueError("no such table"))
