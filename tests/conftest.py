# tests/conftest.py
"""
Pytest configuration and fixtures.
Adds src to sys.path so `import slugregistry` works without installing.
"""

import sys
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
src_root = project_root / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

from slugregistry.application.registries.slug_registry import SlugRegistry  # noqa: E402
from slugregistry.application.registries.store_router import StoreRouter  # noqa: E402
from slugregistry.domain.reserved import ReservedWords  # noqa: E402
from slugregistry.infrastructure.stores.models import Base  # noqa: E402
from slugregistry.infrastructure.stores.profile_slug_store import SqlAlchemyProfileSlugStore  # noqa: E402
from slugregistry.infrastructure.stores.schema import Capabilities, CapabilityDetector  # noqa: E402
from slugregistry.infrastructure.stores.settings_slug_store import KeyValueSlugStore  # noqa: E402
from slugregistry.infrastructure.stores.sqlalchemy_db import create_db_engine  # noqa: E402

# profiles as it looked before public_slug existed
LEGACY_PROFILES_DDL = """
CREATE TABLE profiles (
    id VARCHAR(36) PRIMARY KEY,
    email VARCHAR(320) UNIQUE,
    full_name VARCHAR(256),
    public_profile_enabled BOOLEAN NOT NULL DEFAULT 0,
    created_at DATETIME,
    updated_at DATETIME
)
"""

LEGACY_SETTINGS_DDL = """
CREATE TABLE app_settings (
    key VARCHAR(256) PRIMARY KEY,
    value TEXT NOT NULL DEFAULT 'null',
    updated_at DATETIME
)
"""


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'slugregistry_test.db'}"


@pytest.fixture
def engine(db_url):
    eng = create_db_engine(db_url)
    yield eng
    eng.dispose()


@pytest.fixture
def ready_engine(engine):
    """Fully migrated database: profiles.public_slug, lower() index and alias table."""
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def legacy_engine(engine):
    """Database still on the baseline schema: no slug column, index or alias table."""
    with engine.begin() as conn:
        conn.exec_driver_sql(LEGACY_PROFILES_DDL)
        conn.exec_driver_sql(LEGACY_SETTINGS_DDL)
    return engine


def make_registry(engine, *, detector=None, reserved=None, max_attempts=20) -> SlugRegistry:
    if detector is None:
        detector = CapabilityDetector(engine, auto_ensure=False)
        detector.probe()
    router = StoreRouter(
        detector,
        primary=SqlAlchemyProfileSlugStore(engine=engine),
        fallback=KeyValueSlugStore(engine=engine),
    )
    return SlugRegistry(router, reserved if reserved is not None else ReservedWords(), max_attempts=max_attempts)


@pytest.fixture(params=["primary", "fallback"])
def registry(request, engine):
    """The same registry contract served by either backend."""
    if request.param == "primary":
        Base.metadata.create_all(engine)
        return make_registry(engine)
    with engine.begin() as conn:
        conn.exec_driver_sql(LEGACY_PROFILES_DDL)
        conn.exec_driver_sql(LEGACY_SETTINGS_DDL)
    return make_registry(engine, detector=CapabilityDetector.fixed(Capabilities.degraded()))


@pytest.fixture
def registry_factory():
    return make_registry
