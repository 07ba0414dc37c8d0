from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from slugregistry.config.settings import DEFAULT_DB_URL


def get_db_url() -> str:
    return os.getenv("SLUGREG_DB_URL") or DEFAULT_DB_URL


def _ensure_sqlite_parent_dir(db_url: str) -> None:
    # sqlite:///relative/path.db or sqlite:////abs/path.db
    if not db_url.startswith("sqlite:"):
        return
    if db_url.startswith("sqlite:////"):
        path = db_url.replace("sqlite:////", "/", 1)
    elif db_url.startswith("sqlite:///"):
        path = db_url.replace("sqlite:///", "", 1)
    else:
        # sqlite:// (in-memory)
        return
    if path in (":memory:", ""):
        return
    Path(path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


def create_db_engine(db_url: Optional[str] = None, *, timeout: int = 30, echo: bool = False) -> Engine:
    url = db_url or get_db_url()
    _ensure_sqlite_parent_dir(url)
    if not url.startswith("sqlite:"):
        return create_engine(url, future=True, pool_pre_ping=True, echo=echo)

    engine = create_engine(
        url,
        future=True,
        pool_pre_ping=True,
        echo=echo,
        connect_args={"check_same_thread": False, "timeout": timeout},
    )
    _use_immediate_transactions(engine)
    return engine


def _use_immediate_transactions(engine: Engine) -> None:
    # Take the sqlite write lock at BEGIN so concurrent writers queue on the busy
    # timeout instead of failing with "database is locked" on lock upgrade.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_session_factory(engine: Engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


class SessionProvider:
    """Light wrapper to create/close SQLAlchemy sessions."""

    def __init__(self, db_url: Optional[str] = None, *, engine: Optional[Engine] = None):
        self.engine = engine if engine is not None else create_db_engine(db_url)
        self._factory = create_session_factory(self.engine)

    def session(self) -> Session:
        return self._factory()

    def dispose(self) -> None:
        self.engine.dispose()
