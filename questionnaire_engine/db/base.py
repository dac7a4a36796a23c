"""SQLAlchemy engine and transaction helpers.

The service targets PostgreSQL in production but supports SQLite for local
development and CI. No declarative models are defined here; this module only
manages connection lifecycle, per-questionnaire write serialization and the
translation of driver failures into `StorageError`.
"""

from __future__ import annotations

import logging
import os
import threading
from contextlib import contextmanager, nullcontext
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from questionnaire_engine.config import load_config
from questionnaire_engine.errors import StorageError

logger = logging.getLogger(__name__)


def _db_url() -> str:
    return (
        os.getenv("TEST_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or load_config().database.dsn
    )


# Module-level cached Engine to ensure a single shared connection/engine
_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None

# questionnaire_id -> lock serializing writes to its sort_order space
_WRITE_LOCKS: dict[int, threading.RLock] = {}
_WRITE_LOCKS_GUARD = threading.Lock()


def _connect_args(url: str, timeout_seconds: float) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": timeout_seconds}
    if url.startswith("postgresql"):
        millis = int(timeout_seconds * 1000)
        return {
            "connect_timeout": max(1, int(timeout_seconds)),
            "options": f"-c statement_timeout={millis} -c lock_timeout={millis}",
        }
    return {}


def get_engine(url: str | None = None) -> Engine:
    """Return a singleton SQLAlchemy Engine for the given URL.

    Reuses a module-level Engine so repositories share the same connection.
    For SQLite in-memory URLs, use a StaticPool to keep a single connection
    alive across sessions and threads during tests. Switching URLs disposes
    the previous engine.
    """
    global _ENGINE, _ENGINE_URL
    resolved_url = url or _db_url()

    if _ENGINE is None or _ENGINE_URL != resolved_url:
        if _ENGINE is not None:
            _ENGINE.dispose()
        timeout_seconds = load_config().database.timeout_seconds
        kwargs: dict = {
            "future": True,
            "pool_pre_ping": True,
            "connect_args": _connect_args(resolved_url, timeout_seconds),
        }
        if resolved_url.startswith("sqlite") and ":memory:" in resolved_url:
            # Keep a single in-memory DB connection shared across the process
            kwargs["poolclass"] = StaticPool
        engine = create_engine(resolved_url, **kwargs)
        if engine.dialect.name == "sqlite":
            event.listen(engine, "connect", _on_sqlite_connect)
            event.listen(engine, "begin", _on_sqlite_begin)
        _ENGINE = engine
        _ENGINE_URL = resolved_url
        logger.info("engine_created dialect=%s", engine.dialect.name)

    return _ENGINE


def dispose_engine() -> None:
    global _ENGINE, _ENGINE_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _ENGINE_URL = None


def _on_sqlite_connect(dbapi_connection, _record) -> None:  # type: ignore[no-untyped-def]
    # pysqlite must not emit its own BEGIN; _on_sqlite_begin owns transaction start
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def _on_sqlite_begin(conn: Connection) -> None:
    """Start the SQLite transaction named by the ``sqlite_begin`` execution option.

    Writers ask for ``IMMEDIATE`` so the RESERVED lock is held from the first
    read, across processes sharing the file. ``None`` leaves the connection in
    autocommit, which read_connection uses so readers hold no lock between
    statements.
    """
    mode = conn.get_execution_options().get("sqlite_begin", "DEFERRED")
    if mode:
        conn.exec_driver_sql(f"BEGIN {mode}")


def _write_lock(questionnaire_id: int) -> threading.RLock:
    with _WRITE_LOCKS_GUARD:
        lock = _WRITE_LOCKS.get(int(questionnaire_id))
        if lock is None:
            lock = threading.RLock()
            _WRITE_LOCKS[int(questionnaire_id)] = lock
        return lock


@contextmanager
def read_connection() -> Iterator[Connection]:
    """Yield a connection for lock-free reads; driver errors become StorageError."""
    eng = get_engine()
    try:
        with eng.connect() as conn:
            conn.execution_options(sqlite_begin=None)
            yield conn
    except SQLAlchemyError as exc:
        logger.error("read_connection failed", exc_info=True)
        raise StorageError("storage read failed") from exc


@contextmanager
def write_transaction(questionnaire_id: int | None = None) -> Iterator[Connection]:
    """Run a block of writes atomically, serialized per questionnaire.

    The block either commits as a whole or rolls back as a whole. Domain
    errors raised inside the block propagate unchanged after rollback; driver
    failures are logged and re-raised as `StorageError`.
    """
    eng = get_engine()
    guard = _write_lock(questionnaire_id) if questionnaire_id is not None else nullcontext()
    with guard:
        try:
            with eng.connect() as conn:
                conn.execution_options(sqlite_begin="IMMEDIATE")
                with conn.begin():
                    if questionnaire_id is not None and eng.dialect.name == "postgresql":
                        conn.execute(
                            sql_text("SELECT id FROM questionnaire WHERE id = :qid FOR UPDATE"),
                            {"qid": int(questionnaire_id)},
                        )
                    yield conn
        except SQLAlchemyError as exc:
            logger.error(
                "write_transaction rolled back questionnaire_id=%s", questionnaire_id, exc_info=True
            )
            raise StorageError("storage write failed; no changes were applied") from exc
