"""
storage/store.py -- SQLAlchemy Core key-value persistence for client state.

Pattern: Repository. SqlKeyValueStore is the repository; session code never
touches SQL directly and only sees the KeyValueStore protocol (write / read /
remove of string values under named keys).

Scoping:
  Every row belongs to a namespace (one per client install). Two clients
  sharing a DB file never see each other's keys.

Security:
  All queries use bound parameters. No f-strings in SQL.

Errors:
  SQLAlchemyError from the driver is wrapped in StorageError so callers can
  handle "storage is broken" without importing SQLAlchemy.

DB path: storage/moviesession.db by default (see core.config.Settings).

Layer rule: no imports from auth/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("moviesession.storage")


class StorageError(Exception):
    """The persistence backend failed to read, write or delete a key."""


class KeyValueStore(Protocol):
    def write(self, key: str, value: str) -> None: ...

    def read(self, key: str) -> str | None: ...

    def remove(self, key: str) -> None: ...


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_entries = Table(
    "kv_entries",
    _metadata,
    Column("namespace", String(64), primary_key=True),
    Column("key", String(128), primary_key=True),
    Column("value", Text, nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SqlKeyValueStore:
    """Durable, client-scoped string store.

    Usage:
        store = SqlKeyValueStore("sqlite:///state.db", namespace="laptop")
        store.write("auth-token", "sess_...")
        store.read("auth-token")      # "sess_..." or None
        store.remove("auth-token")
        store.close()
    """

    def __init__(self, db_url: str, namespace: str = "default") -> None:
        if not namespace:
            raise ValueError("namespace must be a non-empty string")
        self.namespace = namespace
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        try:
            _metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StorageError(f"Could not initialize storage at {db_url!r}") from e

    def write(self, key: str, value: str) -> None:
        """Store value under key, replacing any existing value."""
        stamp = _now_iso()
        try:
            with self.engine.connect() as conn:
                # Update-then-insert inside one transaction keeps this portable
                # across dialects (no INSERT OR REPLACE / ON CONFLICT).
                result = conn.execute(
                    _entries.update()
                    .where((_entries.c.namespace == self.namespace) & (_entries.c.key == key))
                    .values(value=value, updated_at=stamp)
                )
                if result.rowcount == 0:
                    conn.execute(
                        _entries.insert().values(namespace=self.namespace, key=key, value=value, updated_at=stamp)
                    )
                conn.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Could not write key {key!r}") from e

    def read(self, key: str) -> str | None:
        """Return the value stored under key, or None if absent."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    _entries.select().where((_entries.c.namespace == self.namespace) & (_entries.c.key == key))
                ).fetchone()
        except SQLAlchemyError as e:
            raise StorageError(f"Could not read key {key!r}") from e
        return row.value if row is not None else None

    def remove(self, key: str) -> None:
        """Delete key. Removing an absent key is a no-op."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _entries.delete().where((_entries.c.namespace == self.namespace) & (_entries.c.key == key))
                )
                removed = result.rowcount
                conn.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Could not remove key {key!r}") from e
        if removed:
            logger.debug("Removed key %r from namespace %r", key, self.namespace)

    def close(self) -> None:
        self.engine.dispose()
