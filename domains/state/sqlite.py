from __future__ import annotations

"""
SQLite storage for registry state
=================================

One table of raw byte pairs, ordered by key (memcmp), in a single file or in
memory:

    state(key BLOB PRIMARY KEY, value BLOB NOT NULL) WITHOUT ROWID

The file carries `PRAGMA user_version = SCHEMA_VERSION`; opening a file written
by a newer schema is refused.

Writes normally arrive through `batch()`: the batch stages puts and deletes in
memory and applies them inside one `BEGIN IMMEDIATE` transaction when the
`with` block exits cleanly.

A contract call needs more than that: its reads and its writes must see one
version of the database, even when another process writes the same file. The
journal therefore calls `begin()` when a call starts, which takes the write
lock with `BEGIN IMMEDIATE`, and `commit()` or `rollback()` when it ends.
Batches applied while that transaction is open join it instead of opening
their own. A second writer waits up to `timeout` seconds for the lock and then
gets a StateError.

The connection is opened with `check_same_thread=False`; `Domains` holds its
own lock around every call.
"""

import os
import sqlite3
from typing import Dict, Iterator, Optional, Tuple, Union

from ..errors import StateError
from .kv import KV, Batch

SCHEMA_VERSION = 1
DEFAULT_TIMEOUT = 5.0

PRAGMAS = (
    ("journal_mode", "WAL"),
    ("synchronous", "NORMAL"),
    ("temp_store", "MEMORY"),
)

_UPSERT = "INSERT INTO state(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value = excluded.value"
_DELETE = "DELETE FROM state WHERE key = ?"

PathLike = Union[str, "os.PathLike[str]"]


def _upper_bound(prefix: bytes) -> Optional[bytes]:
    # b"c:" -> b"c;"; None when the prefix is empty or all 0xFF
    stripped = prefix.rstrip(b"\xff")
    if not stripped:
        return None
    return stripped[:-1] + bytes([stripped[-1] + 1])


def _begin_immediate(conn: sqlite3.Connection) -> None:
    try:
        conn.execute("BEGIN IMMEDIATE")
    except sqlite3.OperationalError as e:
        raise StateError(f"cannot start a write transaction (database busy?): {e}") from e


class SQLiteBatch(Batch):
    """Staged writes applied atomically on `commit()` (or clean `__exit__`)."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._staged: Dict[bytes, Optional[bytes]] = {}
        self._done = False

    def __enter__(self) -> "SQLiteBatch":
        return self

    def put(self, key: bytes, value: bytes) -> None:
        self._check_open()
        self._staged[bytes(key)] = bytes(value)

    def delete(self, key: bytes) -> None:
        self._check_open()
        self._staged[bytes(key)] = None

    def commit(self) -> None:
        self._check_open()
        self._done = True
        if not self._staged:
            return
        upserts = [(k, v) for k, v in self._staged.items() if v is not None]
        deletes = [(k,) for k, v in self._staged.items() if v is None]
        # inside an open write transaction the caller owns COMMIT/ROLLBACK
        own = not self._conn.in_transaction
        if own:
            _begin_immediate(self._conn)
        try:
            if upserts:
                self._conn.executemany(_UPSERT, upserts)
            if deletes:
                self._conn.executemany(_DELETE, deletes)
        except BaseException:
            if own:
                self._conn.execute("ROLLBACK")
            raise
        if own:
            self._conn.execute("COMMIT")

    def rollback(self) -> None:
        self._staged.clear()
        self._done = True

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        if self._done:
            return None
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return None

    def _check_open(self) -> None:
        if self._done:
            raise RuntimeError("batch already finished")


class SQLiteKV(KV):
    """Registry state in SQLite. Construct with `open_sqlite_kv`."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get(self, key: bytes) -> Optional[bytes]:
        row = self._conn.execute("SELECT value FROM state WHERE key = ?", (bytes(key),)).fetchone()
        return None if row is None else bytes(row[0])

    def has(self, key: bytes) -> bool:
        return self.get(key) is not None

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        lo = bytes(prefix)
        hi = _upper_bound(lo)
        if hi is None:
            rows = self._conn.execute("SELECT key, value FROM state WHERE key >= ? ORDER BY key", (lo,))
        else:
            rows = self._conn.execute(
                "SELECT key, value FROM state WHERE key >= ? AND key < ? ORDER BY key", (lo, hi)
            )
        for k, v in rows.fetchall():
            k = bytes(k)
            if k.startswith(lo):
                yield k, bytes(v)

    def put(self, key: bytes, value: bytes) -> None:
        with self.batch() as b:
            b.put(key, value)

    def delete(self, key: bytes) -> None:
        with self.batch() as b:
            b.delete(key)

    def batch(self) -> Batch:
        return SQLiteBatch(self._conn)

    # ---- write transaction held across a whole call ----

    def begin(self) -> None:
        """Take the database write lock; StateError if another writer keeps it past the timeout."""
        if self._conn.in_transaction:
            raise RuntimeError("write transaction already open")
        _begin_immediate(self._conn)

    def commit(self) -> None:
        if self._conn.in_transaction:
            self._conn.execute("COMMIT")

    def rollback(self) -> None:
        if self._conn.in_transaction:
            self._conn.execute("ROLLBACK")

    def close(self) -> None:
        self._conn.close()


def _prepare(conn: sqlite3.Connection, pragmas: Optional[dict]) -> None:
    settings = dict(PRAGMAS)
    settings.update(pragmas or {})
    for name, value in settings.items():
        conn.execute(f"PRAGMA {name}={value}")

    version = conn.execute("PRAGMA user_version").fetchone()[0]
    if version > SCHEMA_VERSION:
        raise StateError(f"database schema {version} is newer than supported ({SCHEMA_VERSION})")
    conn.execute("CREATE TABLE IF NOT EXISTS state (key BLOB PRIMARY KEY, value BLOB NOT NULL) WITHOUT ROWID")
    if version < SCHEMA_VERSION:
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION}")


def open_sqlite_kv(
    path: PathLike,
    *,
    pragmas: Optional[dict] = None,
    create: bool = True,
    timeout: float = DEFAULT_TIMEOUT,
) -> SQLiteKV:
    """
    Open the state database at `path` (":memory:" for a throwaway store).

    Missing parent directories are created. With `create=False` a missing file
    raises FileNotFoundError instead of being created. `timeout` is how long,
    in seconds, a writer waits for another connection's write lock.
    """
    target = os.fspath(path)
    if target != ":memory:":
        if not create and not os.path.exists(target):
            raise FileNotFoundError(f"no state database at {target}")
        os.makedirs(os.path.dirname(os.path.abspath(target)), exist_ok=True)

    conn = sqlite3.connect(target, timeout=timeout, isolation_level=None, check_same_thread=False)
    try:
        _prepare(conn, pragmas)
    except BaseException:
        conn.close()
        raise
    return SQLiteKV(conn)


__all__ = ["SQLiteKV", "SQLiteBatch", "open_sqlite_kv", "SCHEMA_VERSION"]
