from __future__ import annotations

"""
domains.state
=============

Execution substrate for the registry: a byte KV store, a checkpointing write
journal over it, the native-currency ledger and the per-call context.

URIs accepted by `open_kv`
--------------------------
- "memory://"              → in-memory SQLite (tests, throwaway runs)
- "sqlite:///path/to/x.db" → SQLite file
- bare path                → SQLite file

Example
-------
>>> from domains.state import open_kv
>>> kv = open_kv("memory://")
>>> with kv.batch() as b:
...     b.put(b"c:key", b"hello")
>>> kv.get(b"c:key")
b'hello'
"""

from .context import (
    ZERO_ADDRESS,
    CallContext,
    ContextError,
    dev_address,
    is_zero,
    to_address,
    to_hex,
)
from .journal import Journal
from .kv import CONTRACT, KV, LEDGER, Batch, Prefix, ReadOnlyKV
from .ledger import Ledger
from .sqlite import open_sqlite_kv


def open_kv(uri: str, create: bool = True) -> KV:
    """
    Open a KV store by URI (see module docstring).

    Raises ValueError for an empty URI and FileNotFoundError when
    `create=False` and the SQLite file is missing.
    """
    u = (uri or "").strip()
    if not u:
        raise ValueError("empty database URI")
    if u.startswith("memory://"):
        return open_sqlite_kv(":memory:", create=True)
    if u.startswith("sqlite:///"):
        return open_sqlite_kv(u[len("sqlite:///") :] or ":memory:", create=create)
    if "://" in u:
        raise ValueError(f"Unsupported DB backend in URI: {uri!r}")
    return open_sqlite_kv(u, create=create)


__all__ = [
    "KV",
    "ReadOnlyKV",
    "Batch",
    "Prefix",
    "CONTRACT",
    "LEDGER",
    "Journal",
    "Ledger",
    "CallContext",
    "ContextError",
    "ZERO_ADDRESS",
    "dev_address",
    "is_zero",
    "to_address",
    "to_hex",
    "open_kv",
]
