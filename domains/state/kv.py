from __future__ import annotations

"""
Storage interface and key layout
================================

Registry state is a flat map of byte keys to byte values. Two namespaces share
one store:

- CONTRACT (b"c:") : TLD, administrator, contract account, entries, name list
- LEDGER   (b"l:") : native-currency balances

A key is its namespace followed by each part as a 2-byte big-endian length and
the part's bytes. Parts therefore never need escaping, and "ab" + "c" cannot
collide with "a" + "bc":

>>> CONTRACT.key(b"own", "dev")
b'c:\\x00\\x03own\\x00\\x03dev'

Integers stored as values use a fixed 32-byte big-endian form (`be_u256`); an
absent value decodes as zero.
"""

from dataclasses import dataclass
from typing import Iterator, Optional, Protocol, Tuple, Union

KeyPart = Union[bytes, bytearray, str, int]

_MAX_PART = 0xFFFF


def be_u64(n: int) -> bytes:
    if n < 0 or n >> 64:
        raise ValueError(f"{n} does not fit in u64")
    return n.to_bytes(8, "big")


def be_u256(n: int) -> bytes:
    if n < 0 or n >> 256:
        raise ValueError(f"{n} does not fit in u256")
    return n.to_bytes(32, "big")


def u256_from(raw: Optional[bytes]) -> int:
    if not raw:
        return 0
    if len(raw) != 32:
        raise ValueError(f"stored integer must be 32 bytes, got {len(raw)}")
    return int.from_bytes(raw, "big")


def _encode_part(part: KeyPart) -> bytes:
    if isinstance(part, str):
        b = part.encode("utf-8")
    elif isinstance(part, (bytes, bytearray)):
        b = bytes(part)
    elif isinstance(part, int) and not isinstance(part, bool):
        b = be_u64(part)
    else:
        raise TypeError(f"key part must be bytes, str or int, not {type(part).__name__}")
    if len(b) > _MAX_PART:
        raise ValueError("key part longer than 65535 bytes")
    return len(b).to_bytes(2, "big") + b


@dataclass(frozen=True)
class Prefix:
    """A namespace such as b"c:"; `key(*parts)` builds keys inside it."""

    raw: bytes

    def __post_init__(self) -> None:
        if not self.raw or not self.raw.endswith(b":"):
            raise ValueError(f"namespace must end with b':', got {self.raw!r}")

    def key(self, *parts: KeyPart) -> bytes:
        return self.raw + b"".join(_encode_part(p) for p in parts)


CONTRACT = Prefix(b"c:")
LEDGER = Prefix(b"l:")


class ReadOnlyKV(Protocol):
    def get(self, key: bytes) -> Optional[bytes]: ...

    def has(self, key: bytes) -> bool: ...

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        """Pairs whose key starts with `prefix`, ascending by key."""
        ...

    def close(self) -> None: ...


class Batch(Protocol):
    """Writes applied together when the `with` block exits cleanly, dropped otherwise."""

    def put(self, key: bytes, value: bytes) -> None: ...

    def delete(self, key: bytes) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def __enter__(self) -> "Batch": ...

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]: ...


class KV(ReadOnlyKV, Protocol):
    def put(self, key: bytes, value: bytes) -> None: ...

    def delete(self, key: bytes) -> None: ...

    def batch(self) -> Batch: ...

    def begin(self) -> None:
        """Open a write transaction; reads and batches until commit/rollback belong to it."""
        ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


__all__ = [
    "KeyPart",
    "Prefix",
    "CONTRACT",
    "LEDGER",
    "be_u64",
    "be_u256",
    "u256_from",
    "ReadOnlyKV",
    "Batch",
    "KV",
]
