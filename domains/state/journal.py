"""
domains.state.journal: journaling writes, checkpoints, revert/commit.

A deterministic, in-memory write journal layered over a KV store. Nested
checkpoints are a stack of overlays: writes go to the top overlay; reads
consult overlays from top → bottom and then the store. `commit()` merges the
top overlay into its parent, or flushes it to the store in a single batch when
it is the outermost one. `revert()` discards the top overlay.

Intended usage
--------------
    j = Journal(kv)
    j.begin()
    j.put(key, b"value")
    j.commit()          # one KV batch

Writes outside a checkpoint are rejected: every mutation of contract state
belongs to some call, and every call runs inside a checkpoint.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .kv import KV


def _b(x: bytes | bytearray | memoryview, *, name: str) -> bytes:
    if not isinstance(x, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes-like")
    return bytes(x)


@dataclass
class _Overlay:
    """One journal layer. A `None` value stages a deletion."""

    writes: Dict[bytes, Optional[bytes]] = field(default_factory=dict)


class Journal:
    """
    Copy-on-write journal over `kv` with nested checkpoints.

    API highlights
    --------------
    - begin() / commit() / revert() / depth()
    - get(), has(), put(), delete()
    """

    def __init__(self, kv: KV) -> None:
        self._kv = kv
        self._layers: List[_Overlay] = []

    @property
    def kv(self) -> KV:
        return self._kv

    # ------------------------------------------------------------------ #
    # Checkpointing
    # ------------------------------------------------------------------ #

    def depth(self) -> int:
        """Number of open checkpoints (0 when idle)."""
        return len(self._layers)

    def begin(self) -> int:
        """Open a checkpoint. Returns the new depth.

        The outermost checkpoint also opens a store write transaction, so
        everything read until the matching commit/revert is still current
        when the writes land.
        """
        if not self._layers:
            self._kv.begin()
        self._layers.append(_Overlay())
        return len(self._layers)

    def commit(self) -> None:
        """Merge the top overlay into its parent, or flush it to the store."""
        if not self._layers:
            raise RuntimeError("commit without an open checkpoint")
        top = self._layers.pop()
        if self._layers:
            self._layers[-1].writes.update(top.writes)
            return
        try:
            if top.writes:
                with self._kv.batch() as b:
                    for k, v in top.writes.items():
                        if v is None:
                            b.delete(k)
                        else:
                            b.put(k, v)
        except BaseException:
            self._kv.rollback()
            raise
        self._kv.commit()

    def revert(self) -> None:
        """Discard the top overlay."""
        if not self._layers:
            raise RuntimeError("revert without an open checkpoint")
        self._layers.pop()
        if not self._layers:
            self._kv.rollback()

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get(self, key: bytes) -> Optional[bytes]:
        k = _b(key, name="key")
        for layer in reversed(self._layers):
            if k in layer.writes:
                return layer.writes[k]
        return self._kv.get(k)

    def has(self, key: bytes) -> bool:
        return self.get(key) is not None

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def put(self, key: bytes, value: bytes) -> None:
        self._top().writes[_b(key, name="key")] = _b(value, name="value")

    def delete(self, key: bytes) -> None:
        self._top().writes[_b(key, name="key")] = None

    def _top(self) -> _Overlay:
        if not self._layers:
            raise RuntimeError("write outside a checkpoint")
        return self._layers[-1]


__all__ = ["Journal"]
