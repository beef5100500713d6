"""
domains.access
==============

Single-administrator access control.

One administrator address is stored under a fixed key. Privileged operations
(`withdraw`, `transfer_ownership`, `set_record`) call `require_owner(caller)`
before touching any state, so a rejected call mutates nothing.

- read the administrator (`owner`)
- initialise it once at deployment (`init_owner`)
- check a caller (`is_owner`, `require_owner`)
- hand the role to another account (`transfer_ownership`)

There is no renounce: the administrator is never the zero address after
deployment.
"""

from __future__ import annotations

from typing import Final

from .errors import StateError, Unauthorized, ZeroAddress
from .state.context import AddressLike, is_zero, to_address, to_hex
from .state.journal import Journal
from .state.kv import CONTRACT

OWNER_KEY: Final[bytes] = CONTRACT.key(b"access", b"owner")


class AccessControl:
    __slots__ = ("_j",)

    def __init__(self, journal: Journal) -> None:
        self._j = journal

    def owner(self) -> bytes:
        """Current administrator; StateError if the store was never deployed."""
        v = self._j.get(OWNER_KEY)
        if not v:
            raise StateError("administrator not initialised")
        return v

    def init_owner(self, owner: AddressLike) -> None:
        """Set the administrator at deployment. Refuses to overwrite."""
        addr = to_address(owner)
        if is_zero(addr):
            raise ZeroAddress("deployer must not be the zero address")
        if self._j.get(OWNER_KEY):
            raise StateError("administrator already initialised")
        self._j.put(OWNER_KEY, addr)

    def is_owner(self, caller: AddressLike) -> bool:
        return to_address(caller) == self.owner()

    def require_owner(self, caller: AddressLike) -> None:
        """Raise Unauthorized unless `caller` is the administrator."""
        addr = to_address(caller)
        if addr != self.owner():
            raise Unauthorized(to_hex(addr))

    def transfer_ownership(self, caller: AddressLike, new_owner: AddressLike) -> bytes:
        """
        Administrator-only: replace the administrator with `new_owner`.
        Returns the previous administrator.
        """
        self.require_owner(caller)
        new = to_address(new_owner)
        if is_zero(new):
            raise ZeroAddress("new administrator must not be the zero address")
        previous = self.owner()
        self._j.put(OWNER_KEY, new)
        return previous


__all__ = ["OWNER_KEY", "AccessControl"]
