"""
domains.registry
================

The name → entry map and the ordered list of registered names.

Storage layout (all keys under the CONTRACT prefix)
---------------------------------------------------
    tld                 -> UTF-8 TLD, written once at deployment
    own   | name        -> owner address (20 bytes); presence == registered
    rec   | name        -> UTF-8 record (empty until set)
    cnt                 -> u256 number of registered names
    k     | i           -> name at registration index i

Invariants
----------
- A name has an `own` key iff it appears exactly once in the `k` list.
- Entries are never deleted; only `rec` changes after registration.
- Registration checks run in order: validity, duplicate, payment. Any failure
  raises before the first write.
"""

from __future__ import annotations

from typing import Final, List

from .access import AccessControl
from .errors import AlreadyRegistered, ConfigError, InsufficientPayment, InvalidName, NotRegistered, StateError
from .pricing import PriceSchedule
from .state.context import ZERO_ADDRESS, AddressLike, to_address
from .state.journal import Journal
from .state.kv import CONTRACT, be_u256, u256_from
from .validator import NameValidator

TLD_KEY: Final[bytes] = CONTRACT.key(b"tld")
COUNT_KEY: Final[bytes] = CONTRACT.key(b"cnt")


def _owner_key(name: str) -> bytes:
    return CONTRACT.key(b"own", name)


def _record_key(name: str) -> bytes:
    return CONTRACT.key(b"rec", name)


def _index_key(i: int) -> bytes:
    return CONTRACT.key(b"k", i)


class Registry:
    """Registration bookkeeping over a `Journal`."""

    def __init__(
        self,
        journal: Journal,
        access: AccessControl,
        validator: NameValidator,
        schedule: PriceSchedule,
    ) -> None:
        self._j = journal
        self._access = access
        self.validator = validator
        self.schedule = schedule

    # ---- TLD ----

    def init_tld(self, tld: str) -> None:
        if not isinstance(tld, str) or not tld:
            raise ConfigError("tld must be a non-empty string")
        if self._j.get(TLD_KEY) is not None:
            raise StateError("tld already initialised")
        self._j.put(TLD_KEY, tld.encode("utf-8"))

    def tld(self) -> str:
        v = self._j.get(TLD_KEY)
        if v is None:
            raise StateError("registry not deployed")
        return v.decode("utf-8")

    # ---- reads ----

    # a name the validator rejects can never have been registered, so it is
    # answered without building a storage key for it

    def is_registered(self, name: str) -> bool:
        return self.validator.valid(name) and self._j.get(_owner_key(name)) is not None

    def get_address(self, name: str) -> bytes:
        """Owner of `name`, or the zero address when unregistered."""
        if not self.validator.valid(name):
            return ZERO_ADDRESS
        return self._j.get(_owner_key(name)) or ZERO_ADDRESS

    def get_record(self, name: str) -> str:
        """Record of `name`, or "" when unregistered or never set."""
        if not self.validator.valid(name):
            return ""
        v = self._j.get(_record_key(name))
        return v.decode("utf-8") if v else ""

    def count(self) -> int:
        return u256_from(self._j.get(COUNT_KEY))

    def get_all_names(self) -> List[str]:
        out: List[str] = []
        for i in range(self.count()):
            v = self._j.get(_index_key(i))
            if v is None:
                raise StateError(f"name list is missing index {i}")
            out.append(v.decode("utf-8"))
        return out

    # ---- writes ----

    def register(self, owner: AddressLike, name: str, payment: int) -> None:
        """
        Create an entry for `name` owned by `owner`.

        The payment itself is moved to the contract by the caller of this
        method; here it is only checked against the price.
        """
        if not self.validator.valid(name):
            raise InvalidName(name)
        if self.is_registered(name):
            raise AlreadyRegistered(name)
        required = self.schedule.price(name)
        if payment < required:
            raise InsufficientPayment(required=required, provided=payment, name=name)

        addr = to_address(owner)
        i = self.count()
        self._j.put(_owner_key(name), addr)
        self._j.put(_record_key(name), b"")
        self._j.put(_index_key(i), name.encode("utf-8"))
        self._j.put(COUNT_KEY, be_u256(i + 1))

    def set_record(self, caller: AddressLike, name: str, data: str) -> None:
        """Administrator-only: overwrite the record of a registered name."""
        self._access.require_owner(caller)
        if not isinstance(data, str):
            raise TypeError("record must be a string")
        if not self.is_registered(name):
            raise NotRegistered(name)
        self._j.put(_record_key(name), data.encode("utf-8"))


__all__ = ["Registry", "TLD_KEY", "COUNT_KEY"]
