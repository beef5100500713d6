"""
domains.treasury
================

Custody of collected registration fees.

The treasury balance is simply the ledger balance of the contract account:
registration payments are transferred into it and `withdraw` empties it to the
administrator in one step. There is no partial withdrawal.
"""

from __future__ import annotations

from .access import AccessControl
from .state.context import AddressLike
from .state.ledger import Ledger


class Treasury:
    __slots__ = ("_ledger", "_access", "address")

    def __init__(self, ledger: Ledger, access: AccessControl, address: bytes) -> None:
        self._ledger = ledger
        self._access = access
        self.address = address

    def balance(self) -> int:
        """Amount currently held by the contract."""
        return self._ledger.balance_of(self.address)

    def accrue(self, payer: AddressLike, amount: int) -> None:
        """Move an attached call value from `payer` into the contract."""
        self._ledger.transfer(payer, self.address, amount)

    def withdraw(self, caller: AddressLike) -> int:
        """
        Administrator-only: send the whole balance to the administrator.
        Returns the amount moved (0 when empty).
        """
        self._access.require_owner(caller)
        amount = self.balance()
        self._ledger.transfer(self.address, self._access.owner(), amount)
        return amount


__all__ = ["Treasury"]
