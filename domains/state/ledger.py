"""
domains.state.ledger: native-currency balances for accounts and the contract.

This is the value-transfer substrate the registry runs on: the attached value
of a call moves from the caller to the contract account before the call body
runs, and `withdraw` moves the contract balance back out. Balances live in the
same journal as the rest of the contract state, so a reverted call also undoes
its value transfer.

Deterministic: pure integer arithmetic with an explicit u256 cap.
"""

from __future__ import annotations

from typing import Final

from ..errors import InsufficientFunds
from .context import to_address, to_hex
from .journal import Journal
from .kv import LEDGER, be_u256, u256_from

_U256_MAX: Final[int] = (1 << 256) - 1


def _check_amount(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise ValueError("amount must be int")
    if amount < 0:
        raise ValueError("amount must be non-negative")
    if amount > _U256_MAX:
        raise ValueError("amount exceeds 256-bit limit")


def _balance_key(addr: bytes) -> bytes:
    return LEDGER.key(b"bal", addr)


class Ledger:
    """Balance book over a `Journal`. Mutators must run inside a checkpoint."""

    __slots__ = ("_j",)

    def __init__(self, journal: Journal) -> None:
        self._j = journal

    def balance_of(self, addr: bytes) -> int:
        return u256_from(self._j.get(_balance_key(to_address(addr))))

    def _set(self, addr: bytes, amount: int) -> None:
        if amount > _U256_MAX:
            raise ValueError("balance overflow")
        self._j.put(_balance_key(addr), be_u256(amount))

    def credit(self, addr: bytes, amount: int) -> None:
        """Increase the balance of `addr` (dev funding / incoming value)."""
        a = to_address(addr)
        _check_amount(amount)
        self._set(a, self.balance_of(a) + amount)

    def transfer(self, frm: bytes, to: bytes, amount: int) -> None:
        """Debit `frm` and credit `to`; raises InsufficientFunds on shortfall."""
        src, dst = to_address(frm), to_address(to)
        _check_amount(amount)
        if amount == 0:
            return
        cur = self.balance_of(src)
        if amount > cur:
            raise InsufficientFunds(account=to_hex(src), balance=cur, amount=amount)
        self._set(src, cur - amount)
        self._set(dst, self.balance_of(dst) + amount)


__all__ = ["Ledger"]
