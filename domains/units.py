"""
domains.units: native currency amounts.

All fees and balances are integers in the ledger's smallest unit. One native
unit is ``10**decimals`` base units (18 by default, the familiar "wei" scale).
Decimal strings are parsed exactly with :class:`decimal.Decimal`; floats are
never used so ``parse_units("0.1")`` is exactly ``10**17``.

>>> parse_units("0.5")
500000000000000000
>>> format_units(300000000000000000)
'0.3'
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext
from typing import Final, Union

DEFAULT_DECIMALS: Final[int] = 18
MAX_DECIMALS: Final[int] = 77

Amount = int
AmountLike = Union[str, int, Decimal]


def unit(decimals: int = DEFAULT_DECIMALS) -> int:
    """Base units in one native unit."""
    _check_decimals(decimals)
    return 10**decimals


def _check_decimals(decimals: int) -> None:
    if not isinstance(decimals, int) or isinstance(decimals, bool):
        raise ValueError(f"decimals must be an integer, got {decimals!r}")
    if decimals < 0 or decimals > MAX_DECIMALS:
        raise ValueError(f"decimals must be within [0, {MAX_DECIMALS}], got {decimals}")


def parse_units(value: AmountLike, decimals: int = DEFAULT_DECIMALS) -> Amount:
    """
    Convert a human amount (``"0.1"``, ``2``, ``Decimal("1.5")``) to base units.

    Raises ValueError for negative values, NaN/infinity, or more fractional
    digits than ``decimals`` allows.
    """
    _check_decimals(decimals)
    if isinstance(value, bool):
        raise ValueError("amount must not be a bool")
    if isinstance(value, int):
        d = Decimal(value)
    elif isinstance(value, Decimal):
        d = value
    elif isinstance(value, str):
        try:
            d = Decimal(value.strip().replace("_", ""))
        except InvalidOperation as e:
            raise ValueError(f"invalid amount: {value!r}") from e
    else:
        raise ValueError(f"unsupported amount type: {type(value).__name__}")

    if not d.is_finite():
        raise ValueError(f"amount must be finite, got {value!r}")
    if d < 0:
        raise ValueError(f"amount must be non-negative, got {value!r}")

    with localcontext() as ctx:
        ctx.prec = 200
        scaled = d.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise ValueError(f"amount {value!r} has more than {decimals} decimal places")
        return int(scaled)


def format_units(amount: Amount, decimals: int = DEFAULT_DECIMALS) -> str:
    """Render base units as a plain decimal string without trailing zeros."""
    _check_decimals(decimals)
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise ValueError(f"amount must be an integer, got {amount!r}")
    sign = "-" if amount < 0 else ""
    whole, frac = divmod(abs(amount), 10**decimals)
    if decimals == 0 or frac == 0:
        return f"{sign}{whole}"
    frac_s = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{frac_s}"


__all__ = [
    "Amount",
    "AmountLike",
    "DEFAULT_DECIMALS",
    "unit",
    "parse_units",
    "format_units",
]
