from __future__ import annotations

"""
Pricing: name -> registration fee.

Fees depend on the length of the name only, in three tiers:

    len == 3  -> tier3    (0.5 native units by default)
    len == 4  -> tier4    (0.3)
    otherwise -> default  (0.1)

All amounts are integers in base units (10**decimals per native unit). The
function is pure and callable before registering, for price discovery.

Example
-------
>>> DEFAULT_SCHEDULE.price("eth") == parse_units("0.5")
True
>>> DEFAULT_SCHEDULE.price("polygon") == parse_units("0.1")
True
"""


from dataclasses import dataclass
from typing import Final

from .config import DomainsConfig, PricingTiers
from .units import DEFAULT_DECIMALS, Amount, parse_units


@dataclass(frozen=True)
class PriceSchedule:
    """
    Per-length fee schedule in base units.

    Attributes
    ----------
    tier3:
        Fee for names of exactly three characters.
    tier4:
        Fee for names of exactly four characters.
    default:
        Fee for every other length (short and long names alike).
    """

    tier3: Amount
    tier4: Amount
    default: Amount

    def __post_init__(self) -> None:
        for field_name in ("tier3", "tier4", "default"):
            v = getattr(self, field_name)
            if not isinstance(v, int) or isinstance(v, bool) or v < 0:
                raise ValueError(f"{field_name} must be a non-negative integer, got {v!r}")

    @classmethod
    def from_tiers(cls, tiers: PricingTiers, decimals: int = DEFAULT_DECIMALS) -> "PriceSchedule":
        units = tiers.base_units(decimals)
        return cls(tier3=units["tier3"], tier4=units["tier4"], default=units["default"])

    @classmethod
    def from_config(cls, cfg: DomainsConfig) -> "PriceSchedule":
        return cls.from_tiers(cfg.pricing, cfg.decimals)

    def price(self, name: str) -> Amount:
        n = len(name)
        if n == 3:
            return self.tier3
        if n == 4:
            return self.tier4
        return self.default


DEFAULT_SCHEDULE: Final[PriceSchedule] = PriceSchedule(
    tier3=parse_units("0.5"),
    tier4=parse_units("0.3"),
    default=parse_units("0.1"),
)


def price(name: str) -> Amount:
    """`PriceSchedule.price` with the default schedule."""
    return DEFAULT_SCHEDULE.price(name)


__all__ = ["PriceSchedule", "DEFAULT_SCHEDULE", "price"]
