"""
Name validation.

A name is acceptable when it is a string whose length (in Unicode code points)
lies within the configured inclusive bounds. The check is pure; registration
calls it and raises `InvalidName` itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final

from .config import DomainsConfig, NameRules

MIN_NAME_LENGTH: Final[int] = NameRules().min_length
MAX_NAME_LENGTH: Final[int] = NameRules().max_length


@dataclass(frozen=True)
class NameValidator:
    min_length: int = MIN_NAME_LENGTH
    max_length: int = MAX_NAME_LENGTH

    def __post_init__(self) -> None:
        NameRules(self.min_length, self.max_length).validate()

    @classmethod
    def from_config(cls, cfg: DomainsConfig) -> "NameValidator":
        return cls(min_length=cfg.names.min_length, max_length=cfg.names.max_length)

    def valid(self, name: Any) -> bool:
        if not isinstance(name, str):
            return False
        return self.min_length <= len(name) <= self.max_length


DEFAULT_VALIDATOR: Final[NameValidator] = NameValidator()


def valid(name: Any) -> bool:
    """`NameValidator.valid` with the default bounds."""
    return DEFAULT_VALIDATOR.valid(name)


__all__ = ["NameValidator", "DEFAULT_VALIDATOR", "MIN_NAME_LENGTH", "MAX_NAME_LENGTH", "valid"]
