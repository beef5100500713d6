"""
domains.state.context: addresses and the per-call environment.

Addresses are 20 raw bytes. Text form is ``0x`` + 40 lowercase hex digits;
helpers accept either form and normalise to bytes. The all-zero address is the
"unset" identity returned for unregistered names and is never accepted where a
real account is required.

`CallContext` carries the caller identity and attached value of one call. It
contains only pure data and validates on construction.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict, Union

ADDRESS_LEN = 20
ZERO_ADDRESS = b"\x00" * ADDRESS_LEN

AddressLike = Union[bytes, bytearray, memoryview, str]


class ContextError(ValueError):
    """Validation or coercion failure for addresses / call contexts."""


def _strip_0x(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def to_address(value: AddressLike) -> bytes:
    """
    Coerce `value` to a 20-byte address.
    - str: hex with or without '0x'
    - bytes-like: copied as-is
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        b = bytes(value)
    elif isinstance(value, str):
        h = _strip_0x(value.strip())
        try:
            b = bytes.fromhex(h)
        except ValueError as e:
            raise ContextError(f"invalid hex address: {value!r}") from e
    else:
        raise ContextError(f"cannot convert type {type(value).__name__} to an address")
    if len(b) != ADDRESS_LEN:
        raise ContextError(f"address must be {ADDRESS_LEN} bytes, got {len(b)}")
    return b


def to_hex(addr: bytes) -> str:
    """Encode an address as 0x-prefixed lowercase hex."""
    return "0x" + bytes(addr).hex()


def is_zero(addr: bytes) -> bool:
    return bytes(addr) == ZERO_ADDRESS


def dev_address(label: str) -> bytes:
    """
    Deterministic development address derived from a label (sha3-256 prefix).
    Used by tests and the CLI for named dev accounts such as "deployer".
    """
    return hashlib.sha3_256(label.encode("utf-8")).digest()[:ADDRESS_LEN]


@dataclass(frozen=True)
class CallContext:
    """
    Environment of a single call.

    Fields
    ------
    sender: caller address (20 bytes).
    value:  native-currency amount attached to the call, in base units.
    """

    sender: bytes
    value: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "sender", to_address(self.sender))
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise ContextError(f"value must be int, got {type(self.value).__name__}")
        if self.value < 0:
            raise ContextError(f"value must be non-negative, got {self.value}")

    def to_dict(self) -> Dict[str, Any]:
        return {"sender": to_hex(self.sender), "value": self.value}


__all__ = [
    "ADDRESS_LEN",
    "ZERO_ADDRESS",
    "AddressLike",
    "ContextError",
    "to_address",
    "to_hex",
    "is_zero",
    "dev_address",
    "CallContext",
]
