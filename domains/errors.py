from __future__ import annotations
# domains/errors.py
"""
Error types for the name registry. Every rejected operation surfaces as one of
these; they carry a stable machine code plus JSON-safe details and are safe to
print from the CLI or log.

Hierarchy
---------
DomainsError (base)
 ├─ InvalidName          : candidate name fails the length rule
 ├─ AlreadyRegistered    : name already has an entry
 ├─ Unauthorized         : caller is not the administrator
 ├─ InsufficientPayment  : attached value below the name's price
 ├─ NotRegistered        : record mutation on a name without an entry
 ├─ ZeroAddress          : zero address where an account is required
 ├─ InsufficientFunds    : ledger transfer larger than the payer's balance
 ├─ StateError           : store missing a deployment or holding bad data
 └─ ConfigError          : invalid configuration value
"""


import json
from typing import Any, Dict, Mapping, Optional


class DomainsError(Exception):
    """Base class for registry errors."""

    code: str = "DOMAINS_ERROR"

    def __init__(self, message: str = "", *, details: Optional[Mapping[str, Any]] = None) -> None:
        self.message = message or self.__class__.__name__
        self.details = dict(details or {})
        super().__init__(self.__str__())

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.details:
            try:
                packed = json.dumps(self.details, sort_keys=True, separators=(",", ":"))
            except (TypeError, ValueError):
                packed = str(self.details)
            return f"{self.code}: {self.message} [{packed}]"
        return f"{self.code}: {self.message}"


class InvalidName(DomainsError):
    """The name is outside the accepted length bounds."""

    code = "INVALID_NAME"

    def __init__(self, name: str, *, details: Optional[Mapping[str, Any]] = None) -> None:
        self.name = name
        d = dict(details or {})
        d.setdefault("name", name)
        super().__init__(f"invalid name {name!r}", details=d)


class AlreadyRegistered(DomainsError):
    code = "ALREADY_REGISTERED"

    def __init__(self, name: Optional[str] = None) -> None:
        self.name = name
        super().__init__(
            "name already registered",
            details={"name": name} if name is not None else None,
        )


class Unauthorized(DomainsError):
    code = "UNAUTHORIZED"

    def __init__(self, caller: Optional[str] = None) -> None:
        self.caller = caller
        super().__init__(
            "caller is not the administrator",
            details={"caller": caller} if caller is not None else None,
        )


class InsufficientPayment(DomainsError):
    """Attached value is lower than the price of the name."""

    code = "INSUFFICIENT_PAYMENT"

    def __init__(self, *, required: int, provided: int, name: Optional[str] = None) -> None:
        self.required = int(required)
        self.provided = int(provided)
        d: Dict[str, Any] = {"required": self.required, "provided": self.provided}
        if name is not None:
            d["name"] = name
        super().__init__("payment below the name price", details=d)


class NotRegistered(DomainsError):
    code = "NOT_REGISTERED"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"name {name!r} is not registered", details={"name": name})


class ZeroAddress(DomainsError):
    code = "ZERO_ADDRESS"

    def __init__(self, message: str = "zero address not allowed") -> None:
        super().__init__(message)


class InsufficientFunds(DomainsError):
    code = "INSUFFICIENT_FUNDS"

    def __init__(self, *, account: str, balance: int, amount: int) -> None:
        self.account = account
        self.balance = int(balance)
        self.amount = int(amount)
        super().__init__(
            "insufficient balance",
            details={"account": account, "balance": self.balance, "amount": self.amount},
        )


class StateError(DomainsError):
    code = "STATE_ERROR"


class ConfigError(DomainsError):
    code = "CONFIG_ERROR"


def error_to_dict(err: BaseException) -> Dict[str, Any]:
    """JSON-safe payload for any error; non-domain errors map to INTERNAL."""
    if isinstance(err, DomainsError):
        return err.to_dict()
    return {"code": "INTERNAL", "message": str(err) or type(err).__name__, "details": {}}


__all__ = [
    "DomainsError",
    "InvalidName",
    "AlreadyRegistered",
    "Unauthorized",
    "InsufficientPayment",
    "NotRegistered",
    "ZeroAddress",
    "InsufficientFunds",
    "StateError",
    "ConfigError",
    "error_to_dict",
]
