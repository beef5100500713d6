"""
domains.contract
================

`Domains` is the deployed registry: it wires the validator, price schedule,
access control, registry and treasury over one journaled KV store and exposes
the public operations.

Every state-changing call runs inside `_transaction()`:

1. an RLock serialises callers (the instance may be shared between threads);
2. a journal checkpoint is opened, which also takes the store's write lock,
   so other processes sharing the database wait (or fail with StateError);
3. the body runs; the attached value is transferred to the contract first;
4. on success the checkpoint is committed (one KV batch, then COMMIT), on any
   exception it is reverted (ROLLBACK) and the exception propagates.

A rejected call therefore leaves balances, entries and the administrator
exactly as they were.

Name bounds and fees are stored at deployment (`RULES_KEY`).

Example
-------
>>> from domains.state import dev_address, open_kv
>>> kv = open_kv("memory://")
>>> d = Domains.deploy("otter", dev_address("deployer"), kv=kv)
>>> d.tld()
'otter'
"""

from __future__ import annotations

import hashlib
import json
import threading
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Tuple

from .access import AccessControl
from .config import DEFAULT_CONFIG, DomainsConfig
from .errors import ConfigError, DomainsError, StateError, ZeroAddress
from .logging import get_logger
from .pricing import PriceSchedule
from .registry import TLD_KEY, Registry
from .state import KV, Journal, Ledger, open_kv
from .state.context import ADDRESS_LEN, AddressLike, CallContext, is_zero, to_address, to_hex
from .state.kv import CONTRACT
from .treasury import Treasury
from .units import Amount
from .validator import NameValidator

log = get_logger("domains.contract")

CONTRACT_ADDRESS_KEY = CONTRACT.key(b"self")
RULES_KEY = CONTRACT.key(b"rules")


def derive_contract_address(deployer: bytes, tld: str) -> bytes:
    """Deterministic contract account for a (deployer, tld) deployment."""
    h = hashlib.sha3_256(b"domains/contract\x00" + bytes(deployer) + tld.encode("utf-8"))
    return h.digest()[:ADDRESS_LEN]


def encode_rules(validator: NameValidator, schedule: PriceSchedule) -> bytes:
    """Name bounds and fees (base units) as stored at deployment."""
    doc = {
        "min_length": validator.min_length,
        "max_length": validator.max_length,
        "tier3": schedule.tier3,
        "tier4": schedule.tier4,
        "default": schedule.default,
    }
    return json.dumps(doc, sort_keys=True, separators=(",", ":")).encode("utf-8")


def decode_rules(raw: bytes) -> Tuple[NameValidator, PriceSchedule]:
    try:
        doc = json.loads(raw.decode("utf-8"))
        validator = NameValidator(min_length=doc["min_length"], max_length=doc["max_length"])
        schedule = PriceSchedule(tier3=doc["tier3"], tier4=doc["tier4"], default=doc["default"])
    except (ConfigError, ValueError, KeyError, TypeError) as e:
        raise StateError(f"stored registry rules are corrupt: {e}") from e
    return validator, schedule


class Domains:
    """
    Name registry over a KV store. Construct with `deploy` or `open`.

    Name bounds and fees are fixed at deployment and stored with the state; a
    reopened registry uses the stored rules whatever `config` says. `config`
    only supplies the rules of a fresh deployment.
    """

    def __init__(self, kv: KV, *, config: Optional[DomainsConfig] = None) -> None:
        self.config = config or DEFAULT_CONFIG
        self._kv = kv
        self._journal = Journal(kv)
        self._lock = threading.RLock()

        stored = kv.get(RULES_KEY)
        if stored is not None:
            self.validator, self.schedule = decode_rules(stored)
            if config is not None and (
                self.validator != NameValidator.from_config(config)
                or self.schedule != PriceSchedule.from_config(config)
            ):
                log.warning("configured name rules differ from the deployed ones; using the deployed rules")
        else:
            self.validator = NameValidator.from_config(self.config)
            self.schedule = PriceSchedule.from_config(self.config)
        self.ledger = Ledger(self._journal)
        self.access = AccessControl(self._journal)
        self.registry = Registry(self._journal, self.access, self.validator, self.schedule)

        raw = kv.get(CONTRACT_ADDRESS_KEY)
        self.address: Optional[bytes] = raw
        self.treasury: Optional[Treasury] = Treasury(self.ledger, self.access, raw) if raw else None

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #

    @classmethod
    def deploy(
        cls,
        tld: str,
        deployer: AddressLike,
        *,
        kv: Optional[KV] = None,
        config: Optional[DomainsConfig] = None,
    ) -> "Domains":
        """
        Deploy a fresh registry for `tld` with `deployer` as administrator.

        `kv` defaults to a throwaway in-memory store. Raises ConfigError for an
        empty TLD, ZeroAddress for a zero deployer and StateError when the
        store already holds a deployment.
        """
        store = kv if kv is not None else open_kv("memory://")
        if store.get(TLD_KEY) is not None:
            raise StateError("store already holds a deployment")
        deployer_addr = to_address(deployer)
        if is_zero(deployer_addr):
            raise ZeroAddress("deployer must not be the zero address")

        d = cls(store, config=config)
        with d._transaction("deploy", deployer_addr):
            d.registry.init_tld(tld)
            d.access.init_owner(deployer_addr)
            addr = derive_contract_address(deployer_addr, tld)
            d._journal.put(CONTRACT_ADDRESS_KEY, addr)
            d._journal.put(RULES_KEY, encode_rules(d.validator, d.schedule))
        d.address = addr
        d.treasury = Treasury(d.ledger, d.access, addr)
        log.info("deployed", extra={"tld": tld, "owner": to_hex(deployer_addr), "contract": to_hex(addr)})
        return d

    @classmethod
    def open(cls, kv: KV, *, config: Optional[DomainsConfig] = None) -> "Domains":
        """Reattach to a store written by `deploy`."""
        d = cls(kv, config=config)
        if d.treasury is None or kv.get(TLD_KEY) is None:
            raise StateError("store holds no deployment")
        return d

    @property
    def kv(self) -> KV:
        return self._kv

    # ------------------------------------------------------------------ #
    # Transactions
    # ------------------------------------------------------------------ #

    @contextmanager
    def _transaction(self, op: str, caller: Optional[bytes] = None) -> Iterator[None]:
        with self._lock:
            self._journal.begin()
            try:
                yield
            except DomainsError as e:
                self._journal.revert()
                log.debug(
                    "rejected",
                    extra={"op": op, "caller": to_hex(caller) if caller else None, "code": e.code},
                )
                raise
            except BaseException:
                self._journal.revert()
                raise
            else:
                self._journal.commit()

    def _require_deployed(self) -> Treasury:
        if self.treasury is None:
            raise StateError("contract not deployed")
        return self.treasury

    # ------------------------------------------------------------------ #
    # State-changing operations
    # ------------------------------------------------------------------ #

    def register(self, sender: AddressLike, name: str, value: Amount = 0) -> None:
        """
        Register `name` to `sender`, paying `value` base units.

        The value is moved to the contract before any check so the whole call
        (payment included) rolls back on InvalidName, AlreadyRegistered or
        InsufficientPayment. Overpayment is kept.
        """
        ctx = CallContext(sender=to_address(sender), value=value)
        treasury = self._require_deployed()
        with self._transaction("register", ctx.sender):
            treasury.accrue(ctx.sender, ctx.value)
            self.registry.register(ctx.sender, name, ctx.value)
        log.info("registered", extra={"op": "register", "caller": to_hex(ctx.sender), "domain": name, "value": ctx.value})

    def set_record(self, sender: AddressLike, name: str, data: str) -> None:
        caller = to_address(sender)
        with self._transaction("set_record", caller):
            self.registry.set_record(caller, name, data)
        log.info("record set", extra={"op": "set_record", "caller": to_hex(caller), "domain": name})

    def withdraw(self, sender: AddressLike) -> Amount:
        """Move the whole contract balance to the administrator. Returns the amount."""
        caller = to_address(sender)
        treasury = self._require_deployed()
        with self._transaction("withdraw", caller):
            amount = treasury.withdraw(caller)
        log.info("withdrawn", extra={"op": "withdraw", "caller": to_hex(caller), "amount": amount})
        return amount

    def transfer_ownership(self, sender: AddressLike, new_admin: AddressLike) -> None:
        caller = to_address(sender)
        with self._transaction("transfer_ownership", caller):
            self.access.transfer_ownership(caller, new_admin)
        log.info(
            "ownership transferred",
            extra={"op": "transfer_ownership", "caller": to_hex(caller), "new_owner": to_hex(to_address(new_admin))},
        )

    def fund(self, address: AddressLike, amount: Amount) -> None:
        """Development faucet: credit `amount` base units to an external account."""
        addr = to_address(address)
        with self._transaction("fund", addr):
            self.ledger.credit(addr, amount)
        log.debug("funded", extra={"op": "fund", "account": to_hex(addr), "amount": amount})

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    def is_owner(self, sender: AddressLike) -> bool:
        with self._lock:
            return self.access.is_owner(sender)

    def owner(self) -> bytes:
        with self._lock:
            return self.access.owner()

    def get_address(self, name: str) -> bytes:
        with self._lock:
            return self.registry.get_address(name)

    def get_record(self, name: str) -> str:
        with self._lock:
            return self.registry.get_record(name)

    def get_all_names(self) -> List[str]:
        with self._lock:
            return self.registry.get_all_names()

    def is_registered(self, name: str) -> bool:
        with self._lock:
            return self.registry.is_registered(name)

    def price(self, name: str) -> Amount:
        return self.schedule.price(name)

    def valid(self, name: Any) -> bool:
        return self.validator.valid(name)

    def tld(self) -> str:
        with self._lock:
            return self.registry.tld()

    def balance(self) -> Amount:
        """Treasury balance (fees held by the contract)."""
        treasury = self._require_deployed()
        with self._lock:
            return treasury.balance()

    def balance_of(self, address: AddressLike) -> Amount:
        with self._lock:
            return self.ledger.balance_of(to_address(address))

    # ------------------------------------------------------------------ #
    # Caller binding
    # ------------------------------------------------------------------ #

    def connect(self, sender: AddressLike) -> "Signer":
        return Signer(self, to_address(sender))


class Signer:
    """`Domains` bound to one caller, so calls read like `d.connect(alice).register("x")`."""

    __slots__ = ("contract", "address")

    def __init__(self, contract: Domains, address: bytes) -> None:
        self.contract = contract
        self.address = address

    def register(self, name: str, value: Amount = 0) -> None:
        self.contract.register(self.address, name, value)

    def set_record(self, name: str, data: str) -> None:
        self.contract.set_record(self.address, name, data)

    def withdraw(self) -> Amount:
        return self.contract.withdraw(self.address)

    def transfer_ownership(self, new_admin: AddressLike) -> None:
        self.contract.transfer_ownership(self.address, new_admin)

    def is_owner(self) -> bool:
        return self.contract.is_owner(self.address)

    def balance(self) -> Amount:
        return self.contract.balance_of(self.address)

    def __getattr__(self, item: str) -> Any:
        # views that take no caller are forwarded unchanged
        if item in ("get_address", "get_record", "get_all_names", "price", "valid", "tld", "owner"):
            return getattr(self.contract, item)
        raise AttributeError(item)

    def __repr__(self) -> str:
        return f"Signer({to_hex(self.address)})"


__all__ = [
    "Domains",
    "Signer",
    "derive_contract_address",
    "encode_rules",
    "decode_rules",
    "CONTRACT_ADDRESS_KEY",
    "RULES_KEY",
]
