"""
Deploy a registry and claim an initial name in one go.

This is the scripted bring-up used by `domains deploy` and by local smoke
runs: deploy for a TLD, make sure the deployer can pay, register the initial
name with the attached value, then report the resulting state.

Example
-------
>>> from domains.state import dev_address, open_kv
>>> dep = deploy_and_register(open_kv("memory://"), dev_address("deployer"))
>>> dep.tld, dep.initial_name
('otter', 'dev')
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .config import DomainsConfig
from .contract import Domains
from .logging import get_logger
from .state import KV, to_address, to_hex
from .state.context import AddressLike
from .units import Amount, format_units, parse_units

log = get_logger("domains.deploy")

DEFAULT_TLD = "otter"
DEFAULT_INITIAL_NAME = "dev"
DEFAULT_INITIAL_VALUE: Amount = parse_units("0.1")


@dataclass(frozen=True)
class Deployment:
    """What a deployment produced. Addresses are kept as raw bytes."""

    contract: Domains
    tld: str
    address: bytes
    initial_name: Optional[str]
    initial_owner: bytes
    balance: Amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tld": self.tld,
            "contract": to_hex(self.address),
            "initial_name": self.initial_name,
            "initial_owner": to_hex(self.initial_owner),
            "balance": str(self.balance),
            "balance_units": format_units(self.balance, self.contract.config.decimals),
        }


def deploy_and_register(
    kv: KV,
    deployer: AddressLike,
    *,
    tld: str = DEFAULT_TLD,
    initial_name: Optional[str] = DEFAULT_INITIAL_NAME,
    initial_value: Amount = DEFAULT_INITIAL_VALUE,
    config: Optional[DomainsConfig] = None,
) -> Deployment:
    """
    Deploy onto `kv` and register `initial_name` to the deployer.

    The deployer is topped up from the dev faucet when its balance is below
    `initial_value`. Pass `initial_name=None` to deploy only.
    """
    who = to_address(deployer)
    contract = Domains.deploy(tld, who, kv=kv, config=config)
    log.info("contract deployed", extra={"tld": tld, "contract": to_hex(contract.address)})

    if initial_name is not None:
        shortfall = initial_value - contract.balance_of(who)
        if shortfall > 0:
            contract.fund(who, shortfall)
        contract.register(who, initial_name, initial_value)

    owner = contract.get_address(initial_name) if initial_name is not None else contract.owner()
    log.info(
        "initial name registered" if initial_name is not None else "deployed without initial name",
        extra={"domain": initial_name, "owner": to_hex(owner)},
    )
    return Deployment(
        contract=contract,
        tld=contract.tld(),
        address=contract.address,
        initial_name=initial_name,
        initial_owner=owner,
        balance=contract.balance(),
    )


__all__ = ["Deployment", "deploy_and_register", "DEFAULT_TLD", "DEFAULT_INITIAL_NAME", "DEFAULT_INITIAL_VALUE"]
