"""
domains: a single-TLD name registry.

Participants claim unique names for a length-tiered fee, the administrator sets
text records and withdraws collected fees, and anyone can resolve a name to
the address that registered it. State lives in a journaled KV store so every
operation is atomic.

Quick start
-----------
>>> from domains import Domains, parse_units
>>> from domains.state import dev_address
>>> d = Domains.deploy("otter", dev_address("deployer"))
>>> d.fund(dev_address("deployer"), parse_units("1"))
>>> d.register(dev_address("deployer"), "dev", parse_units("0.1"))
>>> d.get_all_names()
['dev']
"""

from .config import DEFAULT_CONFIG, DomainsConfig, load_config
from .contract import Domains, Signer
from .deploy import Deployment, deploy_and_register
from .errors import (
    AlreadyRegistered,
    ConfigError,
    DomainsError,
    InsufficientFunds,
    InsufficientPayment,
    InvalidName,
    NotRegistered,
    StateError,
    Unauthorized,
    ZeroAddress,
)
from .pricing import PriceSchedule, price
from .units import format_units, parse_units
from .validator import NameValidator, valid
from .version import __version__

__all__ = [
    "__version__",
    "Domains",
    "Signer",
    "Deployment",
    "deploy_and_register",
    "DomainsConfig",
    "DEFAULT_CONFIG",
    "load_config",
    "NameValidator",
    "valid",
    "PriceSchedule",
    "price",
    "parse_units",
    "format_units",
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
]
