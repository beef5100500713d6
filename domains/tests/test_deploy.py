from __future__ import annotations

import pytest

from domains.deploy import deploy_and_register
from domains.errors import InvalidName
from domains.state import dev_address, to_hex
from domains.units import parse_units


def test_deploy_and_register_defaults(kv, deployer):
    dep = deploy_and_register(kv, deployer)
    assert dep.tld == "otter"
    assert dep.initial_name == "dev"
    assert dep.initial_owner == deployer
    assert dep.balance == parse_units("0.1")
    assert dep.contract.get_all_names() == ["dev"]
    # faucet covered exactly the payment
    assert dep.contract.balance_of(deployer) == 0


def test_deploy_only(kv, deployer):
    dep = deploy_and_register(kv, deployer, tld="ninja", initial_name=None)
    assert dep.tld == "ninja"
    assert dep.initial_owner == deployer
    assert dep.balance == 0
    assert dep.contract.get_all_names() == []


def test_summary_dict(kv):
    who = dev_address("ops")
    d = deploy_and_register(kv, who, initial_name="eth", initial_value=parse_units("0.5")).to_dict()
    assert d["initial_owner"] == to_hex(who)
    assert d["balance_units"] == "0.5"
    assert d["contract"].startswith("0x")


def test_invalid_initial_name_keeps_deployment(kv, deployer):
    with pytest.raises(InvalidName):
        deploy_and_register(kv, deployer, initial_name="far-too-long-name")
    from domains.contract import Domains

    d = Domains.open(kv)
    assert d.tld() == "otter"
    assert d.get_all_names() == []
