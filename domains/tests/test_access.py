from __future__ import annotations

import pytest

from domains.access import AccessControl
from domains.errors import StateError, Unauthorized, ZeroAddress
from domains.state import ZERO_ADDRESS, Journal


def test_non_admin_transfer_unauthorized(contract, deployer, alice):
    with pytest.raises(Unauthorized) as ei:
        contract.transfer_ownership(alice, deployer)
    assert ei.value.details["caller"] == "0x" + alice.hex()
    assert contract.is_owner(deployer)


def test_admin_transfer_flips_is_owner(contract, deployer, alice):
    contract.transfer_ownership(deployer, alice)
    assert contract.is_owner(deployer) is False
    assert contract.is_owner(alice) is True


def test_previous_admin_loses_privileges(contract, deployer, alice):
    contract.register(alice, "abcd", 10**18)
    contract.transfer_ownership(deployer, alice)
    with pytest.raises(Unauthorized):
        contract.set_record(deployer, "abcd", "x")
    contract.set_record(alice, "abcd", "x")
    assert contract.get_record("abcd") == "x"


def test_transfer_to_zero_address_rejected(contract, deployer):
    with pytest.raises(ZeroAddress):
        contract.transfer_ownership(deployer, ZERO_ADDRESS)
    assert contract.owner() == deployer


def test_transfer_to_self_is_allowed(contract, deployer):
    contract.transfer_ownership(deployer, deployer)
    assert contract.is_owner(deployer)


def test_hex_addresses_accepted(contract, deployer):
    assert contract.is_owner("0x" + deployer.hex())
    assert contract.is_owner(deployer.hex())


def test_access_control_standalone(kv, deployer, alice):
    j = Journal(kv)
    ac = AccessControl(j)
    with pytest.raises(StateError):
        ac.owner()

    j.begin()
    ac.init_owner(deployer)
    with pytest.raises(StateError):
        ac.init_owner(alice)
    assert ac.transfer_ownership(deployer, alice) == deployer
    j.commit()

    assert AccessControl(Journal(kv)).owner() == alice


def test_init_owner_rejects_zero(kv):
    j = Journal(kv)
    j.begin()
    with pytest.raises(ZeroAddress):
        AccessControl(j).init_owner(ZERO_ADDRESS)
