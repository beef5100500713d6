from __future__ import annotations

import threading

import pytest

from domains.config import DomainsConfig, NameRules
from domains.contract import Domains, derive_contract_address
from domains.errors import ConfigError, InvalidName, StateError, ZeroAddress
from domains.state import ZERO_ADDRESS, open_kv
from domains.units import parse_units


def _snapshot(kv):
    return {**dict(kv.iter_prefix(b"c:")), **dict(kv.iter_prefix(b"l:"))}


def test_deploy_defaults_to_memory_store(deployer):
    d = Domains.deploy("otter", deployer)
    assert d.tld() == "otter"
    assert d.owner() == deployer
    assert d.get_all_names() == []
    assert d.balance() == 0
    assert d.address == derive_contract_address(deployer, "otter")


def test_deploy_rejects_empty_tld(kv, deployer):
    with pytest.raises(ConfigError):
        Domains.deploy("", deployer, kv=kv)
    # nothing was written, a valid deploy still works
    assert Domains.deploy("otter", deployer, kv=kv).tld() == "otter"


def test_deploy_rejects_zero_deployer(kv):
    with pytest.raises(ZeroAddress):
        Domains.deploy("otter", ZERO_ADDRESS, kv=kv)


def test_deploy_twice_rejected(kv, deployer, alice):
    Domains.deploy("otter", deployer, kv=kv)
    with pytest.raises(StateError):
        Domains.deploy("other", alice, kv=kv)


def test_open_requires_deployment(kv):
    with pytest.raises(StateError):
        Domains.open(kv)


def test_state_survives_reopen(tmp_path, deployer, alice):
    path = str(tmp_path / "otter.db")
    kv = open_kv(path)
    d = Domains.deploy("otter", deployer, kv=kv)
    d.fund(alice, parse_units("1"))
    d.register(alice, "alice", parse_units("0.1"))
    d.set_record(deployer, "alice", "hello")
    kv.close()

    kv2 = open_kv(path, create=False)
    try:
        again = Domains.open(kv2)
        assert again.tld() == "otter"
        assert again.owner() == deployer
        assert again.get_address("alice") == alice
        assert again.get_record("alice") == "hello"
        assert again.get_all_names() == ["alice"]
        assert again.balance() == parse_units("0.1")
        assert again.balance_of(alice) == parse_units("0.9")
    finally:
        kv2.close()


def test_failed_call_leaves_store_untouched(contract, kv, alice):
    before = _snapshot(kv)
    with pytest.raises(InvalidName):
        contract.register(alice, "this-name-is-too-long", parse_units("1"))
    assert _snapshot(kv) == before


def test_unexpected_error_also_reverts(contract, alice, monkeypatch):
    def boom(*_a, **_k):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(contract.registry, "register", boom)
    before = contract.balance_of(alice)
    with pytest.raises(RuntimeError):
        contract.register(alice, "abc", parse_units("0.5"))
    assert contract.balance_of(alice) == before
    assert contract._journal.depth() == 0


def test_config_changes_rules(kv, deployer):
    cfg = DomainsConfig(names=NameRules(min_length=2, max_length=4))
    d = Domains.deploy("otter", deployer, kv=kv, config=cfg)
    d.fund(deployer, parse_units("5"))
    assert not d.valid("a")
    assert not d.valid("abcde")
    with pytest.raises(InvalidName):
        d.register(deployer, "abcde", parse_units("1"))
    d.register(deployer, "ab", parse_units("0.1"))
    assert d.get_all_names() == ["ab"]


def test_concurrent_registrations_of_one_name(contract, deployer):
    from domains.state import dev_address

    users = [dev_address(f"user{i}") for i in range(8)]
    for u in users:
        contract.fund(u, parse_units("1"))
    results = []

    def claim(u):
        try:
            contract.register(u, "race", parse_units("0.1"))
            results.append(u)
        except Exception:
            pass

    threads = [threading.Thread(target=claim, args=(u,)) for u in users]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 1
    assert contract.get_address("race") == results[0]
    assert contract.get_all_names() == ["race"]
    assert contract.balance() == parse_units("0.1")


def test_two_processes_cannot_both_claim_a_name(tmp_path, deployer, alice, bob):
    from domains.errors import AlreadyRegistered
    from domains.state.sqlite import open_sqlite_kv

    path = tmp_path / "otter.db"
    kv1 = open_sqlite_kv(path, timeout=0.1)
    kv2 = open_sqlite_kv(path, timeout=0.1)
    try:
        d1 = Domains.deploy("otter", deployer, kv=kv1)
        d1.fund(alice, parse_units("1"))
        d1.fund(bob, parse_units("1"))
        d2 = Domains.open(kv2)

        # bob's call starts while alice's is between its checks and its writes
        read = kv1.get
        attempts = []

        def get_then_compete(key):
            if d1._journal.depth() and not attempts:
                with pytest.raises(StateError) as ei:
                    d2.register(bob, "alpha", parse_units("0.1"))
                attempts.append(ei.value)
            return read(key)

        kv1.get = get_then_compete
        d1.register(alice, "alpha", parse_units("0.1"))
        kv1.get = read

        assert len(attempts) == 1
        assert d2.get_address("alpha") == alice
        assert d2.get_all_names() == ["alpha"]
        assert d2.balance() == parse_units("0.1")
        assert d2.balance_of(bob) == parse_units("1")
        with pytest.raises(AlreadyRegistered):
            d2.register(bob, "alpha", parse_units("0.1"))
        assert d1.balance() == parse_units("0.1")
    finally:
        kv1.close()
        kv2.close()


def test_rules_fixed_at_deployment(tmp_path, deployer, alice):
    path = str(tmp_path / "otter.db")
    cfg = DomainsConfig(names=NameRules(min_length=1, max_length=4))
    cfg.pricing.tier3 = "2"
    kv = open_kv(path)
    d = Domains.deploy("otter", deployer, kv=kv, config=cfg)
    d.fund(alice, parse_units("5"))
    d.register(alice, "abc", parse_units("2"))
    kv.close()

    kv2 = open_kv(path, create=False)
    try:
        again = Domains.open(kv2)
        assert not again.valid("abcdef")
        assert again.price("xyz") == parse_units("2")
        with pytest.raises(InvalidName):
            again.register(alice, "abcdef", parse_units("1"))
        assert again.get_all_names() == ["abc"]
        assert again.get_address("abc") == alice
    finally:
        kv2.close()
