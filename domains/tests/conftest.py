"""
domains.tests.conftest
======================

Shared fixtures:
- an in-memory KV store per test
- stable dev accounts (deployer, alice, bob) derived from labels
- a deployed "otter" registry whose accounts hold 10 native units each
"""
from __future__ import annotations

import os

import pytest

from domains.contract import Domains
from domains.state import dev_address, open_kv
from domains.units import parse_units

os.environ.setdefault("TZ", "UTC")

TLD = "otter"
STARTING_BALANCE = parse_units("10")


@pytest.fixture
def kv():
    store = open_kv("memory://")
    try:
        yield store
    finally:
        store.close()


@pytest.fixture
def deployer() -> bytes:
    return dev_address("deployer")


@pytest.fixture
def alice() -> bytes:
    return dev_address("alice")


@pytest.fixture
def bob() -> bytes:
    return dev_address("bob")


@pytest.fixture
def contract(kv, deployer, alice, bob) -> Domains:
    d = Domains.deploy(TLD, deployer, kv=kv)
    for acct in (deployer, alice, bob):
        d.fund(acct, STARTING_BALANCE)
    return d


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    # Keep host configuration out of config/CLI tests.
    for var in list(os.environ):
        if var.startswith("DOMAINS_"):
            monkeypatch.delenv(var, raising=False)
