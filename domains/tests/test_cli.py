from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from domains.cli.main import app
from domains.state import dev_address, to_hex

runner = CliRunner()


@pytest.fixture
def db(tmp_path):
    return str(tmp_path / "otter.db")


def _run(db, *args):
    return runner.invoke(app, ["--db", db, *args])


@pytest.fixture
def deployed(db):
    res = _run(db, "deploy", "--tld", "otter")
    assert res.exit_code == 0, res.output
    return db


def test_deploy_registers_initial_name(deployed):
    res = _run(deployed, "address", "dev")
    assert res.exit_code == 0
    assert res.stdout.strip() == to_hex(dev_address("deployer"))

    res = _run(deployed, "tld")
    assert res.stdout.strip() == "otter"

    res = _run(deployed, "balance")
    assert res.stdout.strip() == "0.1"


def test_register_and_list(deployed):
    assert _run(deployed, "fund", "alice", "1").exit_code == 0
    res = _run(deployed, "register", "alice", "--from", "alice", "--value", "0.1")
    assert res.exit_code == 0, res.output

    res = _run(deployed, "names")
    assert res.stdout.split() == ["dev", "alice"]

    res = _run(deployed, "--json", "address", "alice")
    assert json.loads(res.stdout)["address"] == to_hex(dev_address("alice"))


def test_domain_errors_exit_1_with_code(deployed):
    _run(deployed, "fund", "alice", "1")
    res = _run(deployed, "register", "alice", "--from", "alice")
    assert res.exit_code == 1
    assert "INSUFFICIENT_PAYMENT" in res.output

    res = _run(deployed, "register", "dev", "--from", "alice", "--value", "1")
    assert res.exit_code == 1
    assert "ALREADY_REGISTERED" in res.output

    res = _run(deployed, "register", "not-a-valid-name", "--from", "alice", "--value", "1")
    assert res.exit_code == 1
    assert "INVALID_NAME" in res.output

    res = _run(deployed, "register", "abc", "--from", "bob", "--value", "0.5")
    assert res.exit_code == 1
    assert "INSUFFICIENT_FUNDS" in res.output


def test_records_are_admin_only(deployed):
    res = _run(deployed, "record-set", "dev", "hello", "--from", "alice")
    assert res.exit_code == 1
    assert "UNAUTHORIZED" in res.output

    assert _run(deployed, "record-set", "dev", "hello").exit_code == 0
    assert _run(deployed, "record-get", "dev").stdout.strip() == "hello"

    res = _run(deployed, "record-set", "ghost", "boo")
    assert "NOT_REGISTERED" in res.output


def test_withdraw_and_transfer(deployed):
    res = _run(deployed, "withdraw", "--from", "alice")
    assert res.exit_code == 1

    res = _run(deployed, "withdraw")
    assert res.exit_code == 0
    assert res.stdout.strip() == "Withdrew 0.1"
    assert _run(deployed, "balance").stdout.strip() == "0"
    assert _run(deployed, "balance", "deployer").stdout.strip() == "0.1"

    assert _run(deployed, "transfer-ownership", "alice").exit_code == 0
    assert _run(deployed, "is-owner", "alice").stdout.strip() == "true"
    assert _run(deployed, "is-owner", "deployer").stdout.strip() == "false"
    assert _run(deployed, "withdraw").exit_code == 1


def test_pure_queries_need_no_deployment(db):
    assert _run(db, "price", "eth").stdout.strip() == "0.5"
    assert _run(db, "price", "avax").stdout.strip() == "0.3"
    assert _run(db, "price", "polygon").stdout.strip() == "0.1"
    assert _run(db, "valid", "short").stdout.strip() == "true"
    assert _run(db, "valid", "some-long-string").stdout.strip() == "false"

    res = _run(db, "--json", "account", "alice")
    assert json.loads(res.stdout) == {"label": "alice", "address": to_hex(dev_address("alice"))}


def test_missing_database(db):
    res = _run(db, "names")
    assert res.exit_code == 1
    assert "STATE_ERROR" in res.output


def test_bad_amount_is_argument_error(deployed):
    res = _run(deployed, "fund", "alice", "lots")
    assert res.exit_code == 1
    assert "INVALID_ARGUMENT" in res.output


def test_config_file_applies(tmp_path, db):
    cfg = tmp_path / "domains.yaml"
    cfg.write_text("pricing:\n  tier3: '2'\nnames:\n  max_length: 20\n", encoding="utf-8")
    res = runner.invoke(app, ["--db", db, "--config", str(cfg), "price", "eth"])
    assert res.stdout.strip() == "2"
    res = runner.invoke(app, ["--db", db, "--config", str(cfg), "valid", "some-long-string"])
    assert res.stdout.strip() == "true"


def test_database_from_environment(db):
    res = runner.invoke(app, ["deploy", "--no-register", "--tld", "ninja"], env={"DOMAINS_DB": db})
    assert res.exit_code == 0, res.output
    res = runner.invoke(app, ["tld"], env={"DOMAINS_DB": db})
    assert res.stdout.strip() == "ninja"


def test_config_file_from_environment(tmp_path, db):
    cfg = tmp_path / "domains.yaml"
    cfg.write_text("pricing:\n  tier3: '2'\n", encoding="utf-8")
    res = runner.invoke(app, ["--db", db, "price", "eth"], env={"DOMAINS_CONFIG_FILE": str(cfg)})
    assert res.exit_code == 0, res.output
    assert res.stdout.strip() == "2"


def test_deployed_rules_win_over_later_config(tmp_path, db):
    cfg = tmp_path / "domains.yaml"
    cfg.write_text("names:\n  max_length: 20\n", encoding="utf-8")
    res = runner.invoke(app, ["--db", db, "--config", str(cfg), "deploy", "--no-register"])
    assert res.exit_code == 0, res.output

    assert _run(db, "valid", "some-long-string").stdout.strip() == "true"
    assert _run(db, "fund", "deployer", "1").exit_code == 0
    res = _run(db, "register", "some-long-string", "--from", "deployer", "--value", "0.1")
    assert res.exit_code == 0, res.output
