from __future__ import annotations

import json

import pytest

from domains.config import DEFAULT_CONFIG, load_config
from domains.errors import ConfigError
from domains.units import parse_units


def test_defaults():
    cfg = load_config(env={})
    assert cfg.names.min_length == 1
    assert cfg.names.max_length == 10
    assert cfg.pricing.base_units(cfg.decimals) == {
        "tier3": parse_units("0.5"),
        "tier4": parse_units("0.3"),
        "default": parse_units("0.1"),
    }
    assert cfg.default_tld == "otter"
    assert cfg.to_dict() == DEFAULT_CONFIG.to_dict()


def test_yaml_file(tmp_path):
    p = tmp_path / "domains.yaml"
    p.write_text(
        "names:\n  max_length: 12\npricing:\n  tier3: 1\ndefault_tld: ninja\n",
        encoding="utf-8",
    )
    cfg = load_config(path=p, env={})
    assert cfg.names.max_length == 12
    assert cfg.names.min_length == 1
    assert cfg.pricing.tier3 == "1"
    assert cfg.pricing.tier4 == "0.3"
    assert cfg.default_tld == "ninja"


def test_precedence_file_env_overrides(tmp_path):
    p = tmp_path / "domains.json"
    p.write_text(json.dumps({"default_tld": "file", "log_level": "WARNING"}), encoding="utf-8")
    env = {"DOMAINS_CONFIG_FILE": str(p), "DOMAINS_TLD": "env", "DOMAINS_MAX_NAME_LENGTH": "20"}

    cfg = load_config(env=env)
    assert cfg.default_tld == "env"
    assert cfg.log_level == "WARNING"
    assert cfg.names.max_length == 20

    cfg = load_config({"default_tld": "explicit", "names": {"max_length": 5}}, env=env)
    assert cfg.default_tld == "explicit"
    assert cfg.names.max_length == 5


@pytest.mark.parametrize(
    "env",
    [
        {"DOMAINS_MIN_NAME_LENGTH": "0"},
        {"DOMAINS_MIN_NAME_LENGTH": "5", "DOMAINS_MAX_NAME_LENGTH": "4"},
        {"DOMAINS_MAX_NAME_LENGTH": "ten"},
        {"DOMAINS_PRICE_TIER3": "-1"},
        {"DOMAINS_PRICE_DEFAULT": "lots"},
        {"DOMAINS_LOG_FORMAT": "xml"},
    ],
)
def test_invalid_values(env):
    with pytest.raises(ConfigError):
        load_config(env=env)


def test_empty_env_values_are_ignored():
    assert load_config(env={"DOMAINS_TLD": ""}).default_tld == "otter"


def test_unknown_key_rejected():
    with pytest.raises(ConfigError):
        load_config({"colour": "blue"}, env={})


def test_missing_or_bad_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(path=tmp_path / "nope.yaml", env={})
    bad = tmp_path / "bad.yaml"
    bad.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path=bad, env={})


def test_file_lengths_given_as_strings(tmp_path):
    p = tmp_path / "domains.yaml"
    p.write_text('names:\n  min_length: "2"\n  max_length: "12"\ndecimals: "18"\n', encoding="utf-8")
    cfg = load_config(path=p, env={})
    assert cfg.names.min_length == 2
    assert cfg.names.max_length == 12
    assert cfg.decimals == 18


@pytest.mark.parametrize(
    "overrides",
    [
        {"names": {"max_length": "twelve"}},
        {"names": {"min_length": None}},
        {"names": {"max_length": True}},
        {"names": {"max_length": 20000}},
        {"decimals": "many"},
    ],
)
def test_bad_lengths_raise_config_error(overrides):
    with pytest.raises(ConfigError):
        load_config(overrides, env={})
