from __future__ import annotations
"""
domains.config: configuration for the name registry

Covers:
- Name length bounds accepted by the validator
- The three price tiers (native units, decimal strings)
- Native unit precision (decimals)
- Default TLD and database URI used by the CLI / deployment routine
- Logging level and format

Environment overrides (all optional; sensible defaults provided):

  DOMAINS_MIN_NAME_LENGTH=1
  DOMAINS_MAX_NAME_LENGTH=10

  # Prices in native units (exact decimal strings)
  DOMAINS_PRICE_TIER3=0.5
  DOMAINS_PRICE_TIER4=0.3
  DOMAINS_PRICE_DEFAULT=0.1

  DOMAINS_DECIMALS=18
  DOMAINS_TLD=otter
  DOMAINS_DB=domains.db
  DOMAINS_LOG_LEVEL=INFO
  DOMAINS_LOG_FORMAT=text

You can also load from a JSON or YAML file via `DOMAINS_CONFIG_FILE=/path/to/config.(json|yaml|yml)`.
File values override defaults; environment overrides the file; explicit
overrides passed to `load_config` override everything.
"""


from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
import json
import os

import yaml

from .errors import ConfigError
from .units import DEFAULT_DECIMALS, parse_units


# -------------------------- Data classes --------------------------


# Names are stored as key parts of at most 65535 UTF-8 bytes, 4 bytes per code point worst case.
NAME_LENGTH_CEILING = 0xFFFF // 4


@dataclass
class NameRules:
    """Inclusive length bounds, counted in Unicode code points."""
    min_length: int = 1
    max_length: int = 10

    def validate(self) -> None:
        if self.min_length < 1:
            raise ConfigError(f"min_length must be >= 1 (got {self.min_length}).")
        if self.max_length < self.min_length:
            raise ConfigError(
                f"max_length must be >= min_length (got {self.max_length} < {self.min_length})."
            )
        if self.max_length > NAME_LENGTH_CEILING:
            raise ConfigError(f"max_length must be <= {NAME_LENGTH_CEILING} (got {self.max_length}).")


@dataclass
class PricingTiers:
    """Registration fees in native units: 3-char names, 4-char names, everything else."""
    tier3: str = "0.5"
    tier4: str = "0.3"
    default: str = "0.1"

    def validate(self, decimals: int) -> None:
        for name in ("tier3", "tier4", "default"):
            raw = getattr(self, name)
            try:
                parse_units(str(raw), decimals)
            except ValueError as e:
                raise ConfigError(f"pricing.{name} is not a valid amount: {raw!r}") from e

    def base_units(self, decimals: int) -> Dict[str, int]:
        return {
            "tier3": parse_units(str(self.tier3), decimals),
            "tier4": parse_units(str(self.tier4), decimals),
            "default": parse_units(str(self.default), decimals),
        }


@dataclass
class DomainsConfig:
    """Top-level configuration container."""
    names: NameRules = field(default_factory=NameRules)
    pricing: PricingTiers = field(default_factory=PricingTiers)

    decimals: int = DEFAULT_DECIMALS
    default_tld: str = "otter"
    db_uri: str = "domains.db"
    log_level: str = "INFO"
    log_format: str = "text"

    def validate(self) -> None:
        self.names.validate()
        if not (0 <= self.decimals <= 77):
            raise ConfigError(f"decimals must be within [0, 77] (got {self.decimals}).")
        self.pricing.validate(self.decimals)
        if not self.default_tld:
            raise ConfigError("default_tld must be non-empty.")
        if self.log_format not in ("text", "json"):
            raise ConfigError(f"log_format must be 'text' or 'json' (got {self.log_format!r}).")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# -------------------------- Loading --------------------------


_ENV_MAP = {
    # env var               (section, key, caster)
    "DOMAINS_MIN_NAME_LENGTH": ("names", "min_length", int),
    "DOMAINS_MAX_NAME_LENGTH": ("names", "max_length", int),
    "DOMAINS_PRICE_TIER3": ("pricing", "tier3", str),
    "DOMAINS_PRICE_TIER4": ("pricing", "tier4", str),
    "DOMAINS_PRICE_DEFAULT": ("pricing", "default", str),
    "DOMAINS_DECIMALS": (None, "decimals", int),
    "DOMAINS_TLD": (None, "default_tld", str),
    "DOMAINS_DB": (None, "db_uri", str),
    "DOMAINS_LOG_LEVEL": (None, "log_level", str),
    "DOMAINS_LOG_FORMAT": (None, "log_format", str),
}


def _read_file(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        raise ConfigError(f"config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text or "{}")
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    return data


def _merge(dst: Dict[str, Any], src: Mapping[str, Any]) -> None:
    for k, v in src.items():
        if isinstance(v, Mapping) and isinstance(dst.get(k), dict):
            _merge(dst[k], v)
        else:
            dst[k] = v


def _from_env(env: Mapping[str, str]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for var, (section, key, caster) in _ENV_MAP.items():
        raw = env.get(var)
        if raw is None or raw == "":
            continue
        try:
            value = caster(raw)
        except ValueError as e:
            raise ConfigError(f"{var} has an invalid value: {raw!r}") from e
        if section is None:
            out[key] = value
        else:
            out.setdefault(section, {})[key] = value
    return out


_INT_FIELDS = ("min_length", "max_length", "decimals")


def _as_int(key: str, value: Any) -> Any:
    # files may carry "12" for 12; bools are not lengths
    if key not in _INT_FIELDS:
        return value
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be an integer (got {value!r}).")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be an integer (got {value!r}).") from e


def _build(data: Mapping[str, Any]) -> DomainsConfig:
    try:
        names = NameRules(**{k: _as_int(k, v) for k, v in dict(data.get("names") or {}).items()})
        pricing = PricingTiers(**{k: str(v) for k, v in dict(data.get("pricing") or {}).items()})
        top = {k: _as_int(k, v) for k, v in data.items() if k not in ("names", "pricing")}
        cfg = DomainsConfig(names=names, pricing=pricing, **top)
        cfg.validate()
    except TypeError as e:
        raise ConfigError(f"invalid configuration: {e}") from e
    return cfg


def load_config(
    overrides: Optional[Mapping[str, Any]] = None,
    *,
    path: Optional[str | Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> DomainsConfig:
    """
    Resolve configuration: defaults < file < environment < overrides.

    `path` defaults to $DOMAINS_CONFIG_FILE when unset. `env` defaults to
    os.environ (tests pass a plain dict).
    """
    env = os.environ if env is None else env
    data: Dict[str, Any] = DomainsConfig().to_dict()

    file_path = path or env.get("DOMAINS_CONFIG_FILE")
    if file_path:
        _merge(data, _read_file(Path(file_path).expanduser()))
    _merge(data, _from_env(env))
    if overrides:
        _merge(data, overrides)
    return _build(data)


DEFAULT_CONFIG = DomainsConfig()


__all__ = [
    "NameRules",
    "PricingTiers",
    "DomainsConfig",
    "DEFAULT_CONFIG",
    "load_config",
]
