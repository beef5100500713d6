"""
domains.logging
---------------

Logging for the registry and its CLI, on top of the stdlib `logging` tree
rooted at "domains".

Records get two kinds of structured fields:

* context fields, held in a `contextvars` mapping (`bind`, `unbind`,
  `trace_scope`) and stamped onto every record emitted while they are bound;
* per-call fields, passed as ``extra={...}``.

Two renderings: one JSON object per line, or a single human line
``ts | LEVEL | logger | k=v ... | message`` (colored on a TTY).

Usage
-----
    from domains import logging as dlog

    dlog.configure(json=False, level="INFO")
    log = dlog.get_logger("domains.contract")

    with dlog.trace_scope():
        dlog.bind(tld="otter")
        log.info("registered", extra={"domain": "dev"})

Note: ``name``, ``msg`` and the other LogRecord attributes cannot be used as
extra keys; the registry logs names under ``domain``.
"""

from __future__ import annotations

import datetime as _dt
import json as _json
import logging
import os
import sys
import traceback
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, TextIO, Tuple

ROOT_LOGGER = "domains"

# Context fields shown first, in this order, by the text formatter.
DEFAULT_CONTEXT_KEYS = ("trace_id", "tld", "caller", "op")

_FIELDS: ContextVar[Mapping[str, Any]] = ContextVar("domains_log_fields", default={})

# Attributes every LogRecord has; anything else on a record came from `extra`.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "taskName",
    "ctx",
}


# ---------------------------------------------------------------- context


def context() -> Dict[str, Any]:
    """Copy of the fields currently bound."""
    return dict(_FIELDS.get())


def bind(**fields: Any) -> None:
    _FIELDS.set({**_FIELDS.get(), **{k: _jsonable(v) for k, v in fields.items()}})


def unbind(*keys: str) -> None:
    _FIELDS.set({k: v for k, v in _FIELDS.get().items() if k not in keys})


def clear_context() -> None:
    _FIELDS.set({})


@contextmanager
def trace_scope(trace_id: Optional[str] = None) -> Iterator[str]:
    """Bind a trace id (random when omitted); every field bound inside is dropped on exit."""
    token = _FIELDS.set(dict(_FIELDS.get()))
    tid = trace_id or uuid.uuid4().hex[:12]
    try:
        bind(trace_id=tid)
        yield tid
    finally:
        _FIELDS.reset(token)


# ---------------------------------------------------------------- rendering


def _jsonable(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    if isinstance(v, (bytes, bytearray, memoryview)):
        return "0x" + bytes(v).hex()
    if isinstance(v, (list, tuple)):
        return [_jsonable(x) for x in v]
    if isinstance(v, dict):
        return {str(k): _jsonable(x) for k, x in v.items()}
    if isinstance(v, _dt.datetime):
        return (v if v.tzinfo else v.replace(tzinfo=_dt.timezone.utc)).isoformat()
    if is_dataclass(v) and not isinstance(v, type):
        return _jsonable(asdict(v))
    return str(v)


class _ContextFilter(logging.Filter):
    """Stamps the bound context onto each record at emit time."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.ctx = context()
        return True


def _record_fields(record: logging.LogRecord) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    ctx = dict(getattr(record, "ctx", None) or {})
    extra = {k: _jsonable(v) for k, v in vars(record).items() if k not in _RECORD_ATTRS and not k.startswith("_")}
    return ctx, extra


def _timestamp(record: logging.LogRecord) -> str:
    ts = _dt.datetime.fromtimestamp(record.created, tz=_dt.timezone.utc)
    return ts.isoformat(timespec="milliseconds")


def _exc_text(record: logging.LogRecord) -> Optional[str]:
    if not record.exc_info:
        return None
    return "".join(traceback.format_exception(*record.exc_info)).rstrip()


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        ctx, extra = _record_fields(record)
        out: Dict[str, Any] = {
            "ts": _timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            **ctx,
        }
        for k, v in extra.items():
            out.setdefault(k, v)
        err = _exc_text(record)
        if err:
            out["err"] = err
        return _json.dumps(out, default=str, separators=(",", ":"))


_COLORS = {
    logging.DEBUG: "90",
    logging.INFO: "32",
    logging.WARNING: "33",
    logging.ERROR: "31",
    logging.CRITICAL: "35;1",
}


class TextFormatter(logging.Formatter):
    """
    2026-01-05T12:34:56.789+00:00 | INFO  | domains.contract | trace_id=ab12 op=register domain=dev | registered
    """

    def __init__(self, color: bool = False) -> None:
        super().__init__()
        self.color = color

    def _paint(self, code: str, s: str) -> str:
        return f"\x1b[{code}m{s}\x1b[0m" if self.color else s

    def format(self, record: logging.LogRecord) -> str:
        ctx, extra = _record_fields(record)
        ordered = [(k, ctx.pop(k)) for k in DEFAULT_CONTEXT_KEYS if ctx.get(k) is not None]
        ordered += list(ctx.items())
        ordered += [(k, v) for k, v in extra.items() if k not in dict(ordered)]

        parts = [
            self._paint("90", _timestamp(record)),
            self._paint(_COLORS.get(record.levelno, "0"), f"{record.levelname:<5}"),
            self._paint("36", record.name),
        ]
        if ordered:
            parts.append(" ".join(f"{k}={v}" for k, v in ordered))
        parts.append(record.getMessage())
        line = " | ".join(parts)
        err = _exc_text(record)
        return f"{line}\n{err}" if err else line


# ---------------------------------------------------------------- setup


def _isatty(stream: Any) -> bool:
    try:
        return bool(stream.isatty())
    except (AttributeError, ValueError):
        return False


def _level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.INFO


def configure(
    *,
    json: Optional[bool] = None,
    level: str | int = "INFO",
    stream: TextIO = sys.stderr,
    file_path: Optional[Path | str] = None,
) -> logging.Logger:
    """
    (Re)configure the "domains" logger: one stream handler, plus a JSON-lines
    file handler when `file_path` is given.

    json=None reads $DOMAINS_LOG_FORMAT ("json" / "text"); without it, a TTY
    gets text and anything else gets JSON.
    """
    if json is None:
        env = os.environ.get("DOMAINS_LOG_FORMAT", "").strip().lower()
        json = env == "json" if env in ("json", "text") else not _isatty(stream)
    lvl = _level(level)

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(lvl)
    for h in list(root.handlers):
        root.removeHandler(h)
        if isinstance(h, logging.FileHandler):
            h.close()

    handlers = []
    console = logging.StreamHandler(stream)
    console.setFormatter(JSONFormatter() if json else TextFormatter(color=_isatty(stream) and "NO_COLOR" not in os.environ))
    handlers.append(console)
    if file_path:
        path = Path(file_path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setFormatter(JSONFormatter())
        handlers.append(fh)

    for h in handlers:
        h.setLevel(lvl)
        h.addFilter(_ContextFilter())
        root.addHandler(h)
    return root


def configure_from_config(cfg: Any, *, verbose: bool = False) -> logging.Logger:
    """Configure from a `DomainsConfig` (`log_format`, `log_level`); --verbose forces DEBUG."""
    return configure(
        json=getattr(cfg, "log_format", "text") == "json",
        level="DEBUG" if verbose else getattr(cfg, "log_level", "INFO"),
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or ROOT_LOGGER)


class ContextAdapter(logging.LoggerAdapter):
    """Adds fixed fields to every call; call-site `extra=` wins on conflicts."""

    def process(self, msg: Any, kwargs: Any) -> Tuple[Any, Any]:
        kwargs["extra"] = {**(self.extra or {}), **(kwargs.get("extra") or {})}
        return msg, kwargs


def with_fields(logger: logging.Logger, **fields: Any) -> ContextAdapter:
    return ContextAdapter(logger, {k: _jsonable(v) for k, v in fields.items()})


__all__ = [
    "DEFAULT_CONTEXT_KEYS",
    "bind",
    "unbind",
    "clear_context",
    "context",
    "trace_scope",
    "configure",
    "configure_from_config",
    "get_logger",
    "with_fields",
    "ContextAdapter",
    "JSONFormatter",
    "TextFormatter",
]
