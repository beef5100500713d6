from __future__ import annotations

import io
import json
import logging

from domains import logging as dlog
from domains.errors import AlreadyRegistered, InsufficientPayment, InvalidName, error_to_dict
from domains.units import parse_units


def test_error_codes_and_payloads():
    err = InsufficientPayment(required=5, provided=3, name="eth")
    assert err.to_dict() == {
        "code": "INSUFFICIENT_PAYMENT",
        "message": "payment below the name price",
        "details": {"required": 5, "provided": 3, "name": "eth"},
    }
    assert str(err).startswith("INSUFFICIENT_PAYMENT: ")
    assert str(AlreadyRegistered()) == "ALREADY_REGISTERED: name already registered"
    assert InvalidName("x" * 11).details == {"name": "x" * 11}


def test_error_to_dict_for_foreign_errors():
    assert error_to_dict(KeyError("k"))["code"] == "INTERNAL"


def test_json_logging_carries_context():
    buf = io.StringIO()
    dlog.configure(json=True, level="DEBUG", stream=buf)
    log = dlog.get_logger("domains.test")
    with dlog.trace_scope("abc123"):
        dlog.bind(tld="otter")
        log.info("hello", extra={"domain": "dev"})
    line = json.loads(buf.getvalue().strip().splitlines()[-1])
    assert line["msg"] == "hello"
    assert line["trace_id"] == "abc123"
    assert line["tld"] == "otter"
    assert line["domain"] == "dev"
    assert dlog.context() == {}


def test_text_logging_format():
    buf = io.StringIO()
    dlog.configure(json=False, level="INFO", stream=buf)
    dlog.with_fields(dlog.get_logger("domains.test"), op="register").info("ok")
    out = buf.getvalue()
    assert "| INFO  | domains.test |" in out
    assert "op=register" in out
    assert out.rstrip().endswith("| ok")


def test_contract_logs_operations(contract, alice):
    buf = io.StringIO()
    dlog.configure(json=True, level="DEBUG", stream=buf)
    contract.register(alice, "abc", parse_units("0.5"))
    try:
        contract.register(alice, "abc", parse_units("0.5"))
    except AlreadyRegistered:
        pass
    records = [json.loads(l) for l in buf.getvalue().splitlines()]
    ok = [r for r in records if r["msg"] == "registered"]
    rejected = [r for r in records if r["msg"] == "rejected"]
    assert ok and ok[0]["domain"] == "abc"
    assert rejected and rejected[0]["code"] == "ALREADY_REGISTERED"
    assert rejected[0]["level"] == "DEBUG"
    logging.getLogger("domains").handlers.clear()
