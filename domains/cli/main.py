"""
domains - command-line access to a registry persisted in a local SQLite file.

Global options:
  --db TEXT            Database URI or path (env DOMAINS_DB; default from config)
  --config PATH        JSON/YAML config file (env DOMAINS_CONFIG_FILE)
  --json               Output JSON instead of human-readable text
  --verbose / -v       Debug logging

Accounts are given either as 0x-prefixed hex addresses or as dev labels
("deployer", "alice", ...) which map to deterministic addresses. Amounts are
decimal strings in native units ("0.1").

Examples:
  domains --db ./otter.db deploy --tld otter
  domains --db ./otter.db register alice-site --from alice --value 0.1
  domains --db ./otter.db address alice-site
  domains --db ./otter.db record-set alice-site "hello" --from deployer
  domains --db ./otter.db withdraw --from deployer
  domains price eth
"""

from __future__ import annotations

import json
import re
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Tuple

import typer

from ..config import DomainsConfig, load_config
from ..contract import Domains
from ..deploy import deploy_and_register
from ..errors import DomainsError, StateError, error_to_dict
from ..logging import configure_from_config, get_logger
from ..pricing import PriceSchedule
from ..state import dev_address, open_kv, to_address, to_hex
from ..units import format_units, parse_units
from ..validator import NameValidator
from ..version import __version__

log = get_logger("domains.cli")

app = typer.Typer(
    name="domains",
    help="Name registry for a single top-level domain.",
    no_args_is_help=True,
    add_completion=False,
)

_HEX_ADDR = re.compile(r"^(0x)?[0-9a-fA-F]{40}$")


class GlobalContext:
    def __init__(self) -> None:
        self.db: Optional[str] = None
        self.config: DomainsConfig = DomainsConfig()
        self.json_output: bool = False
        self.verbose: bool = False


_ctx = GlobalContext()


@app.callback()
def main_callback(
    db: Optional[str] = typer.Option(
        None,
        "--db",
        help="Database URI or path (memory://, sqlite:///path, or a file path)",
        envvar="DOMAINS_DB",
    ),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to a JSON or YAML config file",
        envvar="DOMAINS_CONFIG_FILE",
    ),
    json_output: bool = typer.Option(False, "--json", help="Output JSON instead of human-readable text"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """
    Resolve configuration and logging for every subcommand.

    Precedence: flags > environment > config file > built-in defaults.
    """
    _ctx.json_output = json_output
    _ctx.verbose = verbose
    try:
        _ctx.config = load_config(path=config)
    except DomainsError as e:
        _fail(e)
    _ctx.db = db or _ctx.config.db_uri
    configure_from_config(_ctx.config, verbose=verbose)


# -------------------- helpers --------------------


def _fail(err: BaseException) -> None:
    payload = error_to_dict(err)
    if not isinstance(err, DomainsError):
        payload["code"] = "INVALID_ARGUMENT"
    if _ctx.json_output:
        typer.echo(json.dumps({"error": payload}), err=True)
    else:
        typer.echo(f"{payload['code']}: {payload['message']}", err=True)
    raise typer.Exit(code=1)


def _emit(data: Dict[str, Any], text: str) -> None:
    typer.echo(json.dumps(data, sort_keys=True) if _ctx.json_output else text)


def _account(value: str) -> bytes:
    """Hex address or dev label -> 20-byte address."""
    if _HEX_ADDR.match(value.strip()):
        return to_address(value)
    return dev_address(value)


def _amount(value: str) -> int:
    return parse_units(value, _ctx.config.decimals)


def _fmt(amount: int) -> str:
    return format_units(amount, _ctx.config.decimals)


@contextmanager
def _guard() -> Iterator[None]:
    """Turn domain and argument errors into `CODE: message` + exit 1."""
    try:
        yield
    except (DomainsError, ValueError) as e:
        log.debug("command failed", extra={"error": repr(e)})
        _fail(e)


@contextmanager
def _contract(*, create: bool = False) -> Iterator[Domains]:
    assert _ctx.db is not None
    with _guard():
        try:
            kv = open_kv(_ctx.db, create=create)
        except FileNotFoundError:
            raise StateError(f"no database at {_ctx.db}; run `domains deploy` first") from None
        try:
            yield Domains.open(kv, config=_ctx.config)
        finally:
            kv.close()


def _rules() -> Tuple[NameValidator, PriceSchedule]:
    """Rules of the deployment in --db; the configured ones when nothing is deployed there."""
    assert _ctx.db is not None
    with _guard():
        try:
            kv = open_kv(_ctx.db, create=False)
        except FileNotFoundError:
            return NameValidator.from_config(_ctx.config), PriceSchedule.from_config(_ctx.config)
        try:
            d = Domains(kv, config=_ctx.config)
            return d.validator, d.schedule
        finally:
            kv.close()


# -------------------- commands --------------------


@app.command()
def deploy(
    tld: Optional[str] = typer.Option(None, "--tld", help="Top-level domain (default from config)"),
    deployer: str = typer.Option("deployer", "--deployer", help="Administrator account"),
    name: str = typer.Option("dev", "--name", help="Initial name registered to the deployer"),
    value: str = typer.Option("0.1", "--value", help="Amount attached to the initial registration"),
    no_register: bool = typer.Option(False, "--no-register", help="Deploy without an initial registration"),
) -> None:
    """Deploy a registry into --db and register an initial name."""
    assert _ctx.db is not None
    with _guard():
        kv = open_kv(_ctx.db, create=True)
        try:
            dep = deploy_and_register(
                kv,
                _account(deployer),
                tld=tld or _ctx.config.default_tld,
                initial_name=None if no_register else name,
                initial_value=_amount(value),
                config=_ctx.config,
            )
        finally:
            kv.close()
    text = f"Contract deployed to: {to_hex(dep.address)}"
    if dep.initial_name is not None:
        text += f"\nOwner of domain {dep.initial_name}: {to_hex(dep.initial_owner)}"
    _emit(dep.to_dict(), text)


@app.command()
def register(
    name: str = typer.Argument(..., help="Name to claim"),
    sender: str = typer.Option("deployer", "--from", help="Paying account"),
    value: str = typer.Option("0", "--value", help="Attached amount in native units"),
) -> None:
    """Register NAME to --from, paying --value."""
    with _contract() as d:
        d.register(_account(sender), name, _amount(value))
        owner = d.get_address(name)
        tld = d.tld()
    _emit({"name": name, "tld": tld, "owner": to_hex(owner)}, f"Registered {name}.{tld} to {to_hex(owner)}")


@app.command()
def address(name: str = typer.Argument(..., help="Name to resolve")) -> None:
    """Resolve NAME to its owner (zero address when unregistered)."""
    with _contract() as d:
        owner = d.get_address(name)
    _emit({"name": name, "address": to_hex(owner)}, to_hex(owner))


@app.command("record-set")
def record_set(
    name: str = typer.Argument(...),
    data: str = typer.Argument(...),
    sender: str = typer.Option("deployer", "--from", help="Calling account (must be the administrator)"),
) -> None:
    """Set the record of NAME (administrator only)."""
    with _contract() as d:
        d.set_record(_account(sender), name, data)
    _emit({"name": name, "record": data}, f"Record of {name} set")


@app.command("record-get")
def record_get(name: str = typer.Argument(...)) -> None:
    """Print the record of NAME ("" when none)."""
    with _contract() as d:
        record = d.get_record(name)
    _emit({"name": name, "record": record}, record)


@app.command()
def names() -> None:
    """List registered names in registration order."""
    with _contract() as d:
        all_names = d.get_all_names()
    _emit({"names": all_names}, "\n".join(all_names))


@app.command()
def price(name: str = typer.Argument(...)) -> None:
    """Registration fee for NAME."""
    amount = _rules()[1].price(name)
    _emit({"name": name, "price": str(amount), "price_units": _fmt(amount)}, _fmt(amount))


@app.command()
def valid(name: str = typer.Argument(...)) -> None:
    """Whether NAME satisfies the length rule."""
    ok = _rules()[0].valid(name)
    _emit({"name": name, "valid": ok}, "true" if ok else "false")


@app.command()
def withdraw(sender: str = typer.Option("deployer", "--from", help="Calling account (must be the administrator)")) -> None:
    """Move the contract balance to the administrator."""
    with _contract() as d:
        amount = d.withdraw(_account(sender))
    _emit({"amount": str(amount), "amount_units": _fmt(amount)}, f"Withdrew {_fmt(amount)}")


@app.command("transfer-ownership")
def transfer_ownership(
    new_admin: str = typer.Argument(..., help="New administrator account"),
    sender: str = typer.Option("deployer", "--from", help="Current administrator"),
) -> None:
    """Hand the administrator role to NEW_ADMIN."""
    with _contract() as d:
        d.transfer_ownership(_account(sender), _account(new_admin))
        owner = d.owner()
    _emit({"owner": to_hex(owner)}, f"Administrator is now {to_hex(owner)}")


@app.command("is-owner")
def is_owner(account: str = typer.Argument(..., help="Account to check")) -> None:
    """Whether ACCOUNT is the administrator."""
    with _contract() as d:
        ok = d.is_owner(_account(account))
    _emit({"account": to_hex(_account(account)), "is_owner": ok}, "true" if ok else "false")


@app.command()
def tld() -> None:
    """Print the TLD served by the deployment."""
    with _contract() as d:
        value = d.tld()
    _emit({"tld": value}, value)


@app.command()
def balance(account: Optional[str] = typer.Argument(None, help="Account; omit for the contract balance")) -> None:
    """Balance of ACCOUNT, or the fees held by the contract."""
    with _contract() as d:
        amount = d.balance() if account is None else d.balance_of(_account(account))
    _emit({"account": account or "contract", "balance": str(amount), "balance_units": _fmt(amount)}, _fmt(amount))


@app.command()
def fund(
    account: str = typer.Argument(..., help="Account to credit"),
    amount: str = typer.Argument(..., help="Amount in native units"),
) -> None:
    """Dev faucet: credit AMOUNT to ACCOUNT."""
    with _contract() as d:
        addr = _account(account)
        d.fund(addr, _amount(amount))
        after = d.balance_of(addr)
    _emit({"account": to_hex(addr), "balance": str(after)}, f"{to_hex(addr)} balance {_fmt(after)}")


@app.command()
def account(label: str = typer.Argument(..., help="Dev label or hex address")) -> None:
    """Print the address behind a dev label."""
    with _guard():
        addr = _account(label)
    _emit({"label": label, "address": to_hex(addr)}, to_hex(addr))


@app.command()
def version() -> None:
    """Print the package version."""
    _emit({"version": __version__}, __version__)


def main() -> None:
    """Entry point for the domains CLI."""
    app()


if __name__ == "__main__":
    main()
