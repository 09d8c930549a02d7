"""CLI entry point for keep-rewards."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, Awaitable, Callable, TypeVar

import click

from keep_rewards.addresses import checksum
from keep_rewards.api.service import KeepLedgerService
from keep_rewards.config import load_config
from keep_rewards.errors import LedgerError
from keep_rewards.models.config import AppConfig

T = TypeVar("T")


async def _open_service(cfg: AppConfig) -> KeepLedgerService:
    return await KeepLedgerService.initialize(cfg)


def _load(ctx: click.Context) -> AppConfig:
    cfg = load_config(ctx.obj["config_path"])
    if not ctx.obj["verbose"]:
        logging.getLogger().setLevel(cfg.log_level.upper())
    return cfg


def _run(ctx: click.Context, fn: Callable[[KeepLedgerService], Awaitable[T]]) -> T:
    """Open the service, run one query against it, and always close it."""
    cfg = _load(ctx)

    async def _go() -> T:
        service = await _open_service(cfg)
        try:
            return await fn(service)
        finally:
            await service.close()

    try:
        return asyncio.run(_go())
    except LedgerError as exc:
        click.echo(f"Error [{exc.code}]: {exc.message}", err=True)
        sys.exit(1)


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2))


def _address(ctx: click.Context, param: click.Parameter, value: Any) -> Any:
    """Reject malformed addresses before any ledger access."""
    for item in value if isinstance(value, tuple) else (value,):
        try:
            checksum(item)
        except ValueError as exc:
            raise click.BadParameter(str(exc), ctx=ctx, param=param) from exc
    return value


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """keep-rewards - Keep network delegation and beacon reward queries."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show resolved configuration."""
    cfg = _load(ctx)
    click.echo(f"RPC URL:      {cfg.rpc_url}")
    click.echo(f"Chain ID:     {cfg.chain_id if cfg.chain_id is not None else '(auto)'}")
    click.echo(f"Start block:  {cfg.start_block}")
    click.echo(f"Sender:       {cfg.from_address or '(not set)'}")
    click.echo(f"Page size:    {cfg.events.page_size} blocks")
    click.echo(f"Concurrency:  {cfg.query.max_concurrency}")
    click.echo(f"Timeout:      {f'{cfg.query.timeout:g}s' if cfg.query.timeout else '(none)'}")
    if not cfg.contracts:
        click.echo("Contracts:    (none configured)")
    for name, source in cfg.contracts.items():
        where = source.address or source.artifact or "(unresolved)"
        click.echo(f"  {name:<36} {where}")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def contracts(ctx: click.Context, as_json: bool) -> None:
    """Resolve every contract and read the staking constants."""

    async def _contracts(service: KeepLedgerService):
        return service.contracts(), service.staking_constants()

    descriptors, constants = _run(ctx, _contracts)
    if as_json:
        _echo_json({
            "contracts": {
                d.name: {"address": d.address, "startBlock": d.start_block}
                for d in descriptors
            },
            "minimumStake": str(constants.minimum_stake),
            "initializationPeriod": str(constants.initialization_period),
            "undelegationPeriod": str(constants.undelegation_period),
        })
        return
    for d in descriptors:
        click.echo(f"{d.name:<36} {d.address}  (from block {d.start_block})")
    click.echo("")
    click.echo(f"Minimum stake:          {constants.minimum_stake}")
    click.echo(f"Initialization period:  {constants.initialization_period}")
    click.echo(f"Undelegation period:    {constants.undelegation_period}")


@cli.command()
@click.argument("owner", callback=_address)
@click.pass_context
def balance(ctx: click.Context, owner: str) -> None:
    """Show the KEEP token balance of an address."""
    amount = _run(ctx, lambda service: service.token_balance(owner))
    click.echo(f"{owner}: {amount}")


# ── Delegations ────────────────────────────────────────


@cli.command()
@click.argument("operators", nargs=-1, required=True, callback=_address)
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def delegations(ctx: click.Context, operators: tuple[str, ...], as_json: bool) -> None:
    """Live delegation records for one or more operators."""
    records = _run(ctx, lambda service: service.get_delegations(list(operators)))
    if as_json:
        _echo_json([d.as_dict() for d in records])
        return
    for d in records:
        click.echo(f"Operator:     {d.operator}")
        click.echo(f"  Amount:       {d.amount}")
        click.echo(f"  Beneficiary:  {d.beneficiary}")
        click.echo(f"  Authorizer:   {d.authorizer}")
        click.echo(f"  Created at:   {d.created_at}")
        if d.is_undelegated:
            click.echo(f"  Undelegated:  {d.undelegated_at}")


@cli.command("authorizer-operators")
@click.argument("authorizer", callback=_address)
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def authorizer_operators(ctx: click.Context, authorizer: str, as_json: bool) -> None:
    """Operators whose authorizer is AUTHORIZER."""
    operators = _run(ctx, lambda service: service.get_authorizer_operators(authorizer))
    if as_json:
        _echo_json(operators)
        return
    if not operators:
        click.echo("No operators found.")
    for op in operators:
        click.echo(op)


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def history(ctx: click.Context, as_json: bool) -> None:
    """Delegations replayed from the full staking event history."""
    records = _run(ctx, lambda service: service.reconstruct_delegations())
    if as_json:
        _echo_json([d.as_dict() for d in records])
        return
    click.echo(f"{'Operator':<44} {'Owner':<44} {'Amount':>28}  Undelegated")
    for d in records:
        click.echo(
            f"{d.operator:<44} {d.owner or '-':<44} {d.amount:>28}  "
            f"{d.undelegated_at or '-'}"
        )


# ── Groups & rewards ───────────────────────────────────


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def groups(ctx: click.Context, as_json: bool) -> None:
    """Created beacon groups with their lifecycle state."""
    records = _run(ctx, lambda service: service.get_groups())
    if as_json:
        _echo_json([g.as_dict() for g in records])
        return
    for g in records:
        state = "stale" if g.is_stale else ("terminated" if g.is_terminated else "active")
        click.echo(f"#{g.group_index:<5} {state:<11} {len(g.members):>4} members  {g.public_key[:20]}...")


@cli.command()
@click.argument("beneficiary", callback=_address)
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def rewards(ctx: click.Context, beneficiary: str, as_json: bool) -> None:
    """Unclaimed beacon group rewards payable to BENEFICIARY."""
    entries = _run(
        ctx, lambda service: service.find_keep_random_beacon_rewards_for_beneficiary(beneficiary),
    )
    if as_json:
        _echo_json([e.as_dict() for e in entries])
        return
    if not entries:
        click.echo("No unclaimed rewards.")
        return
    for e in entries:
        flags = "stale" if e.is_stale else ("terminated" if e.is_terminated else "active")
        click.echo(f"Group {e.group_index:<5} {e.operator_address}  {e.reward}  ({flags})")
    click.echo(f"Total: {sum(e.reward for e in entries)}")


@cli.command()
@click.argument("beneficiary", callback=_address)
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
def withdrawn(ctx: click.Context, beneficiary: str, as_json: bool) -> None:
    """Past reward withdrawals paid to BENEFICIARY."""
    records = _run(ctx, lambda service: service.get_withdrawn_rewards_for_beneficiary(beneficiary))
    if as_json:
        _echo_json([w.as_dict() for w in records])
        return
    if not records:
        click.echo("No withdrawals found.")
    for w in records:
        click.echo(f"Block {w.block_number:<10} group {w.group_index:<5} {w.operator}  {w.amount}")


# ── Transactions ───────────────────────────────────────


@cli.command()
@click.argument("member", callback=_address)
@click.argument("group_index", type=int)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def withdraw(ctx: click.Context, member: str, group_index: int, yes: bool) -> None:
    """Withdraw MEMBER's rewards for group GROUP_INDEX."""
    if not yes:
        click.confirm(f"Withdraw rewards of {member} for group {group_index}?", abort=True)
    receipt = _run(ctx, lambda service: service.withdraw_group_member_rewards(member, group_index))
    click.echo(f"Withdrawn in block {receipt.block_number} (tx {receipt.tx_hash})")


@cli.command()
@click.argument("operator", callback=_address)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def authorize(ctx: click.Context, operator: str, yes: bool) -> None:
    """Authorize the beacon operator contract for OPERATOR."""
    if not yes:
        click.confirm(f"Authorize the random beacon for {operator}?", abort=True)
    receipt = _run(
        ctx, lambda service: service.authorize_keep_random_beacon_operator_contract(operator),
    )
    click.echo(f"Authorized in block {receipt.block_number} (tx {receipt.tx_hash})")
