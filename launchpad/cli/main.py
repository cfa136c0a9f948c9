#!/usr/bin/env python3
"""
Launchpad CLI

Command-line interface for inspecting launchpad configuration and
simulating fee quotes and token creation against an in-memory factory.

Usage:
    launchpad fees
    launchpad quote --caller <address> [--balance N]
    launchpad create --caller <address> --name NAME --symbol SYM [--payment N]
    launchpad show-config
"""

import asyncio
import json
from typing import Optional

import click

from ..config import LaunchpadConfig, load_config
from ..exceptions import LaunchpadError
from ..factory import FeeSchedule, TokenFactory
from ..height import HeightCounter
from ..logger import LogManager
from ..oracle import JsonRpcBalanceOracle, StaticBalanceOracle


def format_address(address: Optional[str], short: bool = False) -> str:
    """Format address for display."""
    if not address:
        return "-"
    if short:
        return f"{address[:10]}...{address[-8:]}"
    return address


def _build_oracle(cfg: LaunchpadConfig, caller: str, balance: Optional[int]):
    """Static oracle when a balance is given on the command line, else JSON-RPC if configured."""
    if balance is not None:
        if not cfg.factory.discount_token:
            raise click.ClickException("--balance given but no discount_token is configured")
        return StaticBalanceOracle({(cfg.factory.discount_token, caller): balance})
    if cfg.oracle.rpc_url:
        return JsonRpcBalanceOracle(
            cfg.oracle.rpc_url,
            timeout=cfg.oracle.timeout,
            block_tag=cfg.oracle.block_tag,
        )
    return None


def _build_factory(cfg: LaunchpadConfig, caller: str, oracle) -> TokenFactory:
    if not cfg.factory.owner:
        cfg.factory.owner = caller
    return TokenFactory.from_config(cfg, oracle=oracle, height_fn=HeightCounter())


async def _close_oracle(oracle):
    if isinstance(oracle, JsonRpcBalanceOracle):
        await oracle.aclose()


@click.group()
@click.version_option(version="0.1.0", prog_name="launchpad")
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(),
    default=None,
    help="Path to launchpad.toml (default: $LAUNCHPAD_CONFIG or ./launchpad.toml)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str]):
    """Token Launchpad Command Line Interface

    Inspect factory fees and simulate token launches.
    """
    cfg = load_config(config_path)
    try:
        cfg.validate()
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}")
    LogManager().set_level(cfg.logging.level)
    ctx.obj = cfg


@cli.command("fees")
@click.pass_obj
def fees_cmd(cfg: LaunchpadConfig):
    """Show the creation fee schedule."""
    schedule = FeeSchedule(base_fee=cfg.factory.base_fee)

    click.echo(click.style("Fee Schedule", fg="cyan", bold=True))
    click.echo(f"Base fee:        {schedule.base_fee}")
    click.echo(f"Anti-bot fee:    {schedule.anti_bot_fee}")
    click.echo(f"Anti-whale fee:  {schedule.anti_whale_fee}")
    click.echo(f"Airdrop fee:     {schedule.airdrop_fee}")
    click.echo()
    if cfg.factory.discount_token and cfg.factory.discount_percentage:
        click.echo(click.style("Holder Discount", fg="cyan", bold=True))
        click.echo(f"Token:      {format_address(cfg.factory.discount_token)}")
        click.echo(f"Threshold:  {cfg.factory.discount_threshold}")
        click.echo(f"Discount:   {cfg.factory.discount_percentage}%")
    else:
        click.echo("Holder discount: not configured")
    click.echo(f"Whitelisted callers: {len(cfg.factory.whitelist)}")


@cli.command("quote")
@click.option("--caller", required=True, help="Address that would create the token")
@click.option("--balance", type=int, default=None, help="Caller's discount-token balance to assume")
@click.option("--json", "as_json", is_flag=True, help="Print the quote as JSON")
@click.pass_obj
def quote_cmd(cfg: LaunchpadConfig, caller: str, balance: Optional[int], as_json: bool):
    """Show the fee a caller would pay.

    Examples:

        launchpad quote --caller 0xAbC...

        launchpad quote --caller 0xAbC... --balance 5000
    """
    async def run():
        oracle = _build_oracle(cfg, caller, balance)
        try:
            factory = _build_factory(cfg, caller, oracle)
            return await factory.quote(caller)
        finally:
            await _close_oracle(oracle)

    try:
        quote = asyncio.run(run())
    except LaunchpadError as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps(quote.to_dict(), indent=2))
        return

    click.echo(f"Caller:    {quote.caller}")
    click.echo(f"Base fee:  {quote.base_fee}")
    click.echo(click.style(f"Fee:       {quote.fee}", fg="green", bold=True))
    if quote.whitelisted:
        click.echo("Caller is whitelisted")
    elif quote.discount_applied:
        click.echo(f"Holder discount applied ({cfg.factory.discount_percentage}%)")
    elif quote.oracle_outcome is not None and quote.oracle_outcome.value != "success":
        click.echo(click.style(
            f"Discount lookup {quote.oracle_outcome.value}, base fee charged", fg="yellow"
        ))


@cli.command("create")
@click.option("--caller", required=True, help="Creator address")
@click.option("--name", "-n", required=True, help="Token name")
@click.option("--symbol", "-s", required=True, help="Token symbol")
@click.option("--decimals", "-d", type=int, default=18, show_default=True, help="Token decimals")
@click.option("--supply", type=int, default=1_000_000, show_default=True, help="Initial supply in whole tokens")
@click.option("--anti-bot", is_flag=True, help="Enable the launch-window blacklist")
@click.option("--anti-whale", is_flag=True, help="Enable whale limits")
@click.option("--airdrop", is_flag=True, help="Record the airdrop flag")
@click.option("--payment", type=int, default=None, help="Native amount sent (default: exact fee)")
@click.option("--balance", type=int, default=None, help="Caller's discount-token balance to assume")
@click.pass_obj
def create_cmd(
    cfg: LaunchpadConfig,
    caller: str,
    name: str,
    symbol: str,
    decimals: int,
    supply: int,
    anti_bot: bool,
    anti_whale: bool,
    airdrop: bool,
    payment: Optional[int],
    balance: Optional[int],
):
    """Simulate a token creation and print the resulting records.

    Nothing is deployed; the factory lives only for this command.

    Examples:

        launchpad create --caller 0xAbC... -n "My Token" -s MTK --anti-bot
    """
    async def run():
        oracle = _build_oracle(cfg, caller, balance)
        try:
            factory = _build_factory(cfg, caller, oracle)
            paid = payment if payment is not None else await factory.calculate_fee(caller)
            address = await factory.create_token(
                caller, name, symbol, decimals, supply,
                anti_bot=anti_bot, anti_whale=anti_whale, airdrop=airdrop,
                payment=paid,
            )
            return factory, address
        finally:
            await _close_oracle(oracle)

    try:
        factory, address = asyncio.run(run())
    except LaunchpadError as e:
        raise click.ClickException(str(e))

    created = factory.events[-1]
    click.echo(click.style("✓ Token created (simulation)", fg="green", bold=True))
    click.echo(json.dumps(
        {
            "event": created.to_dict(),
            "token": factory.get_token(address).to_dict(),
            "factory": factory.stats(),
        },
        indent=2,
    ))


@cli.command("show-config")
@click.pass_obj
def show_config_cmd(cfg: LaunchpadConfig):
    """Print the effective configuration (TOML + environment)."""
    click.echo(json.dumps(cfg.to_dict(), indent=2))


def main():
    cli()


if __name__ == "__main__":
    main()
