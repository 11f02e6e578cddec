"""
DAE CLI - Command Line Interface for the Dutch Auction Engine

Main entry point for all CLI commands.
"""

import json
import logging
from pathlib import Path

import click
from pydantic import ValidationError

from dae.core.config import load_config
from dae.utils.logger import setup_logging, get_logger

logger = get_logger("cli")


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--config", "config_path", default=None, type=click.Path(dir_okay=False), help="JSON config file")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, config_path):
    """Dutch Auction Engine - descending-price auctions with atomic settlement"""
    try:
        config = load_config(config_path)
    except (OSError, ValueError) as e:
        raise click.ClickException(str(e))

    level = logging.DEBUG if debug else config.log_level_value
    setup_logging(level=level, log_dir=str(config.log_dir), log_to_file=config.log_to_file)
    logger.debug(f"Loaded config: {config}")

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


def _terms_options(func):
    func = click.option("--decrement", required=True, type=click.IntRange(min=0), help="Price drop per block")(func)
    func = click.option("--duration", required=True, type=click.IntRange(min=1), help="Blocks the auction is open")(func)
    func = click.option("--reserve", required=True, type=click.IntRange(min=0), help="Reserve price")(func)
    return func


def _params(reserve, duration, decrement):
    from dae.core.auction import AuctionParameters

    try:
        return AuctionParameters(
            reserve_price=reserve,
            auction_duration_units=duration,
            price_decrement_per_unit=decrement,
            start_time=0,
        )
    except ValueError as e:
        raise click.BadParameter(str(e))


# =============================================================================
# Price Commands
# =============================================================================


@cli.command("price")
@_terms_options
@click.option("--elapsed", default=0, type=click.IntRange(min=0), help="Blocks since the auction started")
def price(reserve, duration, decrement, elapsed):
    """Show the price after ELAPSED blocks"""
    from dae.core.auction import current_price

    params = _params(reserve, duration, decrement)
    click.echo(current_price(params, elapsed))


@cli.command("schedule")
@_terms_options
@click.option("--extra", default=0, type=click.IntRange(min=0), help="Extra blocks past the window")
def schedule(reserve, duration, decrement, extra):
    """Show the full price curve"""
    from dae.core.auction import price_schedule

    params = _params(reserve, duration, decrement)
    click.echo(f"Initial price: {params.initial_price}, reserve: {params.reserve_price}")
    click.echo("-" * 40)
    click.echo(f"  {'elapsed':>8}  {'price':>12}")
    for elapsed, value in price_schedule(params, extra):
        marker = "  (closed window)" if elapsed > params.auction_duration_units else ""
        click.echo(f"  {elapsed:>8}  {value:>12}{marker}")


# =============================================================================
# Simulation Commands
# =============================================================================


@cli.command("simulate")
@click.argument("scenario_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def simulate(ctx, scenario_file):
    """Run a JSON auction scenario on the in-memory host"""
    from dae.cli.scenario import Scenario, run_scenario

    try:
        scenario = Scenario.from_file(Path(scenario_file))
    except (ValidationError, ValueError) as e:
        raise click.ClickException(f"Invalid scenario: {e}")

    try:
        report = run_scenario(scenario, ctx.obj["config"])
    except ValueError as e:
        raise click.ClickException(str(e))

    click.echo(json.dumps(report, indent=2))


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
@click.pass_context
def demo(ctx):
    """Run an NFT auction with ERC-20 bids"""
    from dae.core.auction import DutchAuction
    from dae.core.host import BalanceBook, BlockClock, NFTAsset, TokenPayment, TokenRegistry
    from dae.crypto import keypair_from_seed

    config = ctx.obj["config"]

    click.echo("=" * 60)
    click.echo("  DUTCH AUCTION ENGINE - DEMO")
    click.echo("=" * 60)
    click.echo()

    # Setup
    click.echo("📦 Initializing host...")
    keys = {name: keypair_from_seed(name) for name in ("seller", "alice", "bob", "market")}
    seller, alice, bob, market = (keypair.address for keypair in keys.values())

    clock = BlockClock()
    nfts = TokenRegistry(minter=seller)
    tokens = BalanceBook("DAT", minter=seller)

    token_id = 5
    nfts.mint(seller, seller, token_id)
    tokens.mint(seller, 50000, caller=seller)
    tokens.transfer(seller, alice, 2000)
    tokens.transfer(seller, bob, 2000)
    click.echo(f"  ✓ NFT #{token_id} minted to seller")
    click.echo(f"  ✓ Alice: {tokens.balance_of(alice)} DAT, Bob: {tokens.balance_of(bob)} DAT")
    for name, keypair in keys.items():
        click.echo(f"    {name:<7} {keypair.address_hex}")
    click.echo()

    # Auction
    click.echo("🏛️  Creating auction (reserve 1000, 20 blocks, -10/block)...")
    auction = DutchAuction.create(
        seller=seller,
        reserve_price=1000,
        auction_duration_units=20,
        price_decrement_per_unit=10,
        time_source=clock,
        payment=TokenPayment(tokens, operator=market),
        asset=NFTAsset(nfts, token_id, operator=market),
        rules=config.rules(),
        max_amount=config.max_amount,
    )
    nfts.approve(seller, market, token_id)
    tokens.approve(alice, market, 1100)
    tokens.approve(bob, market, 1500)
    click.echo(f"  ✓ Initial price: {auction.params.initial_price}")
    click.echo()

    # Bids
    click.echo(f"💸 Alice bids 1100 at block {clock.now()} (price {auction.current_price()})...")
    result = auction.submit_bid(alice, 1100)
    click.echo(f"  {'✓' if result.accepted else '❌'} {result.message or 'accepted'}")

    clock.mine(10)
    click.echo(f"💸 Alice bids 1100 at block {clock.now()} (price {auction.current_price()})...")
    result = auction.submit_bid(alice, 1100)
    click.echo(f"  {'✓' if result.accepted else '❌'} {result.message or 'accepted'}")

    click.echo(f"💸 Bob bids 1500 at block {clock.now()}...")
    result = auction.submit_bid(bob, 1500)
    click.echo(f"  {'✓' if result.accepted else '❌'} {result.message or 'accepted'}")
    click.echo()

    # Final state
    state = auction.get_state()
    click.echo("📊 Final State:")
    click.echo(f"  Phase: {state.phase.name}")
    click.echo(f"  Winner is Alice: {state.winner == alice}")
    click.echo(f"  Winning amount: {state.winning_amount}")
    click.echo(f"  NFT #{token_id} owner is Alice: {nfts.owner_of(token_id) == alice}")
    click.echo(f"  Seller: {tokens.balance_of(seller)} DAT, Alice: {tokens.balance_of(alice)} DAT")
    click.echo()
    click.echo("✅ Demo complete!")


if __name__ == "__main__":
    cli()
