"""
Price Function - Linear descending price for Dutch auctions.

Conceptual Background:
---------------------
The price starts at

    initial_price = reserve_price + auction_duration_units * price_decrement_per_unit

and falls by price_decrement_per_unit for every elapsed time unit until it
reaches the reserve, where it stays:

    price(t) = max(reserve_price, initial_price - elapsed(t) * price_decrement_per_unit)

Properties:
- Pure function of (params, t); no side effects
- Non-increasing in t
- price == initial_price at elapsed 0
- price == reserve_price for elapsed >= auction_duration_units

Times before start_time count as elapsed 0 (a host clock may lag).
"""

from typing import List, Tuple

from dae.core.auction.params import AuctionParameters


def elapsed_units(params: AuctionParameters, t: int) -> int:
    """Time units since the auction started (never negative)."""
    return max(0, t - params.start_time)


def current_price(params: AuctionParameters, t: int) -> int:
    """
    Price at time unit t.

    Args:
        params: Auction terms
        t: Current time unit from the Time Source

    Returns:
        Clamped price, always >= reserve_price
    """
    decayed = params.initial_price - elapsed_units(params, t) * params.price_decrement_per_unit
    return max(params.reserve_price, decayed)


def is_window_open(params: AuctionParameters, t: int) -> bool:
    """
    Whether t is still inside the bidding window.

    The window includes its last unit: elapsed == duration is open,
    elapsed == duration + 1 is closed.
    """
    return elapsed_units(params, t) <= params.auction_duration_units


def price_schedule(params: AuctionParameters, extra_units: int = 0) -> List[Tuple[int, int]]:
    """
    Full price curve as (elapsed, price) pairs.

    Covers elapsed 0..duration, plus extra_units past the window to show
    the clamp at the reserve.
    """
    if extra_units < 0:
        raise ValueError(f"extra_units must be >= 0, got {extra_units}")

    last = params.auction_duration_units + extra_units
    return [
        (elapsed, current_price(params, params.start_time + elapsed))
        for elapsed in range(last + 1)
    ]
