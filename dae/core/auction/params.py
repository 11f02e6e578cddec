"""
Auction parameters and state.

AuctionParameters is frozen at construction. AuctionState is created OPEN and
mutates at most once, to SETTLED.
"""

from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Optional

from dae.utils.validation import validate_auction_terms, validate_time_unit


class AuctionPhase(IntEnum):
    """Lifecycle phase of an auction."""
    OPEN = 0      # Accepting bids (also past the window; see LateBidPolicy)
    SETTLED = 1   # Winner recorded, terminal


@dataclass(frozen=True)
class AuctionParameters:
    """
    Immutable terms of one Dutch auction.

    Attributes:
        reserve_price: Floor price, never undercut
        auction_duration_units: Number of time units the auction stays open
        price_decrement_per_unit: Amount the price falls per elapsed unit
        start_time: Time unit at which the auction was created
    """
    reserve_price: int
    auction_duration_units: int
    price_decrement_per_unit: int
    start_time: int

    def __post_init__(self):
        """Validate field constraints."""
        valid, err = validate_auction_terms(
            self.reserve_price,
            self.auction_duration_units,
            self.price_decrement_per_unit,
        )
        if not valid:
            raise ValueError(err)

        valid, err = validate_time_unit(self.start_time, "start_time")
        if not valid:
            raise ValueError(err)

    @property
    def initial_price(self) -> int:
        """reserve + duration * decrement"""
        return self.reserve_price + self.auction_duration_units * self.price_decrement_per_unit

    @property
    def end_time(self) -> int:
        """Last time unit inside the bidding window."""
        return self.start_time + self.auction_duration_units

    def to_dict(self) -> dict:
        return {
            "reserve_price": self.reserve_price,
            "auction_duration_units": self.auction_duration_units,
            "price_decrement_per_unit": self.price_decrement_per_unit,
            "start_time": self.start_time,
            "initial_price": self.initial_price,
        }


@dataclass
class AuctionState:
    """
    Mutable state of one auction.

    Attributes:
        phase: OPEN or SETTLED
        winner: Winning bidder address (set once, on settlement)
        winning_amount: Amount paid to the seller (set once, on settlement)
        settled_at: Time unit of settlement
        price_at_settlement: Current price when the winning bid landed
    """
    phase: AuctionPhase = AuctionPhase.OPEN
    winner: Optional[bytes] = None
    winning_amount: Optional[int] = None
    settled_at: Optional[int] = None
    price_at_settlement: Optional[int] = None

    @property
    def is_settled(self) -> bool:
        return self.phase == AuctionPhase.SETTLED

    def snapshot(self) -> "AuctionState":
        """Detached copy for readers."""
        return replace(self)
