"""
DAE Auction Module.

This module provides the Dutch auction engine:
- Parameters and state
- Linear price decay with reserve clamp
- Late-bid and settlement policies
- The per-auction state machine
"""

from dae.core.auction.params import (
    AuctionParameters,
    AuctionPhase,
    AuctionState,
)

from dae.core.auction.pricing import (
    current_price,
    elapsed_units,
    is_window_open,
    price_schedule,
)

from dae.core.auction.policy import (
    AuctionRules,
    LateBidPolicy,
    SettlementPolicy,
    parse_late_bid_policy,
    parse_settlement_policy,
    DEFAULT_RULES_VERSION,
)

from dae.core.auction.engine import (
    DutchAuction,
    BidResult,
    SettlementReceipt,
)

__all__ = [
    # Parameters
    "AuctionParameters",
    "AuctionPhase",
    "AuctionState",
    # Pricing
    "current_price",
    "elapsed_units",
    "is_window_open",
    "price_schedule",
    # Policies
    "AuctionRules",
    "LateBidPolicy",
    "SettlementPolicy",
    "parse_late_bid_policy",
    "parse_settlement_policy",
    "DEFAULT_RULES_VERSION",
    # Engine
    "DutchAuction",
    "BidResult",
    "SettlementReceipt",
]
