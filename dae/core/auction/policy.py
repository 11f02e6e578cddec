"""
Auction Policies - Explicit choices for the two behaviours that differ
between auction versions.

Late bids:
    CLAMP       - the price rests at the reserve once the window elapses and
                  bids meeting the reserve keep being accepted (no cutoff)
    HARD_CLOSE  - bids after the window are rejected with "Auction closed",
                  even if they would meet the reserve

Settlement amount:
    ACCEPT_OFFER  - the seller receives the full offer
    CHARGE_PRICE  - only the current price is charged; the excess never
                    leaves the bidder
    EXACT_PRICE   - offers must equal the current price

Rules are version-tagged so a host can switch an auction to newer rules
without touching the engine instance (see AuctionHouse.upgrade).
"""

from dataclasses import dataclass
from enum import IntEnum

from dae.core.errors import AuctionClosed, OverpaymentRejected
from dae.core.auction.params import AuctionParameters
from dae.core.auction.pricing import is_window_open


class LateBidPolicy(IntEnum):
    """What happens to bids after the window has elapsed."""
    CLAMP = 0
    HARD_CLOSE = 1


class SettlementPolicy(IntEnum):
    """How much of the offer is charged."""
    ACCEPT_OFFER = 0
    CHARGE_PRICE = 1
    EXACT_PRICE = 2


DEFAULT_RULES_VERSION = "v1"


def parse_late_bid_policy(value: str) -> LateBidPolicy:
    """Parse a policy name ("clamp", "hard_close", "hard-close")."""
    try:
        return LateBidPolicy[value.strip().upper().replace("-", "_")]
    except KeyError:
        options = ", ".join(p.name.lower() for p in LateBidPolicy)
        raise ValueError(f"Unknown late bid policy {value!r} (expected one of: {options})") from None


def parse_settlement_policy(value: str) -> SettlementPolicy:
    """Parse a policy name ("accept_offer", "charge_price", "exact_price")."""
    try:
        return SettlementPolicy[value.strip().upper().replace("-", "_")]
    except KeyError:
        options = ", ".join(p.name.lower() for p in SettlementPolicy)
        raise ValueError(f"Unknown settlement policy {value!r} (expected one of: {options})") from None


@dataclass(frozen=True)
class AuctionRules:
    """
    A version-tagged pair of policies.

    Attributes:
        version: Tag used to select the rules at bid time
        late_bid_policy: CLAMP or HARD_CLOSE
        settlement_policy: ACCEPT_OFFER, CHARGE_PRICE or EXACT_PRICE
    """
    version: str = DEFAULT_RULES_VERSION
    late_bid_policy: LateBidPolicy = LateBidPolicy.CLAMP
    settlement_policy: SettlementPolicy = SettlementPolicy.ACCEPT_OFFER

    def check_window(self, params: AuctionParameters, t: int) -> None:
        """Raise AuctionClosed if the late-bid policy forbids bidding at t."""
        if self.late_bid_policy == LateBidPolicy.HARD_CLOSE and not is_window_open(params, t):
            raise AuctionClosed()

    def amount_to_charge(self, offered: int, price: int) -> int:
        """
        Amount moved from bidder to seller.

        Assumes offered >= price (checked before).
        """
        if self.settlement_policy == SettlementPolicy.EXACT_PRICE:
            if offered != price:
                raise OverpaymentRejected(offered, price)
            return price

        if self.settlement_policy == SettlementPolicy.CHARGE_PRICE:
            return price

        return offered

    def describe(self) -> str:
        return f"{self.version} ({self.late_bid_policy.name.lower()}, {self.settlement_policy.name.lower()})"
