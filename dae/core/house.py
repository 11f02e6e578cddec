"""
Auction House - Registry of independent Dutch auctions.

Each auction is its own DutchAuction instance, referenced by a 32-byte
handle. The house adds:
- Version-tagged rules, selected at bid time (an "upgrade" hands the auction
  another rules version; the engine instance is never replaced)
- Seller-only upgrade permission
- Aggregate statistics

The registry maps are only touched under the house lock; readers iterate a
copy taken under it.
"""

import threading
from typing import Dict, List, Optional, Tuple

from dae.core.auction import (
    AuctionPhase,
    AuctionRules,
    BidResult,
    DutchAuction,
)
from dae.core.config import EngineConfig
from dae.core.errors import AlreadySettled
from dae.core.settlement import AssetTransfer, PaymentTransfer, TimeSource
from dae.crypto import bytes_to_hex, short_address
from dae.utils.logger import get_logger

logger = get_logger("house")


class AuctionHouse:
    """
    Manages many auctions sharing one time source.

    Attributes:
        config: EngineConfig used for default rules and limits
        auctions: auction_id -> DutchAuction
        versions: auction_id -> rules version tag
        rules: version tag -> AuctionRules
    """

    def __init__(self, time_source: TimeSource, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.time_source = time_source

        self.auctions: Dict[bytes, DutchAuction] = {}
        self.versions: Dict[bytes, str] = {}

        default_rules = self.config.rules()
        self.default_version = default_rules.version
        self.rules: Dict[str, AuctionRules] = {default_rules.version: default_rules}

        self._lock = threading.Lock()

    # =========================================================================
    # Rules
    # =========================================================================

    def register_rules(self, rules: AuctionRules) -> Tuple[bool, str]:
        """Add a new rules version. Versions are immutable once registered."""
        with self._lock:
            if rules.version in self.rules:
                return False, f"Rules version {rules.version} already registered"
            self.rules[rules.version] = rules

        logger.info(f"Rules registered: {rules.describe()}")
        return True, ""

    def rules_for(self, auction_id: bytes) -> AuctionRules:
        with self._lock:
            return self.rules[self.versions[auction_id]]

    # =========================================================================
    # Auction Lifecycle
    # =========================================================================

    def create_auction(
        self,
        seller: bytes,
        reserve_price: int,
        auction_duration_units: int,
        price_decrement_per_unit: int,
        payment: PaymentTransfer,
        asset: AssetTransfer,
        version: Optional[str] = None,
    ) -> bytes:
        """
        Open a new auction starting at the current time unit.

        Returns:
            auction_id handle

        Raises:
            ValueError: unknown rules version or invalid terms
        """
        version = version or self.default_version
        if version not in self.rules:
            raise ValueError(f"Unknown rules version: {version}")

        auction = DutchAuction.create(
            seller=seller,
            reserve_price=reserve_price,
            auction_duration_units=auction_duration_units,
            price_decrement_per_unit=price_decrement_per_unit,
            time_source=self.time_source,
            payment=payment,
            asset=asset,
            rules=self.rules[version],
            max_amount=self.config.max_amount,
        )

        with self._lock:
            self.auctions[auction.auction_id] = auction
            self.versions[auction.auction_id] = version

        return auction.auction_id

    def get(self, auction_id: bytes) -> Optional[DutchAuction]:
        with self._lock:
            return self.auctions.get(auction_id)

    def _require(self, auction_id: bytes) -> DutchAuction:
        auction = self.get(auction_id)
        if auction is None:
            raise KeyError(f"Auction not found: {bytes_to_hex(auction_id)[:10]}")
        return auction

    def current_price(self, auction_id: bytes) -> int:
        return self._require(auction_id).current_price()

    def accepting_bids(self, auction_id: bytes) -> bool:
        """Whether the auction admits a sufficient bid under its current version."""
        return self._require(auction_id).accepting_bids()

    def info(self, auction_id: bytes) -> dict:
        """Auction view plus the rules version it currently runs under."""
        auction = self._require(auction_id)
        return {**auction.info(), "version": self.rules_for(auction_id).version}

    def submit_bid(self, auction_id: bytes, bidder: bytes, amount: int) -> BidResult:
        """
        Bid on one auction under its current rules version.

        Raises:
            KeyError: unknown auction
        """
        return self._require(auction_id).submit_bid(bidder, amount)

    def upgrade(self, auction_id: bytes, version: str, caller: bytes) -> Tuple[bool, str]:
        """
        Switch an open auction to another rules version.

        Only the seller may upgrade, and only while the auction is open.
        """
        auction = self.get(auction_id)
        if auction is None:
            return False, "Auction not found"
        if caller != auction.seller:
            return False, "Caller is not the seller"

        with self._lock:
            rules = self.rules.get(version)
            previous = self.versions[auction_id]
        if rules is None:
            return False, f"Unknown rules version: {version}"

        try:
            auction.set_rules(rules)
        except AlreadySettled as e:
            return False, e.message

        with self._lock:
            self.versions[auction_id] = version

        logger.info(
            f"Auction {bytes_to_hex(auction_id)[:10]} upgraded {previous} -> {version} "
            f"by {short_address(caller)}"
        )
        return True, ""

    def open_auctions(self) -> List[bytes]:
        with self._lock:
            auctions = list(self.auctions.items())
        return [aid for aid, a in auctions if a.get_state().phase == AuctionPhase.OPEN]

    # =========================================================================
    # Stats
    # =========================================================================

    def stats(self) -> dict:
        """Get auction house statistics."""
        with self._lock:
            auctions = list(self.auctions.values())
            versions = sorted(self.rules)
        states = [a.get_state() for a in auctions]
        settled = [s for s in states if s.is_settled]
        return {
            "open_auctions": len(states) - len(settled),
            "settled_auctions": len(settled),
            "rules_versions": versions,
            "settled_volume": sum(s.winning_amount for s in settled),
        }
