"""
Auction Engine - One Dutch auction as a state machine.

State Machine:
-------------
    OPEN --(winning bid, both transfers succeed)--> SETTLED

There is no EXPIRED phase. Past its window an auction stays OPEN: under the
CLAMP policy it keeps accepting bids at the reserve, under HARD_CLOSE it
rejects every bid with "Auction closed". Only a winning bid ends it.

Bid Validation (first failure wins):
-----------------------------------
1. phase is OPEN                           else AlreadySettled
2. bidder/amount well formed, not seller   else InvalidBid
3. window open (HARD_CLOSE only)           else AuctionClosed
4. amount >= current price                 else BidTooLow
5. amount == current price (EXACT only)    else OverpaymentRejected

Then the SettlementCoordinator exchanges payment for the asset. State is
written only after it returns, so any rejection leaves the auction as it was.

Concurrency:
-----------
bid() and set_rules() run under a per-instance lock, collaborator calls
included. current_price() and get_state() are lock-free reads; settlement
publishes the new AuctionState in a single assignment, so a reader sees
either the open state or the complete settled one.
"""

import secrets
import threading
from dataclasses import dataclass
from typing import Optional

from dae.core.auction.params import AuctionParameters, AuctionPhase, AuctionState
from dae.core.auction.policy import AuctionRules, LateBidPolicy
from dae.core.auction.pricing import current_price, elapsed_units, is_window_open
from dae.core.errors import (
    AlreadySettled,
    AuctionError,
    BidTooLow,
    ErrorKind,
    InvalidBid,
)
from dae.core.settlement import (
    AssetTransfer,
    PaymentTransfer,
    SettlementCoordinator,
    TimeSource,
)
from dae.crypto import bytes_to_hex, keccak256, sha256, short_address
from dae.utils.logger import auction_logger
from dae.utils.validation import MAX_AMOUNT, validate_address, validate_amount


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class SettlementReceipt:
    """
    Record of a completed settlement.

    Attributes:
        receipt_id: keccak256 over auction, winner, amount and time
        auction_id: Handle of the settled auction
        winner: Winning bidder
        seller: Seller who received the payment
        offered_amount: What the bidder offered
        price: Current price when the bid landed
        amount_paid: What actually moved to the seller
        settled_at: Time unit of settlement
    """
    receipt_id: bytes
    auction_id: bytes
    winner: bytes
    seller: bytes
    offered_amount: int
    price: int
    amount_paid: int
    settled_at: int

    def to_dict(self) -> dict:
        return {
            "receipt_id": bytes_to_hex(self.receipt_id),
            "auction_id": bytes_to_hex(self.auction_id),
            "winner": bytes_to_hex(self.winner),
            "seller": bytes_to_hex(self.seller),
            "offered_amount": self.offered_amount,
            "price": self.price,
            "amount_paid": self.amount_paid,
            "settled_at": self.settled_at,
        }


@dataclass
class BidResult:
    """Outcome of submit_bid()."""
    accepted: bool
    error: Optional[ErrorKind] = None
    message: str = ""
    receipt: Optional[SettlementReceipt] = None

    @property
    def winner(self) -> Optional[bytes]:
        return self.receipt.winner if self.receipt else None

    @property
    def amount(self) -> Optional[int]:
        return self.receipt.amount_paid if self.receipt else None


def _compute_receipt_id(auction_id: bytes, winner: bytes, amount: int, settled_at: int) -> bytes:
    return keccak256(
        auction_id +
        winner +
        amount.to_bytes(32, "big") +
        settled_at.to_bytes(8, "big")
    )


# =============================================================================
# Dutch Auction
# =============================================================================


class DutchAuction:
    """
    A single descending-price auction.

    Owns its parameters and state; nothing is shared with other auctions.

    Attributes:
        auction_id: 32-byte handle
        seller: Address receiving payment, giving up the asset
        params: Frozen AuctionParameters
        rules: Current rules (a host may pass others per bid, or switch
            them with set_rules)
    """

    def __init__(
        self,
        seller: bytes,
        params: AuctionParameters,
        time_source: TimeSource,
        payment: PaymentTransfer,
        asset: AssetTransfer,
        rules: Optional[AuctionRules] = None,
        auction_id: Optional[bytes] = None,
        max_amount: int = MAX_AMOUNT,
    ):
        """
        Wrap existing parameters. Use create() to start a fresh auction.

        Raises:
            ValueError: bad seller address
        """
        valid, err = validate_address(seller, "seller")
        if not valid:
            raise ValueError(err)

        self.seller = bytes(seller)
        self.params = params
        self.time_source = time_source
        self.rules = rules or AuctionRules()
        self.max_amount = max_amount
        self.auction_id = auction_id or self._new_auction_id()

        self._settlement = SettlementCoordinator(payment=payment, asset=asset)
        self._state = AuctionState()
        self._receipt: Optional[SettlementReceipt] = None
        self._lock = threading.Lock()
        self._log = auction_logger("engine", self.auction_id)

    @classmethod
    def create(
        cls,
        seller: bytes,
        reserve_price: int,
        auction_duration_units: int,
        price_decrement_per_unit: int,
        time_source: TimeSource,
        payment: PaymentTransfer,
        asset: AssetTransfer,
        rules: Optional[AuctionRules] = None,
        auction_id: Optional[bytes] = None,
        max_amount: int = MAX_AMOUNT,
    ) -> "DutchAuction":
        """
        Start an auction now.

        The start time is read from the time source once, here.
        """
        params = AuctionParameters(
            reserve_price=reserve_price,
            auction_duration_units=auction_duration_units,
            price_decrement_per_unit=price_decrement_per_unit,
            start_time=time_source.now(),
        )
        auction = cls(
            seller=seller,
            params=params,
            time_source=time_source,
            payment=payment,
            asset=asset,
            rules=rules,
            auction_id=auction_id,
            max_amount=max_amount,
        )
        auction._log.info(
            f"Auction created: initial={params.initial_price}, reserve={params.reserve_price}, "
            f"start={params.start_time}, window={params.auction_duration_units}"
        )
        return auction

    def _new_auction_id(self) -> bytes:
        p = self.params
        return sha256(
            self.seller +
            p.reserve_price.to_bytes(32, "big") +
            p.auction_duration_units.to_bytes(8, "big") +
            p.price_decrement_per_unit.to_bytes(32, "big") +
            p.start_time.to_bytes(8, "big") +
            secrets.token_bytes(16)
        )

    # =========================================================================
    # Queries (lock-free)
    # =========================================================================

    def current_price(self, at: Optional[int] = None) -> int:
        """Price now, or at time unit `at`."""
        t = self.time_source.now() if at is None else at
        return current_price(self.params, t)

    def get_state(self) -> AuctionState:
        """Read-only snapshot of the auction state."""
        return self._state.snapshot()

    @property
    def receipt(self) -> Optional[SettlementReceipt]:
        return self._receipt

    def accepting_bids(self, rules: Optional[AuctionRules] = None) -> bool:
        """Whether a sufficient bid would currently be admitted."""
        rules = rules or self.rules
        if self._state.is_settled:
            return False
        if rules.late_bid_policy == LateBidPolicy.HARD_CLOSE:
            return is_window_open(self.params, self.time_source.now())
        return True

    def info(self, rules: Optional[AuctionRules] = None) -> dict:
        """Flat view of terms and state."""
        rules = rules or self.rules
        state = self.get_state()
        t = self.time_source.now()
        return {
            "auction_id": bytes_to_hex(self.auction_id),
            "seller": bytes_to_hex(self.seller),
            **self.params.to_dict(),
            "now": t,
            "elapsed": elapsed_units(self.params, t),
            "current_price": current_price(self.params, t),
            "accepting_bids": self.accepting_bids(rules),
            "rules": rules.describe(),
            "phase": state.phase.name,
            "winner": bytes_to_hex(state.winner) if state.winner else None,
            "winning_amount": state.winning_amount,
        }

    def set_rules(self, rules: AuctionRules) -> None:
        """
        Replace the rules applied to later bids.

        Serialized with bid(), so a bid in flight finishes under the rules
        it started with.

        Raises:
            AlreadySettled: the auction already has a winner
        """
        with self._lock:
            if self._state.is_settled:
                raise AlreadySettled()
            previous, self.rules = self.rules, rules

        self._log.info(f"Rules changed: {previous.describe()} -> {rules.describe()}")

    # =========================================================================
    # Bidding
    # =========================================================================

    def bid(
        self,
        bidder: bytes,
        offered_amount: int,
        rules: Optional[AuctionRules] = None,
    ) -> SettlementReceipt:
        """
        Place a bid; settle on success.

        Args:
            bidder: Bidder address
            offered_amount: Amount offered
            rules: Rules to apply (defaults to self.rules)

        Returns:
            SettlementReceipt of the winning bid

        Raises:
            AuctionError subclass describing the rejection
        """
        with self._lock:
            rules = rules or self.rules
            t = self.time_source.now()

            if self._state.is_settled:
                raise AlreadySettled()

            self._check_well_formed(bidder, offered_amount)
            rules.check_window(self.params, t)

            price = current_price(self.params, t)
            if offered_amount < price:
                raise BidTooLow(offered_amount, price)

            amount_paid = rules.amount_to_charge(offered_amount, price)

            self._log.debug(
                f"Bid accepted for settlement: bidder={short_address(bidder)}, "
                f"offered={offered_amount}, price={price}, charge={amount_paid}"
            )
            self._settlement.settle(payer=bidder, payee=self.seller, amount=amount_paid)

            # Both transfers succeeded
            self._receipt = SettlementReceipt(
                receipt_id=_compute_receipt_id(self.auction_id, bytes(bidder), amount_paid, t),
                auction_id=self.auction_id,
                winner=bytes(bidder),
                seller=self.seller,
                offered_amount=offered_amount,
                price=price,
                amount_paid=amount_paid,
                settled_at=t,
            )
            self._state = AuctionState(
                phase=AuctionPhase.SETTLED,
                winner=bytes(bidder),
                winning_amount=amount_paid,
                settled_at=t,
                price_at_settlement=price,
            )

        self._log.info(f"Auction settled: winner={short_address(bidder)}, paid={amount_paid}, at={t}")
        return self._receipt

    def submit_bid(
        self,
        bidder: bytes,
        offered_amount: int,
        rules: Optional[AuctionRules] = None,
    ) -> BidResult:
        """
        Place a bid and report the outcome instead of raising.

        Returns:
            BidResult (accepted, error kind, message, receipt)
        """
        try:
            receipt = self.bid(bidder, offered_amount, rules=rules)
        except AuctionError as e:
            self._log.debug(f"Bid rejected ({e.kind.name}): {e.message}")
            return BidResult(accepted=False, error=e.kind, message=e.message)

        return BidResult(accepted=True, receipt=receipt)

    def _check_well_formed(self, bidder: bytes, offered_amount: int) -> None:
        valid, err = validate_address(bidder, "bidder")
        if not valid:
            raise InvalidBid(err)

        valid, err = validate_amount(offered_amount, "bid amount", self.max_amount)
        if not valid:
            raise InvalidBid(err)

        if bytes(bidder) == self.seller:
            raise InvalidBid("Seller cannot bid on own auction")
