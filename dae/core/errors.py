"""
Auction errors.

Every rejection leaves the auction state untouched, so all of these are
recoverable from the caller's point of view: retry with another amount,
wait for the price to fall, or give up.

Local rejections (raised before any collaborator is called):
    AlreadySettled, AuctionClosed, BidTooLow, OverpaymentRejected, InvalidBid

Settlement failures (raised after at least one collaborator call):
    PaymentTransferFailed, AssetTransferFailed, RollbackFailed
"""

from enum import IntEnum
from typing import Optional


class ErrorKind(IntEnum):
    """Machine-readable rejection reason."""
    ALREADY_SETTLED = 1
    AUCTION_CLOSED = 2
    BID_TOO_LOW = 3
    OVERPAYMENT_REJECTED = 4
    INVALID_BID = 5
    PAYMENT_TRANSFER_FAILED = 6
    ASSET_TRANSFER_FAILED = 7
    ROLLBACK_FAILED = 8
    TRANSFER_FAILED = 9   # Generic settlement failure (base of the three above)


class AuctionError(Exception):
    """Base class for bid rejections."""

    kind: ErrorKind = ErrorKind.INVALID_BID

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AlreadySettled(AuctionError):
    """A winning bid was already accepted."""
    kind = ErrorKind.ALREADY_SETTLED

    def __init__(self, message: str = "Auction already settled"):
        super().__init__(message)


class AuctionClosed(AuctionError):
    """The bidding window has elapsed (hard-close policy only)."""
    kind = ErrorKind.AUCTION_CLOSED

    def __init__(self, message: str = "Auction closed"):
        super().__init__(message)


class BidTooLow(AuctionError):
    """Offered amount is below the current price."""
    kind = ErrorKind.BID_TOO_LOW

    def __init__(self, offered: int, price: int):
        super().__init__(f"Bid {offered} below current price {price}")
        self.offered = offered
        self.price = price


class OverpaymentRejected(AuctionError):
    """Offered amount differs from the current price (exact-price policy only)."""
    kind = ErrorKind.OVERPAYMENT_REJECTED

    def __init__(self, offered: int, price: int):
        super().__init__(f"Bid {offered} must equal current price {price}")
        self.offered = offered
        self.price = price


class InvalidBid(AuctionError):
    """Malformed bid: bad amount, bad identity, or the seller bidding."""
    kind = ErrorKind.INVALID_BID


class TransferFailed(AuctionError):
    """A collaborator failed during settlement."""
    kind = ErrorKind.TRANSFER_FAILED

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class PaymentTransferFailed(TransferFailed):
    """Payment from bidder to seller failed; nothing was moved."""
    kind = ErrorKind.PAYMENT_TRANSFER_FAILED


class AssetTransferFailed(TransferFailed):
    """Asset delivery failed; the payment was compensated."""
    kind = ErrorKind.ASSET_TRANSFER_FAILED


class RollbackFailed(TransferFailed):
    """
    Asset delivery failed AND the payment could not be compensated.

    The auction itself stays open, but the host ledger needs manual repair.
    """
    kind = ErrorKind.ROLLBACK_FAILED


class LedgerError(Exception):
    """An in-memory host ledger could not perform a privileged operation."""
