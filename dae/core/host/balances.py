"""
Balance Book - Fungible balances for the in-memory host.

One book models one currency: either the chain's native value (plain
auctions, bids carry value) or an ERC-20 style token (bids are pulled from
the bidder using an allowance granted to the auction operator).

Payment adapters:
----------------
NativePayment  - moves value directly payer -> payee
TokenPayment   - pulls value with transfer_from(operator, ...), consuming
                 allowance; compensation restores balance AND allowance

A payee can be marked as refusing incoming value, the way a contract without
a receive hook makes a native transfer fail.
"""

import threading
from collections import defaultdict
from typing import Dict, Optional, Set, Tuple

from dae.core.errors import LedgerError
from dae.crypto import short_address
from dae.utils.logger import get_logger

logger = get_logger("host.balances")


class BalanceBook:
    """
    Balances and allowances for one currency.

    Attributes:
        symbol: Display name ("ETH", "DAT", ...)
        minter: Only this address may mint (None = anyone, for tests)
    """

    def __init__(self, symbol: str = "ETH", minter: Optional[bytes] = None):
        self.symbol = symbol
        self.minter = minter
        self.total_supply = 0

        self._balances: Dict[bytes, int] = defaultdict(int)
        self._allowances: Dict[Tuple[bytes, bytes], int] = defaultdict(int)
        self._rejecting: Set[bytes] = set()
        self._lock = threading.RLock()

    # =========================================================================
    # Supply
    # =========================================================================

    def mint(self, to: bytes, amount: int, caller: Optional[bytes] = None) -> Tuple[bool, str]:
        """Create new units for `to`."""
        if self.minter is not None and caller != self.minter:
            return False, "Caller is not the minter"
        if amount <= 0:
            return False, f"Mint amount must be positive, got {amount}"

        with self._lock:
            self._balances[to] += amount
            self.total_supply += amount

        logger.debug(f"Minted {amount} {self.symbol} to {short_address(to)}")
        return True, ""

    # =========================================================================
    # Queries
    # =========================================================================

    def balance_of(self, holder: bytes) -> int:
        return self._balances.get(holder, 0)

    def allowance(self, owner: bytes, spender: bytes) -> int:
        return self._allowances.get((owner, spender), 0)

    # =========================================================================
    # Transfers
    # =========================================================================

    def reject_payments_to(self, address: bytes) -> None:
        """Make every incoming transfer to `address` fail."""
        self._rejecting.add(address)

    def accept_payments_to(self, address: bytes) -> None:
        self._rejecting.discard(address)

    def transfer(self, sender: bytes, recipient: bytes, amount: int) -> bool:
        """Holder-initiated move. Returns False without effect on failure."""
        if amount < 0:
            return False

        with self._lock:
            if recipient in self._rejecting:
                logger.debug(f"{short_address(recipient)} refuses {self.symbol}")
                return False
            if self._balances.get(sender, 0) < amount:
                return False
            self._balances[sender] -= amount
            self._balances[recipient] += amount

        return True

    def approve(self, owner: bytes, spender: bytes, amount: int) -> Tuple[bool, str]:
        """Set the amount `spender` may pull from `owner`."""
        if amount < 0:
            return False, f"Allowance must be >= 0, got {amount}"

        with self._lock:
            self._allowances[(owner, spender)] = amount
        return True, ""

    def transfer_from(self, spender: bytes, owner: bytes, recipient: bytes, amount: int) -> bool:
        """Spender-initiated move, consuming allowance."""
        with self._lock:
            if self._allowances.get((owner, spender), 0) < amount:
                logger.debug(
                    f"Allowance too small: {short_address(owner)} -> {short_address(spender)} for {amount}"
                )
                return False
            if not self.transfer(owner, recipient, amount):
                return False
            self._allowances[(owner, spender)] -= amount

        return True

    def revert_transfer(
        self,
        sender: bytes,
        recipient: bytes,
        amount: int,
        spender: Optional[bytes] = None,
    ) -> None:
        """
        Undo a completed transfer of `amount` from sender to recipient.

        Bypasses the refusal list (the value is returning to where it came
        from). If `spender` is given, the consumed allowance is restored.

        Raises:
            LedgerError: recipient no longer holds the amount
        """
        with self._lock:
            if self._balances.get(recipient, 0) < amount:
                raise LedgerError(
                    f"Cannot revert {amount} {self.symbol}: "
                    f"{short_address(recipient)} holds {self.balance_of(recipient)}"
                )
            self._balances[recipient] -= amount
            self._balances[sender] += amount
            if spender is not None:
                self._allowances[(sender, spender)] += amount

        logger.debug(f"Reverted {amount} {self.symbol} back to {short_address(sender)}")


# =============================================================================
# Payment Adapters
# =============================================================================


class NativePayment:
    """PaymentTransfer moving native value (bid carries its own value)."""

    def __init__(self, book: BalanceBook):
        self.book = book

    def transfer(self, payer: bytes, payee: bytes, amount: int) -> bool:
        return self.book.transfer(payer, payee, amount)

    def compensate(self, payer: bytes, payee: bytes, amount: int) -> None:
        self.book.revert_transfer(payer, payee, amount)


class TokenPayment:
    """PaymentTransfer pulling ERC-20 style tokens through an allowance."""

    def __init__(self, book: BalanceBook, operator: bytes):
        self.book = book
        self.operator = operator

    def transfer(self, payer: bytes, payee: bytes, amount: int) -> bool:
        return self.book.transfer_from(self.operator, payer, payee, amount)

    def compensate(self, payer: bytes, payee: bytes, amount: int) -> None:
        self.book.revert_transfer(payer, payee, amount, spender=self.operator)
