"""
Settlement Coordinator - Atomic payment/asset exchange.

Two-phase settlement with compensation:
--------------------------------------
1. Payment:  payer -> payee (amount)
   - fails  -> PaymentTransferFailed, nothing to undo
2. Asset:    payee -> payer
   - fails  -> compensate payment, AssetTransferFailed
   - compensation fails -> RollbackFailed (host ledger needs repair)

Either both transfers take effect or neither does. The caller (engine)
mutates auction state only after settle() returns.
"""

from dataclasses import dataclass

from dae.core.errors import (
    AssetTransferFailed,
    PaymentTransferFailed,
    RollbackFailed,
)
from dae.core.settlement.collaborators import AssetTransfer, PaymentTransfer
from dae.crypto import short_address
from dae.utils.logger import get_logger

logger = get_logger("settlement")


@dataclass
class SettlementCoordinator:
    """Runs one payment + asset exchange as a unit."""
    payment: PaymentTransfer
    asset: AssetTransfer

    def settle(self, payer: bytes, payee: bytes, amount: int) -> None:
        """
        Exchange amount for the asset.

        Args:
            payer: Winning bidder (receives the asset)
            payee: Seller (receives the payment)
            amount: Value moved to the seller

        Raises:
            PaymentTransferFailed, AssetTransferFailed, RollbackFailed
        """
        self._pay(payer, payee, amount)

        try:
            delivered = self.asset.transfer(payee, payer)
            cause = None
        except Exception as exc:
            delivered = False
            cause = exc

        if delivered:
            logger.debug(f"Settled: {amount} from {short_address(payer)} to {short_address(payee)}")
            return

        logger.warning(
            f"Asset transfer to {short_address(payer)} failed, compensating payment of {amount}"
        )
        self._undo_payment(payer, payee, amount)
        raise AssetTransferFailed("Asset transfer failed", cause=cause) from cause

    def _pay(self, payer: bytes, payee: bytes, amount: int) -> None:
        try:
            paid = self.payment.transfer(payer, payee, amount)
        except Exception as exc:
            logger.warning(f"Payment transfer raised: {exc}")
            raise PaymentTransferFailed("transfer failed", cause=exc) from exc

        if not paid:
            logger.warning(f"Payment of {amount} from {short_address(payer)} failed")
            raise PaymentTransferFailed("transfer failed")

    def _undo_payment(self, payer: bytes, payee: bytes, amount: int) -> None:
        try:
            self.payment.compensate(payer, payee, amount)
        except Exception as exc:
            logger.critical(
                f"Rollback failed: payment of {amount} from {short_address(payer)} "
                f"to {short_address(payee)} could not be compensated: {exc}"
            )
            raise RollbackFailed("Payment compensation failed", cause=exc) from exc
