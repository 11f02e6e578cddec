"""Settlement: collaborator contracts and atomic exchange"""
from dae.core.settlement.collaborators import (
    TimeSource,
    PaymentTransfer,
    AssetTransfer,
)
from dae.core.settlement.coordinator import SettlementCoordinator

__all__ = [
    "TimeSource",
    "PaymentTransfer",
    "AssetTransfer",
    "SettlementCoordinator",
]
