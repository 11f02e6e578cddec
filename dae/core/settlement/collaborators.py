"""
Collaborator contracts for the auction engine.

The engine never moves value or assets itself. It calls into three
host-supplied capabilities:

    TimeSource       - current discrete time unit (block height)
    PaymentTransfer  - moves payment bidder -> seller
    AssetTransfer    - moves the auctioned asset seller -> bidder

Rollback contract:
-----------------
A transfer reports failure by returning False (or raising). A failed transfer
must have no effect. Payment always moves first and the asset last, so the
payment is the only leg that can need undoing: PaymentTransfer.compensate()
reverses a successful transfer with the same arguments and raises if the undo
is impossible. Hosts with real transactional semantics (a VM transaction) can
make compensate() a revert of the enclosing transaction.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class TimeSource(Protocol):
    """Monotonic, non-negative time units."""

    def now(self) -> int:
        ...


@runtime_checkable
class PaymentTransfer(Protocol):
    """Moves fungible value between two identities."""

    def transfer(self, payer: bytes, payee: bytes, amount: int) -> bool:
        ...

    def compensate(self, payer: bytes, payee: bytes, amount: int) -> None:
        ...


@runtime_checkable
class AssetTransfer(Protocol):
    """Moves the single auctioned asset between two identities."""

    def transfer(self, owner: bytes, recipient: bytes) -> bool:
        ...
