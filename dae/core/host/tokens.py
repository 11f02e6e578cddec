"""
Token Registry - Non-fungible ownership for the in-memory host.

Rules (ERC-721 subset):
- Only the registry minter may mint; token IDs are unique
- Only the owner may approve a spender for a token
- transfer_from succeeds for the owner or the approved spender
- Any transfer clears the token's approval
"""

import threading
from typing import Dict, Optional, Tuple

from dae.crypto import short_address
from dae.utils.logger import get_logger

logger = get_logger("host.tokens")


class TokenRegistry:
    """Ownership and approvals for one NFT collection."""

    def __init__(self, minter: bytes, name: str = "DAE-NFT"):
        self.minter = minter
        self.name = name

        self._owners: Dict[int, bytes] = {}
        self._approvals: Dict[int, bytes] = {}
        self._lock = threading.RLock()

    def mint(self, caller: bytes, to: bytes, token_id: int) -> Tuple[bool, str]:
        """Create token_id owned by `to`."""
        if caller != self.minter:
            return False, "Caller is not the minter"

        with self._lock:
            if token_id in self._owners:
                return False, f"Token {token_id} already minted"
            self._owners[token_id] = to

        logger.debug(f"Minted {self.name} #{token_id} to {short_address(to)}")
        return True, ""

    def owner_of(self, token_id: int) -> Optional[bytes]:
        return self._owners.get(token_id)

    def get_approved(self, token_id: int) -> Optional[bytes]:
        return self._approvals.get(token_id)

    def approve(self, caller: bytes, spender: bytes, token_id: int) -> Tuple[bool, str]:
        """Let `spender` move token_id. Only the owner may approve."""
        with self._lock:
            owner = self._owners.get(token_id)
            if owner is None:
                return False, f"Token {token_id} does not exist"
            if caller != owner:
                return False, "Caller is not token owner"
            self._approvals[token_id] = spender

        return True, ""

    def transfer_from(self, caller: bytes, sender: bytes, recipient: bytes, token_id: int) -> bool:
        """Move token_id from sender to recipient. Returns False without effect on failure."""
        with self._lock:
            owner = self._owners.get(token_id)
            if owner is None or owner != sender:
                return False
            if caller != owner and self._approvals.get(token_id) != caller:
                logger.debug(f"{short_address(caller)} not approved for #{token_id}")
                return False
            self._owners[token_id] = recipient
            self._approvals.pop(token_id, None)

        return True


# =============================================================================
# Asset Adapters
# =============================================================================


class NFTAsset:
    """AssetTransfer for one token, moved by an approved operator."""

    def __init__(self, registry: TokenRegistry, token_id: int, operator: bytes):
        self.registry = registry
        self.token_id = token_id
        self.operator = operator

    def transfer(self, owner: bytes, recipient: bytes) -> bool:
        return self.registry.transfer_from(self.operator, owner, recipient, self.token_id)


class UnitAsset:
    """
    Placeholder asset for plain value auctions.

    The seller sells the right to win; nothing moves on chain.
    """

    def transfer(self, owner: bytes, recipient: bytes) -> bool:
        return True
