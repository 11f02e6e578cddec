"""
Time sources for the in-memory host.

BlockClock   - manually mined block height (tests, simulations, CLI)
WallClock    - block height derived from wall-clock time (off-chain service)
"""

import threading
import time
from typing import Callable, Optional


class BlockClock:
    """
    Block height that only moves when mined.

    Mirrors a development chain: the height stays put until mine() is called.
    """

    def __init__(self, height: int = 0):
        if height < 0:
            raise ValueError(f"height must be >= 0, got {height}")
        self._height = height
        self._lock = threading.Lock()

    def now(self) -> int:
        return self._height

    def mine(self, blocks: int = 1) -> int:
        """Advance by `blocks` and return the new height."""
        if blocks < 0:
            raise ValueError(f"cannot mine a negative number of blocks: {blocks}")
        with self._lock:
            self._height += blocks
            return self._height


class WallClock:
    """
    Block height computed from elapsed seconds.

    height = (now - genesis) // block_time, never negative.
    """

    def __init__(
        self,
        block_time: float = 12.0,
        genesis: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        if block_time <= 0:
            raise ValueError(f"block_time must be > 0, got {block_time}")
        self.block_time = block_time
        self._clock = clock
        self.genesis = clock() if genesis is None else genesis

    def now(self) -> int:
        return max(0, int((self._clock() - self.genesis) // self.block_time))
