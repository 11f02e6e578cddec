"""In-memory host: clocks, balances and NFT ownership"""
from dae.core.host.clock import BlockClock, WallClock
from dae.core.host.balances import BalanceBook, NativePayment, TokenPayment
from dae.core.host.tokens import TokenRegistry, NFTAsset, UnitAsset

__all__ = [
    "BlockClock",
    "WallClock",
    "BalanceBook",
    "NativePayment",
    "TokenPayment",
    "TokenRegistry",
    "NFTAsset",
    "UnitAsset",
]
