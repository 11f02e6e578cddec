"""
Dutch Auction Engine (DAE)

An embeddable descending-price auction engine:
- Linear price decay over discrete time units (block height)
- Single-winner admission control
- Atomic settlement with compensating rollback
- In-memory host for simulation (block clock, balances, NFTs)
"""

__version__ = "0.1.0"
