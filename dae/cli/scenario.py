"""
Scenario runner for `dae simulate`.

A scenario is a JSON document describing one native-value auction on the
in-memory host and a script of steps:

    {
      "params": {"reserve_price": 1000, "auction_duration_units": 20,
                 "price_decrement_per_unit": 10},
      "late_bid_policy": "clamp",
      "balances": {"alice": 5000},
      "steps": [
        {"action": "bid", "bidder": "alice", "amount": 1100},
        {"action": "mine", "blocks": 10},
        {"action": "bid", "bidder": "alice", "amount": 1100}
      ]
    }

Account names map to deterministic addresses (keypair_from_seed); a name that
is already a 0x-prefixed 20-byte address is used as is.
"""

import json
from pathlib import Path
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from dae.core.auction import (
    AuctionRules,
    DutchAuction,
    parse_late_bid_policy,
    parse_settlement_policy,
)
from dae.core.config import EngineConfig
from dae.core.host import BalanceBook, BlockClock, NativePayment, UnitAsset
from dae.crypto import bytes_to_hex, hex_to_bytes, is_valid_address, keypair_from_seed


class ScenarioParams(BaseModel):
    reserve_price: int = Field(ge=0)
    auction_duration_units: int = Field(gt=0)
    price_decrement_per_unit: int = Field(ge=0)


class ScenarioStep(BaseModel):
    model_config = ConfigDict(extra="forbid")

    action: Literal["mine", "bid", "price"]
    blocks: int = Field(default=1, ge=0)
    bidder: Optional[str] = None
    amount: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _bid_needs_bidder_and_amount(self):
        if self.action == "bid" and (self.bidder is None or self.amount is None):
            raise ValueError("bid step needs 'bidder' and 'amount'")
        return self


class Scenario(BaseModel):
    model_config = ConfigDict(extra="forbid")

    params: ScenarioParams
    seller: str = "seller"
    start_block: int = Field(default=0, ge=0)
    late_bid_policy: Optional[str] = None
    settlement_policy: Optional[str] = None
    balances: Dict[str, int] = Field(default_factory=dict)
    reject_payments: bool = False
    steps: List[ScenarioStep] = Field(default_factory=list)

    @classmethod
    def from_file(cls, path: Path) -> "Scenario":
        return cls.model_validate(json.loads(Path(path).read_text()))


def resolve_account(name: str) -> bytes:
    """Address for a scenario account name."""
    if is_valid_address(name):
        return hex_to_bytes(name)
    return keypair_from_seed(name).address


def run_scenario(scenario: Scenario, config: Optional[EngineConfig] = None) -> dict:
    """
    Execute a scenario and return a JSON-serializable report.

    Returns:
        {"steps": [...], "final": auction.info(), "balances": {...}}
    """
    config = config or EngineConfig()
    rules = config.rules()
    rules = AuctionRules(
        version=rules.version,
        late_bid_policy=(
            parse_late_bid_policy(scenario.late_bid_policy)
            if scenario.late_bid_policy else rules.late_bid_policy
        ),
        settlement_policy=(
            parse_settlement_policy(scenario.settlement_policy)
            if scenario.settlement_policy else rules.settlement_policy
        ),
    )

    accounts = {name: resolve_account(name) for name in scenario.balances}
    accounts.setdefault(scenario.seller, resolve_account(scenario.seller))
    seller = accounts[scenario.seller]

    clock = BlockClock(scenario.start_block)
    book = BalanceBook("ETH")
    for name, amount in scenario.balances.items():
        if amount > 0:
            book.mint(accounts[name], amount)
    if scenario.reject_payments:
        book.reject_payments_to(seller)

    auction = DutchAuction.create(
        seller=seller,
        reserve_price=scenario.params.reserve_price,
        auction_duration_units=scenario.params.auction_duration_units,
        price_decrement_per_unit=scenario.params.price_decrement_per_unit,
        time_source=clock,
        payment=NativePayment(book),
        asset=UnitAsset(),
        rules=rules,
        max_amount=config.max_amount,
    )

    outcomes = []
    for index, step in enumerate(scenario.steps):
        if step.action == "mine":
            outcomes.append({"step": index, "action": "mine", "block": clock.mine(step.blocks)})
        elif step.action == "price":
            outcomes.append({
                "step": index,
                "action": "price",
                "block": clock.now(),
                "price": auction.current_price(),
            })
        else:
            bidder = accounts.get(step.bidder) or resolve_account(step.bidder)
            accounts.setdefault(step.bidder, bidder)
            result = auction.submit_bid(bidder, step.amount)
            outcomes.append({
                "step": index,
                "action": "bid",
                "block": clock.now(),
                "bidder": step.bidder,
                "amount": step.amount,
                "price": auction.current_price(),
                "accepted": result.accepted,
                "error": result.error.name if result.error else None,
                "message": result.message,
            })

    return {
        "steps": outcomes,
        "final": auction.info(),
        "balances": {name: book.balance_of(addr) for name, addr in sorted(accounts.items())},
        "accounts": {name: bytes_to_hex(addr) for name, addr in sorted(accounts.items())},
    }
