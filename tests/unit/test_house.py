"""
Unit tests for the auction house.

Tests cover:
1. Independent auctions by handle
2. Version-tagged rules and upgrades
3. Upgrade permissions
4. Statistics
"""

import pytest

from dae.core.auction import AuctionRules, LateBidPolicy, SettlementPolicy
from dae.core.config import EngineConfig
from dae.core.errors import ErrorKind
from dae.core.house import AuctionHouse
from dae.core.host import BalanceBook, BlockClock, NativePayment, UnitAsset
from dae.crypto import generate_keypair


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock():
    return BlockClock()


@pytest.fixture
def house(clock):
    return AuctionHouse(clock)


@pytest.fixture
def seller():
    return generate_keypair().address


@pytest.fixture
def bidder():
    return generate_keypair().address


@pytest.fixture
def book(bidder):
    book = BalanceBook()
    book.mint(bidder, 100_000)
    return book


def open_auction(house, seller, book, **kwargs):
    return house.create_auction(
        seller=seller,
        reserve_price=1000,
        auction_duration_units=20,
        price_decrement_per_unit=10,
        payment=NativePayment(book),
        asset=UnitAsset(),
        **kwargs,
    )


HARD_CLOSE_V2 = AuctionRules(version="v2", late_bid_policy=LateBidPolicy.HARD_CLOSE)


# =============================================================================
# Auction Lifecycle Tests
# =============================================================================


class TestAuctions:
    """Tests for creating and bidding through the house."""

    def test_create_auction(self, house, seller, book):
        auction_id = open_auction(house, seller, book)

        assert house.get(auction_id) is not None
        assert house.current_price(auction_id) == 1200
        assert house.versions[auction_id] == "v1"

    def test_auctions_are_independent(self, house, seller, book, bidder):
        first = open_auction(house, seller, book)
        second = open_auction(house, seller, book)

        assert house.submit_bid(first, bidder, 1500).accepted

        assert house.get(second).get_state().winner is None
        assert house.submit_bid(second, bidder, 1500).accepted

    def test_unknown_auction(self, house, bidder):
        with pytest.raises(KeyError):
            house.submit_bid(b"\x00" * 32, bidder, 1500)

    def test_unknown_version_rejected(self, house, seller, book):
        with pytest.raises(ValueError):
            open_auction(house, seller, book, version="v9")

    def test_default_rules_from_config(self, clock, seller, book, bidder):
        config = EngineConfig(settlement_policy=SettlementPolicy.CHARGE_PRICE)
        house = AuctionHouse(clock, config)
        auction_id = open_auction(house, seller, book)

        result = house.submit_bid(auction_id, bidder, 1500)
        assert result.amount == 1200

    def test_open_auctions(self, house, seller, book, bidder):
        first = open_auction(house, seller, book)
        second = open_auction(house, seller, book)
        house.submit_bid(first, bidder, 1500)

        assert house.open_auctions() == [second]


# =============================================================================
# Rules / Upgrade Tests
# =============================================================================


class TestUpgrade:
    """Tests for version-tagged rules."""

    def test_register_rules(self, house):
        ok, _ = house.register_rules(HARD_CLOSE_V2)
        assert ok
        assert "v2" in house.rules

    def test_register_duplicate_rejected(self, house):
        house.register_rules(HARD_CLOSE_V2)
        ok, msg = house.register_rules(HARD_CLOSE_V2)
        assert not ok
        assert "already registered" in msg

    def test_create_with_version(self, house, seller, book, bidder, clock):
        house.register_rules(HARD_CLOSE_V2)
        auction_id = open_auction(house, seller, book, version="v2")
        clock.mine(21)

        result = house.submit_bid(auction_id, bidder, 1000)
        assert result.error == ErrorKind.AUCTION_CLOSED

    def test_upgrade_switches_rules_at_bid_time(self, house, seller, book, bidder, clock):
        house.register_rules(HARD_CLOSE_V2)
        auction_id = open_auction(house, seller, book)
        engine = house.get(auction_id)
        clock.mine(25)

        ok, _ = house.upgrade(auction_id, "v2", caller=seller)

        assert ok
        assert house.get(auction_id) is engine
        assert house.submit_bid(auction_id, bidder, 1000).error == ErrorKind.AUCTION_CLOSED

        house.upgrade(auction_id, "v1", caller=seller)
        assert house.submit_bid(auction_id, bidder, 1000).accepted

    def test_upgrade_reflected_in_views(self, house, seller, book, bidder, clock):
        """Views and bids agree on the rules after an upgrade."""
        house.register_rules(HARD_CLOSE_V2)
        auction_id = open_auction(house, seller, book)
        assert house.accepting_bids(auction_id)

        house.upgrade(auction_id, "v2", caller=seller)
        clock.mine(30)

        info = house.get(auction_id).info()
        assert info["accepting_bids"] is False
        assert info["rules"].startswith("v2")
        assert house.accepting_bids(auction_id) is False
        assert house.info(auction_id)["version"] == "v2"
        assert house.submit_bid(auction_id, bidder, 1000).error == ErrorKind.AUCTION_CLOSED

    def test_engine_keeps_rules_on_failed_upgrade(self, house, seller, book, bidder):
        house.register_rules(HARD_CLOSE_V2)
        auction_id = open_auction(house, seller, book)

        house.upgrade(auction_id, "v2", caller=bidder)

        assert house.get(auction_id).rules.version == "v1"
        assert house.info(auction_id)["version"] == "v1"

    def test_upgrade_by_non_seller_rejected(self, house, seller, book, bidder):
        house.register_rules(HARD_CLOSE_V2)
        auction_id = open_auction(house, seller, book)

        ok, msg = house.upgrade(auction_id, "v2", caller=bidder)

        assert not ok
        assert "not the seller" in msg
        assert house.versions[auction_id] == "v1"

    def test_upgrade_unknown_version(self, house, seller, book):
        auction_id = open_auction(house, seller, book)
        ok, _ = house.upgrade(auction_id, "v7", caller=seller)
        assert not ok

    def test_upgrade_settled_rejected(self, house, seller, book, bidder):
        house.register_rules(HARD_CLOSE_V2)
        auction_id = open_auction(house, seller, book)
        house.submit_bid(auction_id, bidder, 1500)

        ok, msg = house.upgrade(auction_id, "v2", caller=seller)
        assert not ok
        assert "settled" in msg

    def test_upgrade_unknown_auction(self, house, seller):
        ok, _ = house.upgrade(b"\x01" * 32, "v1", caller=seller)
        assert not ok


# =============================================================================
# Stats Tests
# =============================================================================


class TestStats:
    def test_stats(self, house, seller, book, bidder):
        first = open_auction(house, seller, book)
        open_auction(house, seller, book)
        house.submit_bid(first, bidder, 1500)

        stats = house.stats()

        assert stats["open_auctions"] == 1
        assert stats["settled_auctions"] == 1
        assert stats["settled_volume"] == 1500
        assert stats["rules_versions"] == ["v1"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
