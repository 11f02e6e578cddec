"""
Integration Tests - End-to-end auction flows on the in-memory host.

Covers the auction variants:
1. Plain value auction (native value bids, no asset)
2. NFT auction paid in native value
3. NFT auction paid in ERC-20 style tokens (allowance based)
4. Hard-close auctions behind an auction house with rule upgrades
"""

import pytest

from dae.core.auction import (
    AuctionPhase,
    AuctionRules,
    DutchAuction,
    LateBidPolicy,
)
from dae.core.errors import ErrorKind
from dae.core.house import AuctionHouse
from dae.core.host import (
    BalanceBook,
    BlockClock,
    NativePayment,
    NFTAsset,
    TokenPayment,
    TokenRegistry,
    UnitAsset,
)
from dae.crypto import keypair_from_seed


TOKEN_ID = 5


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def accounts():
    """Named deterministic accounts."""
    return {name: keypair_from_seed(name).address for name in ("seller", "alice", "bob", "market")}


@pytest.fixture
def clock():
    return BlockClock(height=1)


@pytest.fixture
def ether(accounts):
    book = BalanceBook("ETH")
    book.mint(accounts["alice"], 10_000)
    book.mint(accounts["bob"], 10_000)
    return book


@pytest.fixture
def nfts(accounts):
    registry = TokenRegistry(minter=accounts["seller"])
    registry.mint(accounts["seller"], accounts["seller"], TOKEN_ID)
    return registry


@pytest.fixture
def tokens(accounts):
    seller = accounts["seller"]
    book = BalanceBook("DAT", minter=seller)
    book.mint(seller, 50000, caller=seller)
    book.transfer(seller, accounts["alice"], 2000)
    book.transfer(seller, accounts["bob"], 2000)
    return book


# =============================================================================
# Plain Value Auction
# =============================================================================


class TestBasicAuction:
    """Native value, no asset."""

    @pytest.fixture
    def auction(self, accounts, clock, ether):
        return DutchAuction.create(
            seller=accounts["seller"],
            reserve_price=1000,
            auction_duration_units=20,
            price_decrement_per_unit=10,
            time_source=clock,
            payment=NativePayment(ether),
            asset=UnitAsset(),
        )

    def test_seller_receives_value(self, auction, accounts, ether):
        auction.bid(accounts["bob"], 1500)
        assert ether.balance_of(accounts["seller"]) == 1500

    def test_transfer_to_seller_fails(self, auction, accounts, ether):
        """A seller that refuses value makes the bid fail with 'transfer failed'."""
        ether.reject_payments_to(accounts["seller"])

        result = auction.submit_bid(accounts["bob"], 1500)

        assert result.error == ErrorKind.PAYMENT_TRANSFER_FAILED
        assert result.message == "transfer failed"
        assert ether.balance_of(accounts["bob"]) == 10_000
        assert auction.get_state().phase == AuctionPhase.OPEN

    def test_insufficient_funds(self, auction, accounts, ether):
        poor = keypair_from_seed("poor").address
        result = auction.submit_bid(poor, 1500)
        assert result.error == ErrorKind.PAYMENT_TRANSFER_FAILED


# =============================================================================
# NFT Auction (native value)
# =============================================================================


class TestNFTAuction:
    """NFT sold for native value."""

    @pytest.fixture
    def auction(self, accounts, clock, ether, nfts):
        auction = DutchAuction.create(
            seller=accounts["seller"],
            reserve_price=1000,
            auction_duration_units=20,
            price_decrement_per_unit=10,
            time_source=clock,
            payment=NativePayment(ether),
            asset=NFTAsset(nfts, TOKEN_ID, operator=accounts["market"]),
        )
        return auction

    def test_winner_receives_nft(self, auction, accounts, nfts):
        nfts.approve(accounts["seller"], accounts["market"], TOKEN_ID)

        auction.bid(accounts["bob"], 1500)

        assert nfts.owner_of(TOKEN_ID) == accounts["bob"]

    def test_unapproved_nft_rolls_back_payment(self, auction, accounts, ether, nfts):
        """Seller never approved the market: payment is returned, auction stays open."""
        result = auction.submit_bid(accounts["bob"], 1500)

        assert result.error == ErrorKind.ASSET_TRANSFER_FAILED
        assert ether.balance_of(accounts["bob"]) == 10_000
        assert ether.balance_of(accounts["seller"]) == 0
        assert nfts.owner_of(TOKEN_ID) == accounts["seller"]
        assert auction.get_state().phase == AuctionPhase.OPEN

        # Seller fixes the approval, the same bid now goes through
        nfts.approve(accounts["seller"], accounts["market"], TOKEN_ID)
        assert auction.submit_bid(accounts["bob"], 1500).accepted

    def test_seller_moved_nft_away(self, auction, accounts, ether, nfts):
        nfts.transfer_from(accounts["seller"], accounts["seller"], accounts["alice"], TOKEN_ID)

        result = auction.submit_bid(accounts["bob"], 1500)

        assert result.error == ErrorKind.ASSET_TRANSFER_FAILED
        assert ether.balance_of(accounts["bob"]) == 10_000


# =============================================================================
# NFT Auction (ERC-20 bids)
# =============================================================================


class TestNFTAuctionTokenBids:
    """NFT sold for tokens pulled through an allowance."""

    @pytest.fixture
    def auction(self, accounts, clock, tokens, nfts):
        auction = DutchAuction.create(
            seller=accounts["seller"],
            reserve_price=1000,
            auction_duration_units=20,
            price_decrement_per_unit=10,
            time_source=clock,
            payment=TokenPayment(tokens, operator=accounts["market"]),
            asset=NFTAsset(nfts, TOKEN_ID, operator=accounts["market"]),
        )
        nfts.approve(accounts["seller"], accounts["market"], TOKEN_ID)
        return auction

    def test_full_flow(self, auction, accounts, tokens, nfts, clock):
        alice, bob, seller = accounts["alice"], accounts["bob"], accounts["seller"]
        tokens.approve(alice, accounts["market"], 1100)

        assert auction.submit_bid(alice, 1100).error == ErrorKind.BID_TOO_LOW

        clock.mine(10)
        assert auction.submit_bid(alice, 1100).accepted

        tokens.approve(bob, accounts["market"], 1500)
        assert auction.submit_bid(bob, 1500).error == ErrorKind.ALREADY_SETTLED

        assert nfts.owner_of(TOKEN_ID) == alice
        assert tokens.balance_of(alice) == 900
        assert tokens.balance_of(seller) == 46000 + 1100
        assert tokens.balance_of(bob) == 2000

    def test_bid_without_allowance_fails(self, auction, accounts, tokens, nfts):
        result = auction.submit_bid(accounts["alice"], 1500)

        assert result.error == ErrorKind.PAYMENT_TRANSFER_FAILED
        assert nfts.owner_of(TOKEN_ID) == accounts["seller"]

    def test_allowance_restored_after_asset_failure(self, auction, accounts, tokens, nfts):
        alice, market = accounts["alice"], accounts["market"]
        tokens.approve(alice, market, 1500)
        # Seller revokes by approving someone else
        nfts.approve(accounts["seller"], accounts["bob"], TOKEN_ID)

        result = auction.submit_bid(alice, 1500)

        assert result.error == ErrorKind.ASSET_TRANSFER_FAILED
        assert tokens.balance_of(alice) == 2000
        assert tokens.allowance(alice, market) == 1500

    def test_bid_at_last_block(self, auction, accounts, tokens, clock):
        tokens.approve(accounts["bob"], accounts["market"], 1000)
        clock.mine(20)
        assert auction.submit_bid(accounts["bob"], 1000).accepted


# =============================================================================
# Auction House with Hard Close
# =============================================================================


class TestHouseHardClose:
    """Hard-close rules and upgrades through the house."""

    @pytest.fixture
    def house(self, clock):
        house = AuctionHouse(clock)
        house.register_rules(AuctionRules(version="v5", late_bid_policy=LateBidPolicy.HARD_CLOSE))
        return house

    def test_hard_close_after_window(self, house, accounts, tokens, nfts, clock):
        auction_id = house.create_auction(
            seller=accounts["seller"],
            reserve_price=1000,
            auction_duration_units=20,
            price_decrement_per_unit=10,
            payment=TokenPayment(tokens, operator=accounts["market"]),
            asset=NFTAsset(nfts, TOKEN_ID, operator=accounts["market"]),
            version="v5",
        )
        nfts.approve(accounts["seller"], accounts["market"], TOKEN_ID)
        tokens.approve(accounts["bob"], accounts["market"], 1000)
        clock.mine(21)

        result = house.submit_bid(auction_id, accounts["bob"], 1000)

        assert result.error == ErrorKind.AUCTION_CLOSED
        assert result.message == "Auction closed"
        assert tokens.balance_of(accounts["bob"]) == 2000

    def test_many_auctions_share_host(self, house, accounts, ether):
        ids = [
            house.create_auction(
                seller=accounts["seller"],
                reserve_price=100 * (i + 1),
                auction_duration_units=10,
                price_decrement_per_unit=1,
                payment=NativePayment(ether),
                asset=UnitAsset(),
            )
            for i in range(3)
        ]

        for auction_id in ids:
            price = house.current_price(auction_id)
            assert house.submit_bid(auction_id, accounts["alice"], price).accepted

        assert ether.balance_of(accounts["seller"]) == 110 + 210 + 310
        assert house.stats()["settled_volume"] == 630


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
