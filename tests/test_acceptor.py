import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest

from conftest import FakeConnection
from live_auction.core.errors import BidRejectedError, RejectReason
from live_auction.services import acceptor as acceptor_module
from live_auction.services.acceptor import AcceptedBid
from live_auction.services.queries import load_snapshot
from live_auction.services.validator import AuctionSnapshot


@pytest.fixture
async def people(seed):
    owner = await seed.user("seller")
    alice = await seed.user("alice")
    bob = await seed.user("bob")
    return owner, alice, bob


async def test_accepted_bid_is_recorded_with_server_time(acceptor, seed, people, clock):
    owner, alice, _ = people
    auction_id = await seed.auction(owner, base_price="100")

    accepted = await acceptor.accept(auction_id, alice, 150)

    assert accepted.amount == Decimal("150")
    assert accepted.bid_time == clock.now()
    assert accepted.highest_amount == Decimal("150")
    assert accepted.highest_bidder == "alice"
    assert await seed.bid_count(auction_id) == 1


async def test_client_time_does_not_change_bid_time(acceptor, seed, people, clock):
    owner, alice, _ = people
    auction_id = await seed.auction(owner)

    accepted = await acceptor.accept(
        auction_id, alice, 150, client_time=clock.now() + timedelta(hours=2)
    )

    assert accepted.bid_time == clock.now()


async def test_accepted_bid_broadcasts_new_highest(acceptor, seed, people, registry):
    owner, alice, _ = people
    auction_id = await seed.auction(owner)
    observer = FakeConnection()
    registry.add(observer)

    await acceptor.accept(auction_id, alice, "150.50")

    assert observer.messages == [
        {
            "event": "updateHighest",
            "data": {"auctionId": auction_id, "highestAmount": 150.5, "highestBidder": "alice"},
        }
    ]


async def test_lower_bid_is_rejected_with_threshold(acceptor, seed, people, registry):
    owner, alice, bob = people
    auction_id = await seed.auction(owner, base_price="100")
    await acceptor.accept(auction_id, alice, 150)
    observer = FakeConnection()
    registry.add(observer)

    with pytest.raises(BidRejectedError) as exc_info:
        await acceptor.accept(auction_id, bob, 120)

    assert exc_info.value.reason is RejectReason.BID_TOO_LOW
    assert exc_info.value.threshold == Decimal("150")
    assert await seed.bid_count(auction_id) == 1
    assert not observer.messages


async def test_bid_equal_to_highest_is_rejected(acceptor, seed, people):
    owner, alice, bob = people
    auction_id = await seed.auction(owner, base_price="100")
    await acceptor.accept(auction_id, alice, 150)

    with pytest.raises(BidRejectedError) as exc_info:
        await acceptor.accept(auction_id, bob, "150.00")

    assert exc_info.value.reason is RejectReason.BID_TOO_LOW


async def test_bid_equal_to_base_price_is_rejected(acceptor, seed, people):
    owner, alice, _ = people
    auction_id = await seed.auction(owner, base_price="100")

    with pytest.raises(BidRejectedError) as exc_info:
        await acceptor.accept(auction_id, alice, 100)

    assert exc_info.value.reason is RejectReason.BID_TOO_LOW
    assert exc_info.value.threshold == Decimal("100")


async def test_bid_after_end_time_is_rejected(acceptor, seed, people, clock):
    owner, alice, _ = people
    auction_id = await seed.auction(owner, ends_in=timedelta(seconds=30))
    clock.advance(30)

    with pytest.raises(BidRejectedError) as exc_info:
        await acceptor.accept(auction_id, alice, 500)

    assert exc_info.value.reason is RejectReason.AUCTION_CLOSED
    assert await seed.bid_count(auction_id) == 0


async def test_bid_on_unknown_auction(acceptor, people):
    _, alice, _ = people
    with pytest.raises(BidRejectedError) as exc_info:
        await acceptor.accept(999, alice, 500)
    assert exc_info.value.reason is RejectReason.AUCTION_NOT_FOUND


async def test_non_numeric_amount(acceptor, seed, people):
    owner, alice, _ = people
    auction_id = await seed.auction(owner)
    with pytest.raises(BidRejectedError) as exc_info:
        await acceptor.accept(auction_id, alice, "lots")
    assert exc_info.value.reason is RejectReason.INVALID_AMOUNT


async def test_concurrent_equal_bids_only_one_wins(acceptor, seed, people):
    owner, alice, bob = people
    auction_id = await seed.auction(owner, base_price="100")

    results = await asyncio.gather(
        acceptor.accept(auction_id, alice, 200),
        acceptor.accept(auction_id, bob, 200),
        return_exceptions=True,
    )

    accepted = [r for r in results if isinstance(r, AcceptedBid)]
    rejected = [r for r in results if isinstance(r, BidRejectedError)]
    assert len(accepted) == 1
    assert len(rejected) == 1
    assert rejected[0].reason is RejectReason.BID_TOO_LOW
    assert await seed.bid_count(auction_id) == 1


async def test_concurrent_bids_leave_strictly_increasing_history(acceptor, seed, people):
    owner, alice, bob = people
    auction_id = await seed.auction(owner, base_price="100")

    await asyncio.gather(
        *(acceptor.accept(auction_id, alice if i % 2 else bob, 100 + i) for i in range(1, 11)),
        return_exceptions=True,
    )

    amounts = await seed.bid_amounts(auction_id)
    assert amounts
    assert all(a < b for a, b in zip(amounts, amounts[1:]))


async def test_fraction_of_a_cent_over_base_price_is_invalid(acceptor, seed, people):
    owner, alice, _ = people
    auction_id = await seed.auction(owner, base_price="100")

    with pytest.raises(BidRejectedError) as exc_info:
        await acceptor.accept(auction_id, alice, "100.001")

    assert exc_info.value.reason is RejectReason.INVALID_AMOUNT
    assert await seed.bid_count(auction_id) == 0


async def test_fraction_of_a_cent_over_highest_is_invalid(acceptor, seed, people):
    owner, alice, bob = people
    auction_id = await seed.auction(owner, base_price="100")
    await acceptor.accept(auction_id, alice, 150)

    with pytest.raises(BidRejectedError) as exc_info:
        await acceptor.accept(auction_id, bob, "150.004")

    assert exc_info.value.reason is RejectReason.INVALID_AMOUNT
    assert await seed.bid_amounts(auction_id) == [Decimal("150.00")]


async def test_stored_amount_matches_accepted_amount(acceptor, seed, people):
    owner, alice, _ = people
    auction_id = await seed.auction(owner, base_price="100")

    accepted = await acceptor.accept(auction_id, alice, "100.10")

    assert await seed.bid_amounts(auction_id) == [accepted.amount]
    assert accepted.highest_amount == accepted.amount


async def test_conditional_insert_refuses_bid_validated_on_stale_read(
    acceptor, seed, people, clock, monkeypatch
):
    owner, alice, bob = people
    auction_id = await seed.auction(owner, base_price="100")
    await seed.bid(auction_id, alice, "200", bid_time=clock.now())

    calls = []

    async def stale_then_fresh(session, requested_id, *, lock=False):
        calls.append(lock)
        if len(calls) == 1:
            # What a reader saw before alice's 200 committed.
            return AuctionSnapshot(
                auction_id=requested_id,
                base_price=Decimal("100"),
                end_time=clock.now() + timedelta(minutes=1),
                status="active",
                highest_bid=Decimal(0),
            )
        return await load_snapshot(session, requested_id, lock=lock)

    monkeypatch.setattr(acceptor_module, "load_snapshot", stale_then_fresh)

    with pytest.raises(BidRejectedError) as exc_info:
        await acceptor.accept(auction_id, bob, 150)

    assert calls == [True, False]
    assert exc_info.value.reason is RejectReason.BID_TOO_LOW
    assert exc_info.value.threshold == Decimal("200")
    assert await seed.bid_count(auction_id) == 1
