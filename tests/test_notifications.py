from datetime import timedelta

import pytest

from live_auction.core.errors import ForbiddenError, NotFoundError
from live_auction.db.models import NotificationCategory
from live_auction.db.sessions import session_scope
from live_auction.services.notifications import NotificationService, create_once


@pytest.fixture
async def setup(seed, session_factory, clock):
    owner = await seed.user("seller")
    alice = await seed.user("alice")
    auction_id = await seed.auction(owner)
    return owner, alice, auction_id


async def notify(session_factory, auction_id, user_id, category, now, message="hello"):
    async with session_scope(session_factory) as session:
        return await create_once(
            session,
            auction_id=auction_id,
            user_id=user_id,
            category=category,
            message=message,
            now=now,
        )


async def test_create_once_skips_duplicates(setup, session_factory, seed, clock):
    _, alice, auction_id = setup

    first = await notify(session_factory, auction_id, alice.user_id, NotificationCategory.WINNER, clock.now())
    second = await notify(session_factory, auction_id, alice.user_id, NotificationCategory.WINNER, clock.now())

    assert first is not None and first.id is not None
    assert second is None
    assert len(await seed.notifications(auction_id)) == 1


async def test_create_once_allows_other_categories_and_users(setup, session_factory, seed, clock):
    owner, alice, auction_id = setup

    await notify(session_factory, auction_id, alice.user_id, NotificationCategory.WINNER, clock.now())
    await notify(session_factory, auction_id, alice.user_id, NotificationCategory.LOSER, clock.now())
    await notify(session_factory, auction_id, owner.user_id, NotificationCategory.WINNER, clock.now())

    assert len(await seed.notifications(auction_id)) == 3


async def test_list_is_newest_first_and_capped(setup, session_factory, seed, clock):
    owner, alice, _ = setup
    for i in range(4):
        auction_id = await seed.auction(owner, title=f"lot {i}")
        await notify(
            session_factory,
            auction_id,
            alice.user_id,
            NotificationCategory.LOSER,
            clock.now() + timedelta(minutes=i),
            message=f"lot {i}",
        )

    listed = await NotificationService(session_factory, limit=3).list_for(alice)

    assert [n.message for n in listed] == ["lot 3", "lot 2", "lot 1"]


async def test_mark_read_only_for_the_owner(setup, session_factory, clock):
    owner, alice, auction_id = setup
    note = await notify(session_factory, auction_id, alice.user_id, NotificationCategory.WINNER, clock.now())
    service = NotificationService(session_factory)

    with pytest.raises(ForbiddenError):
        await service.mark_read(owner, note.id)
    with pytest.raises(NotFoundError):
        await service.mark_read(alice, 12345)

    updated = await service.mark_read(alice, note.id)
    assert updated.is_read


async def test_mark_all_read_and_delete_read(setup, session_factory, seed, clock):
    owner, alice, auction_id = setup
    service = NotificationService(session_factory)
    await notify(session_factory, auction_id, alice.user_id, NotificationCategory.WINNER, clock.now())
    other_auction = await seed.auction(owner, title="second lot")
    await notify(session_factory, other_auction, alice.user_id, NotificationCategory.LOSER, clock.now())

    assert await service.mark_all_read(alice) == 2
    assert await service.mark_all_read(alice) == 0

    third_auction = await seed.auction(owner, title="third lot")
    await notify(session_factory, third_auction, alice.user_id, NotificationCategory.LOSER, clock.now())

    assert await service.delete_all(alice, only_read=True) == 2
    remaining = await service.list_for(alice)
    assert len(remaining) == 1 and not remaining[0].is_read


async def test_delete_one(setup, session_factory, clock):
    owner, alice, auction_id = setup
    note = await notify(session_factory, auction_id, alice.user_id, NotificationCategory.WINNER, clock.now())
    service = NotificationService(session_factory)

    with pytest.raises(ForbiddenError):
        await service.delete(owner, note.id)
    await service.delete(alice, note.id)

    assert await service.list_for(alice) == []
    with pytest.raises(NotFoundError):
        await service.delete(alice, note.id)
