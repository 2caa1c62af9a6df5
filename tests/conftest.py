"""Shared fixtures: a throwaway SQLite store, a hand-driven clock and fake live clients."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import pytest
from sqlalchemy import func, select

from live_auction.clock import ManualClock
from live_auction.core.security import Identity
from live_auction.db.models import Auction, Bid, Notification, User
from live_auction.db.sessions import (create_database_engine, init_db,
                                      make_session_factory, session_scope)
from live_auction.services import AuctionResolver, BidAcceptor, ConnectionRegistry

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeConnection:
    """Stands in for a WebSocket; records what it was sent."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.messages: list[dict[str, Any]] = []

    async def send_json(self, data: Any) -> None:
        if self.fail:
            raise ConnectionError("client went away")
        self.messages.append(data)

    def events(self, name: str | None = None) -> list[dict[str, Any]]:
        return [m for m in self.messages if name is None or m["event"] == name]


class Seeder:
    """Writes fixture rows directly, bypassing the services."""

    def __init__(self, session_factory, clock: ManualClock) -> None:
        self._factory = session_factory
        self._clock = clock

    async def user(self, username: str) -> Identity:
        async with session_scope(self._factory) as session:
            user = User(username=username, password_hash="not-a-bcrypt-hash")
            session.add(user)
            await session.flush()
            return Identity(user_id=user.id, username=user.username)

    async def auction(
        self,
        owner: Identity,
        base_price: str | Decimal = "100",
        ends_in: timedelta = timedelta(minutes=1),
        title: str = "1967 Ford Mustang",
    ) -> int:
        now = self._clock.now()
        async with session_scope(self._factory) as session:
            auction = Auction(
                owner_id=owner.user_id,
                title=title,
                base_price=Decimal(base_price),
                start_time=now,
                end_time=now + ends_in,
                created_at=now,
            )
            session.add(auction)
            await session.flush()
            return auction.id

    async def bid(self, auction_id: int, bidder: Identity, amount: str, bid_time: datetime) -> int:
        async with session_scope(self._factory) as session:
            bid = Bid(
                auction_id=auction_id,
                user_id=bidder.user_id,
                amount=Decimal(amount),
                bid_time=bid_time,
            )
            session.add(bid)
            await session.flush()
            return bid.id

    async def get_auction(self, auction_id: int) -> Auction:
        async with session_scope(self._factory) as session:
            return await session.get(Auction, auction_id)

    async def bid_count(self, auction_id: int) -> int:
        async with session_scope(self._factory) as session:
            result = await session.execute(
                select(func.count()).select_from(Bid).where(Bid.auction_id == auction_id)
            )
            return result.scalar_one()

    async def bid_amounts(self, auction_id: int) -> list[Decimal]:
        """Accepted amounts in insertion order."""
        async with session_scope(self._factory) as session:
            result = await session.execute(
                select(Bid.amount).where(Bid.auction_id == auction_id).order_by(Bid.id)
            )
            return [Decimal(str(a)) for a in result.scalars().all()]

    async def notifications(self, auction_id: int) -> list[Notification]:
        async with session_scope(self._factory) as session:
            result = await session.execute(
                select(Notification)
                .where(Notification.auction_id == auction_id)
                .order_by(Notification.id)
            )
            return list(result.scalars().all())


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(T0)


@pytest.fixture
async def engine(tmp_path):
    engine = create_database_engine(f"sqlite+aiosqlite:///{tmp_path / 'auction.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def seed(session_factory, clock) -> Seeder:
    return Seeder(session_factory, clock)


@pytest.fixture
def acceptor(session_factory, clock, registry) -> BidAcceptor:
    return BidAcceptor(session_factory, clock, registry)


@pytest.fixture
def resolver(session_factory, clock, registry) -> AuctionResolver:
    return AuctionResolver(session_factory, clock, registry, grace_seconds=3.0)
