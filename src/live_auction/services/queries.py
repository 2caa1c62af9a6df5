"""Read helpers shared by the bidding and closing services."""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from live_auction.db.models import Auction, AuctionStatus, Bid, User
from live_auction.services.validator import AuctionSnapshot


@dataclass(frozen=True)
class LeadingBid:
    """The current winning bid of an auction and who placed it."""

    bid_id: int
    user_id: int
    username: str
    amount: Decimal
    bid_time: datetime


def as_decimal(value: object) -> Decimal:
    """Coerce a numeric column value (float on SQLite, Decimal elsewhere) to Decimal."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def effective_status(status: str, end_time: datetime, now: datetime) -> str:
    """Status as a client should see it: past the end time counts as ended."""
    if status == AuctionStatus.ENDED.value or now >= end_time:
        return AuctionStatus.ENDED.value
    return AuctionStatus.ACTIVE.value


async def highest_amount(session: AsyncSession, auction_id: int) -> Decimal | None:
    result = await session.execute(
        select(func.max(Bid.amount)).where(Bid.auction_id == auction_id)
    )
    value = result.scalar_one_or_none()
    return as_decimal(value) if value is not None else None


async def latest_bid_time(session: AsyncSession, auction_id: int) -> datetime | None:
    result = await session.execute(
        select(func.max(Bid.bid_time)).where(Bid.auction_id == auction_id)
    )
    return result.scalar_one_or_none()


async def load_auction(
    session: AsyncSession, auction_id: int, *, lock: bool = False
) -> Auction | None:
    """Fetch a fresh copy of the auction row.

    With lock=True the row is held FOR UPDATE until the transaction ends, which
    serializes concurrent bidders on the same auction (a no-op on SQLite, where
    the conditional insert alone is the gate).
    """
    stmt = (
        select(Auction)
        .where(Auction.id == auction_id)
        .execution_options(populate_existing=True)
    )
    if lock:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def load_snapshot(
    session: AsyncSession, auction_id: int, *, lock: bool = False
) -> AuctionSnapshot | None:
    auction = await load_auction(session, auction_id, lock=lock)
    if auction is None:
        return None
    highest = await highest_amount(session, auction_id)
    return AuctionSnapshot(
        auction_id=auction_id,
        base_price=as_decimal(auction.base_price),
        end_time=auction.end_time,
        status=auction.status,
        highest_bid=highest if highest is not None else Decimal(0),
    )


async def leading_bid(session: AsyncSession, auction_id: int) -> LeadingBid | None:
    """Highest amount wins; on equal amounts the earliest bid_time wins."""
    result = await session.execute(
        select(Bid.id, Bid.user_id, User.username, Bid.amount, Bid.bid_time)
        .join(User, User.id == Bid.user_id)
        .where(Bid.auction_id == auction_id)
        .order_by(Bid.amount.desc(), Bid.bid_time.asc(), Bid.id.asc())
        .limit(1)
    )
    row = result.first()
    if row is None:
        return None
    return LeadingBid(
        bid_id=row.id,
        user_id=row.user_id,
        username=row.username,
        amount=as_decimal(row.amount),
        bid_time=row.bid_time,
    )


async def bidder_ids(session: AsyncSession, auction_id: int) -> list[int]:
    """Distinct users who bid on the auction."""
    result = await session.execute(
        select(Bid.user_id).where(Bid.auction_id == auction_id).distinct().order_by(Bid.user_id)
    )
    return list(result.scalars().all())
