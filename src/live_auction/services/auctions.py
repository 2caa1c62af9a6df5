"""Auction creation and the read views (list, detail, a user's bid history)."""
import logging
from datetime import datetime

from sqlalchemy import func, select

from live_auction.clock import Clock
from live_auction.core.errors import InvalidRequestError, NotFoundError
from live_auction.core.security import Identity
from live_auction.db.models import Auction, AuctionStatus, Bid, User
from live_auction.db.sessions import SessionFactory, session_scope
from live_auction.schemas import (AuctionCreate, AuctionDetail,
                                  AuctionSummary, BidHistoryEntry, BidOut)
from live_auction.services.queries import as_decimal, effective_status

logger = logging.getLogger(__name__)


def _summary_fields(
    auction: Auction, owner_username: str, highest: object, now: datetime
) -> dict:
    return {
        "id": auction.id,
        "title": auction.title,
        "brand": auction.brand,
        "model": auction.model,
        "year": auction.year,
        "base_price": as_decimal(auction.base_price),
        "start_time": auction.start_time,
        "end_time": auction.end_time,
        "status": effective_status(auction.status, auction.end_time, now),
        "owner_username": owner_username,
        "highest_bid": as_decimal(highest) if highest is not None else None,
    }


class AuctionService:
    """Everything about auctions except bidding and closing."""

    def __init__(self, session_factory: SessionFactory, clock: Clock) -> None:
        self._session_factory = session_factory
        self._clock = clock

    async def create(self, owner: Identity, data: AuctionCreate) -> AuctionDetail:
        """Open a new auction owned by `owner`. Times arrive already normalized to UTC."""
        now = self._clock.now()
        start_time = data.start_time or now
        if data.end_time <= now:
            raise InvalidRequestError("end_time must be in the future")
        if data.end_time <= start_time:
            raise InvalidRequestError("end_time must be after start_time")
        auction = Auction(
            owner_id=owner.user_id,
            title=data.title,
            description=data.description,
            brand=data.brand,
            model=data.model,
            year=data.year,
            base_price=data.base_price,
            start_time=start_time,
            end_time=data.end_time,
            status=AuctionStatus.ACTIVE.value,
            created_at=now,
        )
        async with session_scope(self._session_factory) as session:
            session.add(auction)
            await session.flush()
            detail = AuctionDetail(
                **_summary_fields(auction, owner.username, None, now),
                description=auction.description,
            )
        logger.info("Auction %s created by %s, ends %s", detail.id, owner.username, detail.end_time)
        return detail

    async def list_auctions(self) -> list[AuctionSummary]:
        """All auctions, most recently started first, with their current highest bid."""
        now = self._clock.now()
        highest = (
            select(Bid.auction_id, func.max(Bid.amount).label("highest"))
            .group_by(Bid.auction_id)
            .subquery()
        )
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                select(Auction, User.username, highest.c.highest)
                .join(User, User.id == Auction.owner_id)
                .outerjoin(highest, highest.c.auction_id == Auction.id)
                .order_by(Auction.start_time.desc(), Auction.id.desc())
            )
            return [
                AuctionSummary(**_summary_fields(auction, username, top, now))
                for auction, username, top in result.all()
            ]

    async def get(self, auction_id: int) -> AuctionDetail:
        """One auction with its bids, highest first (earliest first on equal amounts)."""
        now = self._clock.now()
        async with session_scope(self._session_factory) as session:
            row = (
                await session.execute(
                    select(Auction, User.username)
                    .join(User, User.id == Auction.owner_id)
                    .where(Auction.id == auction_id)
                )
            ).first()
            if row is None:
                raise NotFoundError(f"Auction {auction_id} not found")
            auction, owner_username = row
            bids = (
                await session.execute(
                    select(Bid.amount, Bid.bid_time, User.username)
                    .join(User, User.id == Bid.user_id)
                    .where(Bid.auction_id == auction_id)
                    .order_by(Bid.amount.desc(), Bid.bid_time.asc(), Bid.id.asc())
                )
            ).all()
        bid_list = [
            BidOut(amount=as_decimal(b.amount), bid_time=b.bid_time, username=b.username)
            for b in bids
        ]
        top = bid_list[0].amount if bid_list else None
        return AuctionDetail(
            **_summary_fields(auction, owner_username, top, now),
            description=auction.description,
            bids=bid_list,
        )

    async def bid_history(self, identity: Identity) -> list[BidHistoryEntry]:
        """The caller's best bid per auction, latest-ending auctions first."""
        now = self._clock.now()
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                select(Auction, func.max(Bid.amount).label("best"))
                .join(Bid, Bid.auction_id == Auction.id)
                .where(Bid.user_id == identity.user_id)
                .group_by(Auction.id)
                .order_by(Auction.end_time.desc(), Auction.id.desc())
            )
            rows = result.all()
        return [
            BidHistoryEntry(
                auction_id=auction.id,
                title=auction.title,
                brand=auction.brand,
                model=auction.model,
                year=auction.year,
                bid_amount=as_decimal(best),
                start_time=auction.start_time,
                end_time=auction.end_time,
                status=effective_status(auction.status, auction.end_time, now),
            )
            for auction, best in rows
        ]
