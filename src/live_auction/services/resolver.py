"""Auction closing: find auctions past their end time, close each exactly once,
pick the winner and tell everybody.

Per auction the states are active -> grace-pending -> ended. Grace-pending is
not stored; it just means "skip this sweep, look again next time". An auction
settles at max(end_time, latest bid_time) and is closed only once the grace
window after that instant has passed, so a bid recorded right at the deadline
is never raced by the sweep.

The status flip (UPDATE ... WHERE status = 'active') is the single gate between
overlapping sweeps: whoever flips the row owns the winner computation and the
notifications; everybody else sees zero rows and moves on.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from live_auction.clock import Clock
from live_auction.db.cas import cas_update
from live_auction.db.models import (Auction, AuctionStatus, Notification,
                                    NotificationCategory)
from live_auction.db.sessions import SessionFactory, session_scope
from live_auction.schemas import AuctionEnded, LiveEvent, NotificationEvent
from live_auction.services.live import ConnectionRegistry
from live_auction.services.notifications import create_once
from live_auction.services.queries import (bidder_ids, latest_bid_time,
                                           leading_bid, load_auction)

logger = logging.getLogger(__name__)


class ResolveOutcome(str, Enum):
    CLOSED = "closed"
    DEFERRED = "deferred"
    ALREADY_CLOSED = "already_closed"


@dataclass
class SweepReport:
    """What one sweep did, by auction id."""

    closed: list[int] = field(default_factory=list)
    deferred: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class ClosedAuction:
    auction_id: int
    winner: str | None
    amount: Decimal | None
    notifications: tuple[Notification, ...] = ()


def _money(amount: Decimal) -> str:
    return f"${amount:,.2f}"


class AuctionResolver:
    """Closes due auctions. The only code path that ends an auction."""

    def __init__(
        self,
        session_factory: SessionFactory,
        clock: Clock,
        registry: ConnectionRegistry,
        grace_seconds: float = 3.0,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self._registry = registry
        self._grace = timedelta(seconds=grace_seconds)

    @property
    def grace(self) -> timedelta:
        return self._grace

    async def due_auction_ids(self, now: datetime) -> list[int]:
        """Active auctions whose end time has passed, oldest deadline first."""
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                select(Auction.id)
                .where(
                    Auction.status == AuctionStatus.ACTIVE.value,
                    Auction.end_time <= now,
                )
                .order_by(Auction.end_time.asc(), Auction.id.asc())
            )
            return list(result.scalars().all())

    async def sweep(self) -> SweepReport:
        """Run one pass over every due auction.

        A failure on one auction is logged and does not stop the others; that
        auction stays active and is picked up again by the next sweep.
        """
        report = SweepReport()
        due = await self.due_auction_ids(self._clock.now())
        for auction_id in due:
            try:
                outcome = await self.resolve(auction_id)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Failed to close auction %s; will retry next sweep", auction_id)
                report.failed.append(auction_id)
                continue
            if outcome is ResolveOutcome.CLOSED:
                report.closed.append(auction_id)
            elif outcome is ResolveOutcome.DEFERRED:
                report.deferred.append(auction_id)
        return report

    async def resolve(self, auction_id: int) -> ResolveOutcome:
        """Close one auction if it is due and its grace window has passed."""
        now = self._clock.now()
        async with session_scope(self._session_factory) as session:
            auction = await load_auction(session, auction_id)
            if auction is None or auction.status != AuctionStatus.ACTIVE.value:
                return ResolveOutcome.ALREADY_CLOSED
            if now < auction.end_time:
                return ResolveOutcome.DEFERRED

            last_bid_at = await latest_bid_time(session, auction_id)
            settle_at = auction.end_time
            if last_bid_at is not None and last_bid_at > settle_at:
                settle_at = last_bid_at
            if now < settle_at + self._grace:
                logger.debug(
                    "Auction %s in grace window until %s", auction_id, settle_at + self._grace
                )
                return ResolveOutcome.DEFERRED

            flipped = await cas_update(
                session,
                Auction,
                [
                    Auction.id == auction_id,
                    Auction.status == AuctionStatus.ACTIVE.value,
                    Auction.end_time <= now,
                ],
                {"status": AuctionStatus.ENDED.value},
            )
            if flipped == 0:
                logger.debug("Auction %s already closed by another sweep", auction_id)
                return ResolveOutcome.ALREADY_CLOSED

            closed = await self._settle(session, auction, now)

        logger.info(
            "Auction %s closed. Winner: %s (%s)",
            auction_id,
            closed.winner or "none",
            closed.amount if closed.amount is not None else "-",
        )
        await self._announce(closed)
        return ResolveOutcome.CLOSED

    async def _settle(
        self, session: AsyncSession, auction: Auction, now: datetime
    ) -> ClosedAuction:
        """Compute the winner and write the result notifications (same transaction as the flip)."""
        auction_id = auction.id
        label = f'#{auction_id} "{auction.title}"'
        winner = await leading_bid(session, auction_id)
        created: list[Notification] = []

        if winner is None:
            notification = await create_once(
                session,
                auction_id=auction_id,
                user_id=auction.owner_id,
                category=NotificationCategory.NO_BIDS,
                message=f"Nobody bid on auction {label}.",
                now=now,
            )
            if notification is not None:
                created.append(notification)
            return ClosedAuction(auction_id, None, None, tuple(created))

        notification = await create_once(
            session,
            auction_id=auction_id,
            user_id=winner.user_id,
            category=NotificationCategory.WINNER,
            message=(
                f"Congratulations {winner.username}! You won auction {label} "
                f"with a bid of {_money(winner.amount)}."
            ),
            now=now,
        )
        if notification is not None:
            created.append(notification)

        for user_id in await bidder_ids(session, auction_id):
            if user_id == winner.user_id:
                continue
            notification = await create_once(
                session,
                auction_id=auction_id,
                user_id=user_id,
                category=NotificationCategory.LOSER,
                message=(
                    f"Auction {label} has ended. The winning bid was "
                    f"{_money(winner.amount)}; better luck next time."
                ),
                now=now,
            )
            if notification is not None:
                created.append(notification)
        return ClosedAuction(auction_id, winner.username, winner.amount, tuple(created))

    async def _announce(self, closed: ClosedAuction) -> None:
        """Push the result after commit: public auctionEnded plus each user's notification."""
        await self._registry.broadcast(
            LiveEvent.AUCTION_ENDED.value,
            AuctionEnded(
                auction_id=closed.auction_id, winner=closed.winner, amount=closed.amount
            ).to_wire(),
        )
        for notification in closed.notifications:
            if notification.user_id is None:
                continue
            await self._registry.send_to_user(
                notification.user_id,
                LiveEvent.NOTIFICATION.value,
                NotificationEvent(
                    id=notification.id,
                    auction_id=notification.auction_id,
                    category=notification.category,
                    message=notification.message,
                    created_at=notification.created_at,
                ).to_wire(),
            )
