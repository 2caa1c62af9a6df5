"""Bid acceptance: validate, record atomically, announce the new highest bid."""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Numeric, func, literal, select
from sqlalchemy.exc import SQLAlchemyError

from live_auction.clock import Clock
from live_auction.core.errors import (BidRejectedError, RejectReason,
                                      TransientError)
from live_auction.core.security import Identity
from live_auction.db.cas import cas_insert
from live_auction.db.models import Auction, AuctionStatus, Bid
from live_auction.db.sessions import SessionFactory, session_scope
from live_auction.schemas import LiveEvent, UpdateHighest
from live_auction.services.live import ConnectionRegistry
from live_auction.services.queries import leading_bid, load_snapshot
from live_auction.services.validator import BidDecision, validate_bid

logger = logging.getLogger(__name__)

_MONEY = Numeric(12, 2)


@dataclass(frozen=True)
class AcceptedBid:
    """Result of a successful accept()."""

    bid_id: int
    auction_id: int
    user_id: int
    amount: Decimal
    bid_time: datetime
    highest_amount: Decimal
    highest_bidder: str


def acceptance_predicate(auction_id: int, amount: Decimal, now: datetime) -> list:
    """The validation rule restated as SQL, evaluated by the store at insert time."""
    current_max = (
        select(func.max(Bid.amount))
        .where(Bid.auction_id == auction_id)
        .correlate(None)
        .scalar_subquery()
    )
    bid = literal(amount, _MONEY)
    return [
        Auction.id == auction_id,
        Auction.status == AuctionStatus.ACTIVE.value,
        Auction.end_time > now,
        bid > Auction.base_price,
        bid > func.coalesce(current_max, 0),
    ]


class BidAcceptor:
    """Records bids. The only code path that writes to the bid table."""

    def __init__(
        self,
        session_factory: SessionFactory,
        clock: Clock,
        registry: ConnectionRegistry,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self._registry = registry

    async def accept(
        self,
        auction_id: int,
        bidder: Identity,
        amount: Any,
        *,
        client_time: datetime | None = None,
    ) -> AcceptedBid:
        """Validate and record a bid, then broadcast the new highest bid.

        Raises:
            BidRejectedError: the bid failed validation (nothing is written).
            TransientError: the store failed.
        """
        now = self._clock.now()
        if client_time is not None:
            logger.debug(
                "Bid on auction %s from %s: client clock skew %.3fs",
                auction_id,
                bidder.username,
                (client_time - now).total_seconds(),
            )
        try:
            async with session_scope(self._session_factory) as session:
                snapshot = await load_snapshot(session, auction_id, lock=True)
                decision = validate_bid(snapshot, amount, now)
                if not decision.accepted:
                    raise decision.to_error(auction_id)

                bid_id = await cas_insert(
                    session,
                    Bid,
                    {
                        "auction_id": auction_id,
                        "user_id": bidder.user_id,
                        "amount": decision.amount,
                        "bid_time": now,
                    },
                    acceptance_predicate(auction_id, decision.amount, now),
                )
                if bid_id is None:
                    # Another writer got in between the read and the insert.
                    fresh = await load_snapshot(session, auction_id)
                    retry = validate_bid(fresh, decision.amount, now)
                    if retry.accepted:
                        retry = BidDecision.reject(RejectReason.BID_TOO_LOW, retry.threshold)
                    raise retry.to_error(auction_id)

                leader = await leading_bid(session, auction_id)
        except (BidRejectedError, TransientError):
            raise
        except SQLAlchemyError as exc:
            logger.exception("Store failure while recording bid on auction %s", auction_id)
            raise TransientError("Could not record the bid, please retry") from exc

        highest = leader.amount if leader is not None else decision.amount
        highest_bidder = leader.username if leader is not None else bidder.username
        logger.info(
            "Bid %s accepted: %s -> auction %s (%s)",
            bid_id,
            bidder.username,
            auction_id,
            decision.amount,
        )
        await self._registry.broadcast(
            LiveEvent.UPDATE_HIGHEST.value,
            UpdateHighest(
                auction_id=auction_id,
                highest_amount=highest,
                highest_bidder=highest_bidder,
            ).to_wire(),
        )
        return AcceptedBid(
            bid_id=bid_id,
            auction_id=auction_id,
            user_id=bidder.user_id,
            amount=decision.amount,
            bid_time=now,
            highest_amount=highest,
            highest_bidder=highest_bidder,
        )
