"""Database models for the auction service.

Auctions, bids and notifications are mutated only by the bidding and closing
services; everything else reads them.
"""
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import Column, Index, UniqueConstraint
from sqlmodel import Field, SQLModel

from live_auction.db.types import UTCDateTime


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuctionStatus(str, Enum):
    """Auction lifecycle. Moves active -> ended once and never back."""

    ACTIVE = "active"
    ENDED = "ended"


class NotificationCategory(str, Enum):
    """Kind of auction-result message."""

    WINNER = "winner"
    LOSER = "loser"
    NO_BIDS = "no_bids"


class User(SQLModel, table=True):
    """Registered bidder / seller."""

    id: int | None = Field(default=None, primary_key=True)
    username: str = Field(unique=True, index=True, max_length=64)
    password_hash: str
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime(), nullable=False)
    )


class Auction(SQLModel, table=True):
    """An item on sale between start_time and end_time."""

    id: int | None = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="user.id", index=True)
    title: str = Field(max_length=200)
    description: str | None = None
    brand: str | None = Field(default=None, max_length=100)
    model: str | None = Field(default=None, max_length=100)
    year: int | None = None
    base_price: Decimal = Field(max_digits=12, decimal_places=2)
    start_time: datetime = Field(sa_column=Column(UTCDateTime(), nullable=False))
    end_time: datetime = Field(sa_column=Column(UTCDateTime(), nullable=False, index=True))
    status: str = Field(default=AuctionStatus.ACTIVE.value, max_length=16, index=True)
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime(), nullable=False)
    )


class Bid(SQLModel, table=True):
    """An accepted bid. Rows are append-only."""

    __table_args__ = (Index("ix_bid_auction_amount", "auction_id", "amount"),)

    id: int | None = Field(default=None, primary_key=True)
    auction_id: int = Field(foreign_key="auction.id", index=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    bid_time: datetime = Field(sa_column=Column(UTCDateTime(), nullable=False, index=True))


class Notification(SQLModel, table=True):
    """Persisted message for a user; at most one per (auction, user, category)."""

    __table_args__ = (
        UniqueConstraint(
            "auction_id", "user_id", "category", name="uq_notification_auction_user_category"
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    user_id: int | None = Field(default=None, foreign_key="user.id", index=True)
    auction_id: int = Field(foreign_key="auction.id", index=True)
    message: str
    category: str = Field(max_length=16)
    is_read: bool = False
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime(), nullable=False, index=True)
    )
