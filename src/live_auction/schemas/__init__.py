"""Pydantic schemas for API bodies and live-channel payloads. Not persisted to DB."""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any

from pydantic import (BaseModel, ConfigDict, Field, PlainSerializer,
                      field_validator, model_validator)
from pydantic.alias_generators import to_camel

from live_auction.clock import to_utc

# Decimal in Python, plain JSON number on the wire.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


# ---- Users ----
class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=64)
    password: str = Field(min_length=6, max_length=128)


class LoginRequest(BaseModel):
    username: str
    password: str


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


# ---- Auctions ----
class AuctionCreate(BaseModel):
    """New auction. Times without an offset are taken as UTC."""

    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    brand: str | None = Field(default=None, max_length=100)
    model: str | None = Field(default=None, max_length=100)
    year: int | None = Field(default=None, ge=1886, le=2100)
    base_price: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    start_time: datetime | None = None
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, value: datetime | None) -> datetime | None:
        return to_utc(value) if value is not None else None

    @model_validator(mode="after")
    def check_window(self) -> "AuctionCreate":
        if self.start_time is not None and self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class AuctionSummary(BaseModel):
    id: int
    title: str
    brand: str | None = None
    model: str | None = None
    year: int | None = None
    base_price: Money
    start_time: datetime
    end_time: datetime
    status: str
    owner_username: str
    highest_bid: Money | None = None


class BidOut(BaseModel):
    amount: Money
    bid_time: datetime
    username: str


class AuctionDetail(AuctionSummary):
    description: str | None = None
    bids: list[BidOut] = []


class SweepResult(BaseModel):
    status: str
    closed: list[int] = []
    deferred: list[int] = []
    failed: list[int] = []


# ---- Bids ----
class BidRequest(BaseModel):
    """The amount is left raw so that bad values are judged by the validator."""

    auction_id: int
    amount: Any = None
    client_time: datetime | None = None

    @field_validator("client_time")
    @classmethod
    def normalize_client_time(cls, value: datetime | None) -> datetime | None:
        return to_utc(value) if value is not None else None


class BidAcceptedOut(BaseModel):
    bid_id: int
    auction_id: int
    amount: Money
    bid_time: datetime
    highest_amount: Money
    highest_bidder: str


class BidHistoryEntry(BaseModel):
    """A user's best bid on one auction."""

    auction_id: int
    title: str
    brand: str | None = None
    model: str | None = None
    year: int | None = None
    bid_amount: Money
    start_time: datetime
    end_time: datetime
    status: str


# ---- Notifications ----
class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    auction_id: int
    message: str
    category: str
    is_read: bool
    created_at: datetime


class AffectedRows(BaseModel):
    success: bool = True
    affected: int


# ---- Live channel ----
class LiveEvent(str, Enum):
    """Event names on the live channel."""

    PLACE_BID = "placeBid"
    UPDATE_HIGHEST = "updateHighest"
    BID_ACCEPTED = "bidAccepted"
    BID_REJECTED = "bidRejected"
    AUCTION_ENDED = "auctionEnded"
    NOTIFICATION = "notification"
    CONNECT_ERROR = "connectError"
    ERROR = "error"


class LivePayload(BaseModel):
    """Live payloads use camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class PlaceBid(LivePayload):
    """Inbound bid. The amount is left raw so that bad values are judged by the validator."""

    token: str | None = None
    auction_id: int
    amount: Any = None
    client_time: datetime | None = None

    @field_validator("client_time")
    @classmethod
    def normalize_client_time(cls, value: datetime | None) -> datetime | None:
        return to_utc(value) if value is not None else None


class UpdateHighest(LivePayload):
    auction_id: int
    highest_amount: Money
    highest_bidder: str


class BidAcceptedEvent(LivePayload):
    bid_id: int
    auction_id: int
    highest_amount: Money


class BidRejectedEvent(LivePayload):
    reason: str
    message: str
    threshold: Money | None = None
    auction_id: int | None = None


class AuctionEnded(LivePayload):
    auction_id: int
    winner: str | None = None
    amount: Money | None = None


class NotificationEvent(LivePayload):
    id: int
    auction_id: int
    category: str
    message: str
    created_at: datetime


class ConnectError(LivePayload):
    reason: str
    message: str


__all__ = [
    "AffectedRows",
    "AuctionCreate",
    "AuctionDetail",
    "AuctionEnded",
    "AuctionSummary",
    "BidAcceptedEvent",
    "BidAcceptedOut",
    "BidHistoryEntry",
    "BidOut",
    "BidRejectedEvent",
    "BidRequest",
    "ConnectError",
    "LiveEvent",
    "LivePayload",
    "LoginRequest",
    "Money",
    "NotificationEvent",
    "NotificationOut",
    "PlaceBid",
    "SweepResult",
    "TokenResponse",
    "UpdateHighest",
    "UserCreate",
    "UserOut",
]
