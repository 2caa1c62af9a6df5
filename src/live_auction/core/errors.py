"""Domain exceptions. Routers never build HTTP errors themselves; see ErrorMapper."""
from decimal import Decimal
from enum import Enum


class RejectReason(str, Enum):
    """Why a proposed bid was refused."""

    AUCTION_NOT_FOUND = "AuctionNotFound"
    AUCTION_CLOSED = "AuctionClosed"
    INVALID_AMOUNT = "InvalidAmount"
    BID_TOO_LOW = "BidTooLow"


class AuctionError(Exception):
    """Base class for errors raised by the auction services."""


class NotFoundError(AuctionError):
    """Auction, notification or user does not exist."""


class ConflictError(AuctionError):
    """Request clashes with current state (e.g. username already taken)."""


class BidRejectedError(AuctionError):
    """A bid failed validation. Carries the reason and the threshold to beat."""

    def __init__(
        self,
        reason: RejectReason,
        message: str,
        threshold: Decimal | None = None,
        auction_id: int | None = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.message = message
        self.threshold = threshold
        self.auction_id = auction_id


class UnauthenticatedError(AuctionError):
    """Credential missing, malformed or expired."""


class ForbiddenError(AuctionError):
    """Authenticated, but not allowed to touch this resource."""


class TransientError(AuctionError):
    """Store or infrastructure failure; the request may be retried."""


class InvalidRequestError(AuctionError):
    """Well-formed request with values the service cannot accept."""
