"""Mapping of domain and store exceptions to HTTP responses."""
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import DBAPIError, OperationalError

from live_auction.core.errors import (AuctionError, BidRejectedError,
                                      ConflictError, ForbiddenError,
                                      InvalidRequestError, NotFoundError,
                                      RejectReason, TransientError,
                                      UnauthenticatedError)

_STATUS_BY_TYPE: tuple[tuple[type[AuctionError], int], ...] = (
    (NotFoundError, 404),
    (ConflictError, 409),
    (InvalidRequestError, 422),
    (UnauthenticatedError, 401),
    (ForbiddenError, 403),
    (TransientError, 503),
)

_STATUS_BY_REASON = {
    RejectReason.AUCTION_NOT_FOUND: 404,
    RejectReason.AUCTION_CLOSED: 409,
    RejectReason.BID_TOO_LOW: 409,
    RejectReason.INVALID_AMOUNT: 422,
}


@dataclass(frozen=True)
class ErrorMapper:
    """Maps service exceptions to (status_code, body) for HTTP responses."""

    internal_detail: str = "Internal server error"
    transient_detail: str = "Service temporarily unavailable"

    def to_http(self, exc: Exception) -> tuple[int, dict[str, Any]]:
        """Map an exception to (status_code, JSON body).

        Rejected bids keep their reason and threshold so clients can show
        what has to be beaten.
        """
        if isinstance(exc, BidRejectedError):
            body: dict[str, Any] = {"detail": exc.message, "reason": exc.reason.value}
            if exc.threshold is not None:
                body["threshold"] = float(exc.threshold)
            return (_STATUS_BY_REASON[exc.reason], body)
        for exc_type, status in _STATUS_BY_TYPE:
            if isinstance(exc, exc_type):
                return (status, {"detail": str(exc) or self.transient_detail})
        if isinstance(exc, (OperationalError, DBAPIError)):
            return (503, {"detail": self.transient_detail})
        return (500, {"detail": self.internal_detail})

    def headers_for(self, exc: Exception) -> dict[str, str] | None:
        if isinstance(exc, UnauthenticatedError):
            return {"WWW-Authenticate": "Bearer"}
        return None
