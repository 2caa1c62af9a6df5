"""Cross-cutting pieces: errors, error mapping, credentials."""
from live_auction.core.error_mapper import ErrorMapper
from live_auction.core.errors import (AuctionError, BidRejectedError,
                                      ConflictError, ForbiddenError,
                                      InvalidRequestError, NotFoundError,
                                      RejectReason, TransientError,
                                      UnauthenticatedError)
from live_auction.core.security import Identity, TokenCodec

__all__ = [
    "AuctionError",
    "BidRejectedError",
    "ConflictError",
    "ErrorMapper",
    "ForbiddenError",
    "Identity",
    "InvalidRequestError",
    "NotFoundError",
    "RejectReason",
    "TokenCodec",
    "TransientError",
    "UnauthenticatedError",
]
