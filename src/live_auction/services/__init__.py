"""Service layer: bid validation and acceptance, auction closing, live fan-out,
and the read/write flows around them.
"""
from live_auction.services.acceptor import AcceptedBid, BidAcceptor
from live_auction.services.auctions import AuctionService
from live_auction.services.live import ConnectionRegistry
from live_auction.services.notifications import NotificationService
from live_auction.services.resolver import AuctionResolver, SweepReport
from live_auction.services.sweeper import AuctionSweeper
from live_auction.services.users import UserService
from live_auction.services.validator import (AuctionSnapshot, BidDecision,
                                             validate_bid)

__all__ = [
    "AcceptedBid",
    "AuctionResolver",
    "AuctionService",
    "AuctionSnapshot",
    "AuctionSweeper",
    "BidAcceptor",
    "BidDecision",
    "ConnectionRegistry",
    "NotificationService",
    "SweepReport",
    "UserService",
    "validate_bid",
]
