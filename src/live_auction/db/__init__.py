"""Database package: models, session management and conditional writes."""
from live_auction.db.models import (Auction, AuctionStatus, Bid, Notification,
                                    NotificationCategory, User)

__all__ = [
    "Auction",
    "AuctionStatus",
    "Bid",
    "Notification",
    "NotificationCategory",
    "User",
]
