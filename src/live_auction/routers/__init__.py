"""API routers for the auction service.

Includes routes for:
- /users - Registration, login and the current user
- /auctions - Listing, detail, creation and the manual sweep trigger
- /bids - Placing bids over HTTP and the caller's bid history
- /notifications - The caller's persisted notifications
- /live - WebSocket channel for bids and real-time auction events
"""
from live_auction.routers.auctions import router as auctions_router
from live_auction.routers.bids import router as bids_router
from live_auction.routers.live import router as live_router
from live_auction.routers.notifications import router as notifications_router
from live_auction.routers.users import router as users_router

__all__ = [
    "users_router",
    "auctions_router",
    "bids_router",
    "notifications_router",
    "live_router",
]
