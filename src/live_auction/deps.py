"""FastAPI dependency injection: app.state.container holds singletons; Depends() resolves them.

The container is built by create_app() (main.py); these getters are used by Depends().
"""
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from live_auction.container import Container
from live_auction.core.errors import UnauthenticatedError
from live_auction.core.security import Identity
from live_auction.services import (AuctionService, AuctionSweeper,
                                   BidAcceptor, NotificationService,
                                   UserService)

_bearer = HTTPBearer(auto_error=False)


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_user_service(request: Request) -> UserService:
    return get_container(request).user_service()


def get_auction_service(request: Request) -> AuctionService:
    return get_container(request).auction_service()


def get_notification_service(request: Request) -> NotificationService:
    return get_container(request).notification_service()


def get_bid_acceptor(request: Request) -> BidAcceptor:
    return get_container(request).bid_acceptor()


def get_sweeper(request: Request) -> AuctionSweeper:
    return get_container(request).sweeper()


def optional_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> Identity | None:
    """Identity from the Bearer header, or None when no header was sent.

    A header that is present but invalid or expired still fails with 401.
    """
    if credentials is None:
        return None
    return get_user_service(request).authenticate(credentials.credentials)


def require_identity(identity: Identity | None = Depends(optional_identity)) -> Identity:
    if identity is None:
        raise UnauthenticatedError("Token required")
    return identity


# Type aliases for route injection
Users = Annotated[UserService, Depends(get_user_service)]
Auctions = Annotated[AuctionService, Depends(get_auction_service)]
Notifications = Annotated[NotificationService, Depends(get_notification_service)]
Acceptor = Annotated[BidAcceptor, Depends(get_bid_acceptor)]
Sweeper = Annotated[AuctionSweeper, Depends(get_sweeper)]
CurrentUser = Annotated[Identity, Depends(require_identity)]
