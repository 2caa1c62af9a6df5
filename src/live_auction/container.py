"""DI container. The app lifespan and the request dependencies (deps.py) resolve everything from here."""
from dependency_injector import containers, providers

from live_auction.clock import SystemClock
from live_auction.config import Settings
from live_auction.core.error_mapper import ErrorMapper
from live_auction.core.security import TokenCodec
from live_auction.db.sessions import create_database_engine, make_session_factory
from live_auction.services import (AuctionResolver, AuctionService,
                                   AuctionSweeper, BidAcceptor,
                                   ConnectionRegistry, NotificationService,
                                   UserService)


class Container(containers.DeclarativeContainer):
    """Singletons for one running app. Tests override `settings` and `clock`."""

    settings = providers.Singleton(Settings)
    clock = providers.Singleton(SystemClock)

    engine = providers.Singleton(
        create_database_engine,
        settings.provided.DATABASE_URL,
        echo=settings.provided.SQL_ECHO,
    )
    session_factory = providers.Singleton(make_session_factory, engine)

    registry = providers.Singleton(ConnectionRegistry)
    error_mapper = providers.Singleton(ErrorMapper)
    token_codec = providers.Singleton(
        TokenCodec,
        secret=settings.provided.JWT_SECRET,
        algorithm=settings.provided.JWT_ALGORITHM,
        expires_minutes=settings.provided.JWT_EXPIRES_MINUTES,
    )

    user_service = providers.Singleton(
        UserService,
        session_factory,
        token_codec,
        clock,
        bcrypt_rounds=settings.provided.BCRYPT_ROUNDS,
    )
    auction_service = providers.Singleton(AuctionService, session_factory, clock)
    notification_service = providers.Singleton(
        NotificationService,
        session_factory,
        limit=settings.provided.NOTIFICATIONS_LIMIT,
    )
    bid_acceptor = providers.Singleton(BidAcceptor, session_factory, clock, registry)
    resolver = providers.Singleton(
        AuctionResolver,
        session_factory,
        clock,
        registry,
        grace_seconds=settings.provided.BID_GRACE_SECONDS,
    )
    sweeper = providers.Singleton(
        AuctionSweeper,
        resolver,
        interval_seconds=settings.provided.SWEEP_INTERVAL_SECONDS,
    )
