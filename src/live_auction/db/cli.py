"""CLI entry point for preparing the database."""
import asyncio
import logging

from live_auction.config import Settings
from live_auction.db.sessions import create_database_engine, init_db

logger = logging.getLogger(__name__)


async def _create_tables(url: str) -> None:
    engine = create_database_engine(url)
    try:
        await init_db(engine)
    finally:
        await engine.dispose()


def init() -> None:
    """Create any missing tables in DATABASE_URL. Existing tables are left alone."""
    settings = Settings()
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    asyncio.run(_create_tables(settings.DATABASE_URL))
    logger.info("Database tables ready")
