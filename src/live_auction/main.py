"""Main module for the live auction service."""
import logging
import subprocess
import sys
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from live_auction import __version__
from live_auction.config import Settings
from live_auction.container import Container
from live_auction.core.errors import AuctionError
from live_auction.db.sessions import init_db
from live_auction.routers import (auctions_router, bids_router, live_router,
                                  notifications_router, users_router)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    """Create tables and start the auction sweeper; stop it and release the pool on shutdown."""
    container: Container = fastapi_app.state.container
    settings = container.settings()

    await init_db(container.engine())

    sweeper = container.sweeper()
    if settings.SWEEP_ENABLED:
        sweeper.start()

    yield

    try:
        await sweeper.stop()
    finally:
        await container.engine().dispose()


def _register_error_handlers(fastapi_app: FastAPI) -> None:
    async def handle_error(request: Request, exc: Exception) -> JSONResponse:
        mapper = request.app.state.container.error_mapper()
        status_code, body = mapper.to_http(exc)
        if status_code >= 500:
            logger.error("%s %s failed: %r", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content=body, headers=mapper.headers_for(exc))

    fastapi_app.add_exception_handler(AuctionError, handle_error)
    fastapi_app.add_exception_handler(SQLAlchemyError, handle_error)


def create_app(container: Container | None = None) -> FastAPI:
    """Build the FastAPI app around a DI container (a fresh one if not given)."""
    container = container or Container()
    settings: Settings = container.settings()

    fastapi_app = FastAPI(
        title="Live Auction",
        description="Real-time auction bidding: bids, closing, and live notifications",
        version=__version__,
        lifespan=lifespan,
    )
    fastapi_app.state.container = container

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_error_handlers(fastapi_app)

    # Include routers
    fastapi_app.include_router(users_router)
    fastapi_app.include_router(auctions_router)
    fastapi_app.include_router(bids_router)
    fastapi_app.include_router(notifications_router)
    fastapi_app.include_router(live_router)

    @fastapi_app.get("/health")
    def health():
        """Return health check status."""
        return {"status": "ok"}

    @fastapi_app.get("/")
    async def status():
        """Check the database and report the server clock (UTC)."""
        async with container.engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {
            "status": "ok",
            "database": "ok",
            "server_time": container.clock().now().isoformat(),
        }

    return fastapi_app


app = create_app()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def run():
    """Run the server (uvicorn). Use for `poetry run start`."""
    settings = app.state.container.settings()
    _configure_logging(settings.LOG_LEVEL)
    uvicorn.run("live_auction.main:app", host=settings.API_HOST, port=settings.API_PORT)


def run_dev():
    """Run the development server with Postgres running via Docker."""
    settings = app.state.container.settings()
    _configure_logging(settings.LOG_LEVEL)
    project_root = Path(__file__).resolve().parent.parent.parent
    try:
        subprocess.run(
            ["docker", "compose", "up", "-d", "postgres"],
            cwd=project_root,
            capture_output=True,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError as e:
        print("Failed to start Postgres:", e.stderr or e.stdout, file=sys.stderr)
        sys.exit(1)
    uvicorn.run("live_auction.main:app", host="0.0.0.0", port=settings.API_PORT, reload=True)
