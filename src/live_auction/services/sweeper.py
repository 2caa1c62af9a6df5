"""Recurring sweep task that drives the auction resolver."""
import asyncio
import logging

from live_auction.services.resolver import AuctionResolver, SweepReport

logger = logging.getLogger(__name__)


class AuctionSweeper:
    """Runs AuctionResolver.sweep() every `interval_seconds` until stopped.

    Only one sweep runs at a time: a run requested while another is in flight
    (a manual trigger racing the timer) is skipped rather than queued.
    """

    def __init__(self, resolver: AuctionResolver, interval_seconds: float = 2.5) -> None:
        self._resolver = resolver
        self._interval = interval_seconds
        self._lock = asyncio.Lock()
        self._task: asyncio.Task | None = None
        self._stop_event: asyncio.Event | None = None

    @property
    def in_flight(self) -> bool:
        return self._lock.locked()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> SweepReport | None:
        """Sweep now. Returns None if a sweep was already in flight."""
        if self._lock.locked():
            logger.debug("Sweep already in flight, skipping")
            return None
        async with self._lock:
            report = await self._resolver.sweep()
        if report.closed or report.failed:
            logger.info(
                "Sweep done: %d closed, %d deferred, %d failed",
                len(report.closed),
                len(report.deferred),
                len(report.failed),
            )
        return report

    async def _loop(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await self.run_once()
            except Exception:  # pylint: disable=broad-except
                # e.g. the store is down; the next tick tries again.
                logger.exception("Auction sweep failed")
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass

    def start(self) -> None:
        """Start the background task. Must be called from a running event loop."""
        if self.running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop(self._stop_event), name="auction-sweeper")
        logger.info("Auction sweeper started (every %.1fs)", self._interval)

    async def stop(self) -> None:
        """Signal the loop to finish and wait for the current sweep to complete."""
        if self._task is None:
            return
        if self._stop_event is not None:
            self._stop_event.set()
        try:
            await self._task
        finally:
            self._task = None
            self._stop_event = None
        logger.info("Auction sweeper stopped")
