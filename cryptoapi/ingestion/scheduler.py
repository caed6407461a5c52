from __future__ import annotations

import asyncio
import logging
from typing import Optional

from cryptoapi.ingestion.pipeline import PriceAggregator

logger = logging.getLogger(__name__)


class RefreshLoop:
    """Runs the aggregator, then waits the full interval, until stopped.

    Cycles never overlap. ``stop()`` wakes the wait immediately; a cycle that is
    mid-flight is cancelled and its in-memory merge is never written.
    """

    def __init__(self, aggregator: PriceAggregator, interval_seconds: float) -> None:
        self.aggregator = aggregator
        self.interval_seconds = interval_seconds
        self._stopped = asyncio.Event()
        self._task: Optional[asyncio.Task[None]] = None
        self._refreshing = False
        self.cycles = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self) -> None:
        logger.info("Starting refresh loop with interval %s seconds", self.interval_seconds)
        while not self._stopped.is_set():
            self._refreshing = True
            try:
                await self.aggregator.refresh_once()
                summary = self.aggregator.last_summary
                if summary is not None:
                    logger.info("Refresh completed: %s", summary.model_dump())
            except Exception:  # noqa: BLE001
                logger.exception("Refresh cycle failed")
            finally:
                self._refreshing = False
            self.cycles += 1

            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info("Refresh loop stopped after %s cycles", self.cycles)

    def start(self) -> asyncio.Task[None]:
        """Schedule the loop on the running event loop."""
        if self._task is not None and not self._task.done():
            return self._task
        self._stopped.clear()
        self._task = asyncio.create_task(self.run(), name="price-refresh")
        return self._task

    async def stop(self) -> None:
        self._stopped.set()
        task, self._task = self._task, None
        if task is None:
            return
        if self._refreshing and not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
