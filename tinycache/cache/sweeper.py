"""
Expiry Sweeper Module

Drives CacheStore.sweep() on a fixed interval.
"""

import asyncio
import logging

from .store import CacheStore

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """
    Periodic expiry pass over a CacheStore.

    tick() performs one sweep with the configured interval as the elapsed
    time. run() is the timer: it ticks forever on the running event loop
    and stops only when its task is cancelled.

    Usage:
        sweeper = ExpirySweeper(store, interval=1)
        task = asyncio.create_task(sweeper.run())
    """

    def __init__(self, store: CacheStore, interval: int):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.store = store
        self.interval = interval

    def tick(self) -> int:
        """Run one sweep pass; returns the number of evicted entries."""
        removed = self.store.sweep(self.interval)
        if removed:
            logger.debug(f"Expired {removed} keys")
        return removed

    async def run(self) -> None:
        logger.debug(f"Sweeper running every {self.interval}s")
        while True:
            await asyncio.sleep(self.interval)
            self.tick()
