"""Fixed-interval polling with an explicit stop token.

Cycles never overlap: the interval wait starts only after the previous cycle
has returned.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from loguru import logger

# A cycle returns True to keep polling, False to stop after itself
Cycle = Callable[[], Awaitable[bool]]


class PollingScheduler:
    def __init__(self, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"Polling interval must be positive, got {interval_seconds}")
        self.interval_seconds = interval_seconds
        self._stop_event = asyncio.Event()
        self.cycles_run = 0

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Cancel further cycles; a cycle already running completes."""
        self._stop_event.set()

    async def run(self, cycle: Cycle) -> None:
        """Run ``cycle`` now and then every interval until told to stop."""
        while not self._stop_event.is_set():
            keep_going = await cycle()
            self.cycles_run += 1
            if not keep_going:
                logger.info("Polling finished after {} cycles", self.cycles_run)
                self._stop_event.set()
                break
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue
        logger.debug("Scheduler stopped")
