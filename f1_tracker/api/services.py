"""Shared singletons. TrackerService runs the live tracker behind the API."""

from __future__ import annotations

import asyncio

from loguru import logger

from f1_tracker.openf1_client import OpenF1Client
from f1_tracker.sinks import LatestStandingsSink
from f1_tracker.tracker import LiveTracker, create_tracker


class TrackerService:
    """Singleton service that owns the background tracker.

    The tracker paints into a ``LatestStandingsSink``; routes read the last
    paint from there and never touch the race state directly.
    """

    _instance: "TrackerService | None" = None

    def __init__(self) -> None:
        self.sink = LatestStandingsSink()
        self._client: OpenF1Client | None = None
        self._tracker: LiveTracker | None = None
        self._task: asyncio.Task | None = None

    @classmethod
    def get_instance(cls) -> "TrackerService":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    async def start(self, session_key: int | str = "latest") -> None:
        """Discover the session and start polling in the background.

        Raises:
            SessionDiscoveryError: If the session cannot be resolved.
        """
        logger.info("Starting tracker for session '{}'", session_key)
        self._client = OpenF1Client()
        try:
            self._tracker = await create_tracker(self._client, self.sink, session_key=session_key)
        except Exception:
            await self._client.aclose()
            self._client = None
            raise
        self._task = asyncio.create_task(self._tracker.run())

    async def stop(self) -> None:
        """Stop polling and release the HTTP client."""
        if self._tracker is not None:
            self._tracker.stop()
        if self._task is not None:
            try:
                await asyncio.wait_for(self._task, timeout=10.0)
            except asyncio.TimeoutError:
                logger.warning("Tracker did not stop within 10s, cancelling")
                self._task.cancel()
            except asyncio.CancelledError:
                pass
        if self._client is not None:
            await self._client.aclose()
        self._task = None
        self._client = None

    @property
    def tracker(self) -> LiveTracker:
        """The running tracker, or raise if startup has not happened."""
        if self._tracker is None:
            raise RuntimeError("Tracker not started.")
        return self._tracker

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()
