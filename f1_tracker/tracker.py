"""Live tracker: polls OpenF1 and repaints the standings every cycle.

Usage as CLI:
    python -m f1_tracker.tracker                     # follow the latest session
    python -m f1_tracker.tracker --session-key 9523  # a specific session
    python -m f1_tracker.tracker --once              # one fetch-and-render, then exit

Each cycle: fetch snapshot -> merge into RaceState -> derive rows -> order ->
header summary -> paint. A session that is not live (or stops being live)
gets a single terminal cycle and no further polling.
"""

from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Protocol

from loguru import logger

from f1_tracker.models import SessionInfo, Snapshot
from f1_tracker.openf1_client import OpenF1Client, SessionDiscoveryError
from f1_tracker.ordering import sort_competitors
from f1_tracker.race_state import CompetitorStatus, RaceState
from f1_tracker.scheduler import PollingScheduler
from f1_tracker.session_config import load_session_config
from f1_tracker.sinks import ConsoleSink, RenderSink
from f1_tracker.standings import StandingRow, derive_standings
from f1_tracker.summary import HeaderSummary, SessionClock, SessionSummary, event_title
from f1_tracker.utils.config import settings


class SnapshotFetcher(Protocol):
    async def fetch_snapshot(self, session_key: int) -> Snapshot | None: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LiveTracker:
    """Owns the race state for one session and drives the polling cycles."""

    def __init__(
        self,
        session: SessionInfo,
        fetcher: SnapshotFetcher,
        sink: RenderSink,
        header: HeaderSummary,
        *,
        state: RaceState | None = None,
        poll_interval: float | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.session = session
        self.fetcher = fetcher
        self.sink = sink
        self.header = header
        if state is None:
            timeout = settings["timing"].get("retirement_timeout_seconds", 15)
            state = RaceState(retirement_timeout=timedelta(seconds=timeout))
        self.state = state
        self.scheduler = PollingScheduler(
            poll_interval or settings["polling"].get("interval_seconds", 2.0)
        )
        self._clock = clock
        self._last_rows: list[StandingRow] = []

    @property
    def is_live(self) -> bool:
        return self.header.clock.is_live

    async def run_cycle(self) -> SessionSummary:
        """One fetch -> merge -> derive -> order -> summarise -> paint pass."""
        snapshot = await self.fetcher.fetch_snapshot(self.session.session_key)
        now = self._clock()

        if snapshot is None:
            # Keep the last table on screen; only the header advances
            logger.warning("No snapshot for session {}; header-only cycle", self.session.session_key)
            summary = self.header.update([], [], now)
            self.sink.paint(self._last_rows, summary)
            return summary

        self.state.merge(snapshot, now)
        rows = sort_competitors(derive_standings(self.state))
        summary = self.header.update(rows, snapshot.track_status, now)
        self.sink.paint(rows, summary)

        self.state.record_presented_ranks(
            {row.driver_number: row.rank for row in rows if row.status is CompetitorStatus.ACTIVE}
        )
        self._last_rows = rows
        logger.debug(
            "Cycle {}: {} drivers, lap {}, {}",
            self.state.cycles_merged, len(rows), summary.laps_display, summary.time_remaining,
        )
        return summary

    async def _poll(self) -> bool:
        try:
            await self.run_cycle()
        except Exception as exc:
            logger.error("Cycle failed for session {}: {}", self.session.session_key, exc)
        return self.is_live

    async def run(self) -> None:
        """Poll until the session ends or ``stop()`` is called."""
        if not self.is_live:
            logger.info("Session {} is not live; fetching once", self.session.session_key)
            await self._poll()
            return
        logger.info(
            "Polling session {} every {:.1f}s",
            self.session.session_key, self.scheduler.interval_seconds,
        )
        await self.scheduler.run(self._poll)

    def stop(self) -> None:
        self.scheduler.stop()


async def create_tracker(
    client: OpenF1Client,
    sink: RenderSink,
    session_key: int | str = "latest",
    sessions_file: str | None = None,
    poll_interval: float | None = None,
) -> LiveTracker:
    """Discover the session, load its static config and build a tracker.

    Raises:
        SessionDiscoveryError: If the session cannot be resolved.
    """
    session = await client.fetch_session(session_key)
    meeting = await client.fetch_meeting(session.meeting_key) if session.meeting_key else None
    config = load_session_config(session.session_key, sessions_file)

    clock = SessionClock.from_session(session, _utcnow())
    header = HeaderSummary(clock, event_title(meeting, session), config.total_laps, config.flag)
    logger.info(
        "Tracking {} (session {}), live: {}",
        header.title, session.session_key, clock.is_live,
    )
    return LiveTracker(session, client, sink, header, poll_interval=poll_interval)


async def _run(args: Any) -> None:
    async with OpenF1Client() as client:
        tracker = await create_tracker(
            client,
            ConsoleSink(),
            session_key=args.session_key,
            sessions_file=args.sessions_file,
            poll_interval=args.interval,
        )
        if args.once:
            await tracker.run_cycle()
        else:
            await tracker.run()


def main() -> None:
    """CLI entry point for following a session in the terminal."""
    import argparse

    parser = argparse.ArgumentParser(
        description="F1 Live Tracker: live standings from the OpenF1 feeds",
    )
    parser.add_argument(
        "--session-key", type=str, default="latest",
        help="OpenF1 session key to follow (default: latest)"
    )
    parser.add_argument(
        "--interval", type=float, default=None,
        help="Polling interval in seconds (default from settings)"
    )
    parser.add_argument(
        "--once", action="store_true",
        help="Run a single fetch-and-render cycle and exit"
    )
    parser.add_argument(
        "--sessions-file", type=str, default=None,
        help="Override the static sessions YAML file"
    )
    args = parser.parse_args()

    import f1_tracker.utils.logger  # noqa: F401

    try:
        asyncio.run(_run(args))
    except SessionDiscoveryError as exc:
        logger.error("Startup failed: {}", exc)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
