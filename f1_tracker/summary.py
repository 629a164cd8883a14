"""Session-level header figures: current lap, track status, time remaining."""

from __future__ import annotations

from datetime import datetime, timezone

from loguru import logger
from pydantic import BaseModel

from f1_tracker.formatting import FINISHED, NO_GAP, format_countdown
from f1_tracker.models import MeetingInfo, SessionInfo, TrackStatusRecord
from f1_tracker.race_state import CompetitorStatus
from f1_tracker.standings import StandingRow

UNKNOWN_TRACK_STATUS = "Unknown"


class SessionSummary(BaseModel):
    """Header data painted alongside the standings."""

    event_title: str
    current_lap: int | None = None
    total_laps: int | None = None
    laps_display: str = NO_GAP
    track_status: str = UNKNOWN_TRACK_STATUS
    time_remaining: str = FINISHED
    remaining_seconds: int | None = None
    is_live: bool = False
    flag: str | None = None
    generated_at: datetime


class SessionClock:
    """Tracks whether the session is live; flips to finished once, for good."""

    def __init__(
        self,
        date_start: datetime | None,
        date_end: datetime | None,
        is_live: bool,
    ) -> None:
        self.date_start = date_start
        self.date_end = date_end
        self.is_live = is_live

    @classmethod
    def from_session(cls, session: SessionInfo, now: datetime) -> SessionClock:
        """A session is live when it is a race and ``now`` is inside its window."""
        is_live = (
            session.is_race
            and session.date_start is not None
            and session.date_end is not None
            and session.date_start <= now <= session.date_end
        )
        return cls(session.date_start, session.date_end, is_live)

    def tick(self, now: datetime) -> int | None:
        """Whole seconds left while live; None once finished."""
        if not self.is_live or self.date_end is None:
            return None
        if self.date_end > now:
            return max(0, int((self.date_end - now).total_seconds()))
        self.is_live = False
        logger.info("Session end time {} passed; polling will stop", self.date_end.isoformat())
        return None


def event_title(meeting: MeetingInfo | None, session: SessionInfo) -> str:
    meeting_name = meeting.meeting_name if meeting and meeting.meeting_name else ""
    return f"{meeting_name}: {session.session_name or ''}"


class HeaderSummary:
    """Builds the ``SessionSummary`` each cycle from the ordered rows."""

    def __init__(
        self,
        clock: SessionClock,
        title: str,
        total_laps: int | None = None,
        flag: str | None = None,
    ) -> None:
        self.clock = clock
        self.title = title
        self.total_laps = total_laps
        self.flag = flag

    def update(
        self,
        rows: list[StandingRow],
        track_status: list[TrackStatusRecord],
        now: datetime | None = None,
    ) -> SessionSummary:
        now = now or datetime.now(timezone.utc)
        remaining = self.clock.tick(now)
        is_live = self.clock.is_live

        current_lap = self._current_lap(rows, is_live)
        laps_display = str(current_lap) if current_lap is not None else NO_GAP
        if self.total_laps is not None:
            laps_display = f"{laps_display} / {self.total_laps}"

        return SessionSummary(
            event_title=self.title,
            current_lap=current_lap,
            total_laps=self.total_laps,
            laps_display=laps_display,
            track_status=self._track_status(track_status, is_live),
            time_remaining=format_countdown(remaining) if remaining is not None else FINISHED,
            remaining_seconds=remaining,
            is_live=is_live,
            flag=self.flag,
            generated_at=now,
        )

    @staticmethod
    def _current_lap(rows: list[StandingRow], is_live: bool) -> int | None:
        laps = [
            row.current_lap
            for row in rows
            if row.status is CompetitorStatus.ACTIVE and row.current_lap is not None
        ]
        max_lap = max(laps, default=0)
        if max_lap > 0:
            return max_lap
        return 0 if is_live else None

    @staticmethod
    def _track_status(track_status: list[TrackStatusRecord], is_live: bool) -> str:
        if track_status:
            latest = track_status[-1]
            label = latest.status_type or latest.status
            if label:
                return label
        return UNKNOWN_TRACK_STATUS if is_live else FINISHED
