"""Reconciles repeated feed snapshots into one durable record per driver.

Core design: every poll returns overlapping, partially-missing slices of the
same session. ``RaceState.merge`` folds each slice in with "latest wins by its
own timestamp" semantics, so an empty or stale sub-stream never erases what is
already known. Liveness is inferred from the position feed alone: a driver
that stops appearing there for longer than the retirement timeout is OUT.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Iterable, TypeVar

from loguru import logger

from f1_tracker.models import (
    CarDataRecord,
    DriverDetail,
    IntervalRecord,
    LapRecord,
    PositionRecord,
    Snapshot,
    StintRecord,
)

DEFAULT_RETIREMENT_TIMEOUT = timedelta(seconds=15)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

RecordT = TypeVar("RecordT")


class CompetitorStatus(str, Enum):
    UNKNOWN = "UNKNOWN"
    ACTIVE = "ACTIVE"
    OUT = "OUT"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_at_least_as_new(incoming: datetime | None, current: datetime | None) -> bool:
    """Latest-wins rule for timestamped records (callers handle "no prior")."""
    if incoming is None:
        return False
    if current is None:
        return True
    return incoming >= current


@dataclass
class CompetitorRecord:
    """Everything known about one driver in the tracked session."""

    driver_number: int
    identity: DriverDetail
    status: CompetitorStatus = CompetitorStatus.UNKNOWN
    last_seen_active_at: datetime | None = None

    # Lap history keyed by lap number, in order of first arrival
    laps: dict[int, LapRecord] = field(default_factory=dict)
    latest_lap: LapRecord | None = None
    personal_best: float | None = None
    total_laps_completed: int = 0

    latest_position: PositionRecord | None = None
    latest_telemetry: CarDataRecord | None = None
    latest_stint: StintRecord | None = None
    latest_interval: IntervalRecord | None = None

    first_known_rank: int | None = None
    cycle_first_rank: int | None = None
    cycle_last_rank: int | None = None

    @property
    def rank(self) -> int | None:
        return self.latest_position.position if self.latest_position else None

    @property
    def is_ranked(self) -> bool:
        """ACTIVE and OUT drivers take part in the standings; UNKNOWN ones do not."""
        return self.status in (CompetitorStatus.ACTIVE, CompetitorStatus.OUT)

    # ------------------------------------------------------------------
    # Folding single records
    # ------------------------------------------------------------------

    def fold_lap(self, lap: LapRecord) -> None:
        self.laps[lap.lap_number] = lap

        if lap.lap_duration and lap.lap_duration > 0:
            if self.personal_best is None or lap.lap_duration < self.personal_best:
                self.personal_best = lap.lap_duration

        self.total_laps_completed = max(self.total_laps_completed, lap.lap_number)

        current = self.latest_lap
        if (
            current is None
            or lap.lap_number > current.lap_number
            or (
                lap.lap_number == current.lap_number
                and is_at_least_as_new(lap.date_start, current.date_start)
            )
        ):
            self.latest_lap = lap

    def fold_telemetry(self, sample: CarDataRecord) -> None:
        if self.latest_telemetry is None or is_at_least_as_new(sample.date, self.latest_telemetry.date):
            self.latest_telemetry = sample

    def fold_stint(self, stint: StintRecord) -> None:
        current = self.latest_stint
        if current is None:
            self.latest_stint = stint
        elif stint.stint_number is not None and stint.stint_number >= (current.stint_number or 0):
            self.latest_stint = stint

    def fold_interval(self, interval: IntervalRecord) -> None:
        if self.latest_interval is None or is_at_least_as_new(interval.date, self.latest_interval.date):
            self.latest_interval = interval

    def fold_position(self, record: PositionRecord, now: datetime) -> None:
        if self.latest_position is None or is_at_least_as_new(record.date, self.latest_position.date):
            self.latest_position = record

        if record.position is not None:
            if self.first_known_rank is None:
                self.first_known_rank = record.position
            if self.cycle_first_rank is None:
                self.cycle_first_rank = record.position
            self.cycle_last_rank = record.position

        if self.status is not CompetitorStatus.OUT:
            self.status = CompetitorStatus.ACTIVE
            self.last_seen_active_at = now


class RaceState:
    """Process-lifetime store of competitor records for one session.

    Owned by the tracker and passed explicitly to the derivation step. Call
    ``reset()`` when a new session starts.
    """

    def __init__(self, retirement_timeout: timedelta = DEFAULT_RETIREMENT_TIMEOUT) -> None:
        self.retirement_timeout = retirement_timeout
        self.competitors: dict[int, CompetitorRecord] = {}
        # Rank each driver was presented at in the previous cycle
        self.presented_ranks: dict[int, int] = {}
        self.cycles_merged = 0

    def reset(self) -> None:
        """Forget every competitor (new session)."""
        logger.info("Resetting race state ({} competitors dropped)", len(self.competitors))
        self.competitors.clear()
        self.presented_ranks.clear()
        self.cycles_merged = 0

    def get(self, driver_number: int) -> CompetitorRecord | None:
        return self.competitors.get(driver_number)

    def ranked_competitors(self) -> list[CompetitorRecord]:
        return [c for c in self.competitors.values() if c.is_ranked]

    def _ensure(self, driver_number: int) -> CompetitorRecord:
        record = self.competitors.get(driver_number)
        if record is None:
            record = CompetitorRecord(
                driver_number=driver_number,
                identity=DriverDetail.placeholder(driver_number),
            )
            self.competitors[driver_number] = record
            logger.debug("New competitor #{}", driver_number)
        return record

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------

    def merge(self, snapshot: Snapshot, now: datetime | None = None) -> RaceState:
        """Fold one snapshot into the store and re-evaluate retirements.

        Steps run in a fixed order because later ones read what earlier ones
        set (e.g. positions flip status after laps raised the lap count).
        Bad records are logged and skipped; nothing is raised.
        """
        now = now or _utcnow()

        self._fold_each("driver detail", snapshot.driver_details, self._upsert_identity)
        self._fold_each("lap", snapshot.laps, lambda lap: self._ensure(lap.driver_number).fold_lap(lap))
        self._fold_each(
            "car data", snapshot.car_data, lambda s: self._ensure(s.driver_number).fold_telemetry(s)
        )
        self._fold_each("stint", snapshot.stints, lambda s: self._ensure(s.driver_number).fold_stint(s))
        self._fold_each(
            "interval", snapshot.intervals, lambda i: self._ensure(i.driver_number).fold_interval(i)
        )

        seen = self._fold_positions(snapshot.positions, now)
        self._reconcile_retirements(seen, now)

        self.cycles_merged += 1
        return self

    def _fold_each(
        self, kind: str, records: Iterable[RecordT], fold: Callable[[RecordT], None]
    ) -> None:
        for record in records:
            try:
                fold(record)
            except Exception as exc:
                logger.warning(
                    "Skipping {} record for driver {}: {}",
                    kind,
                    getattr(record, "driver_number", "?"),
                    exc,
                )

    def _upsert_identity(self, detail: DriverDetail) -> None:
        record = self._ensure(detail.driver_number)
        record.identity = record.identity.refreshed(detail)

    def _fold_positions(self, positions: list[PositionRecord], now: datetime) -> set[int]:
        """Fold position records in time order; return the drivers seen."""
        seen: set[int] = set()
        if not positions:
            return seen

        ordered = sorted(positions, key=lambda p: p.date or _EPOCH)
        for driver_number in {p.driver_number for p in ordered}:
            record = self._ensure(driver_number)
            record.cycle_first_rank = None
            record.cycle_last_rank = None

        for pos in ordered:
            try:
                self._ensure(pos.driver_number).fold_position(pos, now)
                seen.add(pos.driver_number)
            except Exception as exc:
                logger.warning("Skipping position record for driver {}: {}", pos.driver_number, exc)
        return seen

    def _reconcile_retirements(self, seen: set[int], now: datetime) -> None:
        for record in self.competitors.values():
            if record.driver_number in seen or record.status is not CompetitorStatus.ACTIVE:
                continue
            if record.last_seen_active_at is None:
                continue
            silence = now - record.last_seen_active_at
            if silence > self.retirement_timeout:
                record.status = CompetitorStatus.OUT
                logger.info(
                    "Driver #{} marked OUT after {:.1f}s without position data",
                    record.driver_number,
                    silence.total_seconds(),
                )

    # ------------------------------------------------------------------
    # Presentation memory
    # ------------------------------------------------------------------

    def record_presented_ranks(self, ranks: dict[int, int | None]) -> None:
        """Remember the ranks shown this cycle for next cycle's rank change."""
        for driver_number, rank in ranks.items():
            if rank is not None:
                self.presented_ranks[driver_number] = rank
