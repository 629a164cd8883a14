"""Derives the per-driver standings rows from the reconciled race state.

Rows are rebuilt from scratch every cycle. The only cross-driver dependency,
laps-down, is threaded through the field in presentation order as an
explicit ``LapsDownContext``: the leader sets it, everyone behind reads it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from loguru import logger
from pydantic import BaseModel

from f1_tracker.formatting import (
    NO_GAP,
    NOT_AVAILABLE,
    OUT_LAP_MARKER,
    OUT_MARKER,
    PLACEHOLDER,
    format_laps_down,
    format_position_delta,
    format_time,
    is_lap_encoded,
)
from f1_tracker.ordering import sort_competitors
from f1_tracker.race_state import CompetitorRecord, CompetitorStatus, RaceState

DRS_OPEN_CODES = frozenset({10, 12, 14})
DRS_AVAILABLE_CODE = 8


class DrsState(str, Enum):
    OPEN = "OPEN"
    AVAILABLE = "AVAILABLE"
    OFF = "OFF"
    DISABLED = "DISABLED"
    NOT_APPLICABLE = "NOT_APPLICABLE"


class StandingRow(BaseModel):
    """One line of the leaderboard, ready for any render sink."""

    driver_number: int
    full_name: str
    name_acronym: str
    team_name: str
    team_colour: str
    status: CompetitorStatus
    rank: int | None = None
    total_laps_completed: int = 0
    current_lap: int | None = None
    drs: DrsState = DrsState.DISABLED
    compound: str = NOT_AVAILABLE
    laps_on_current_set: int | None = None
    pit_stop_count: int | None = None
    laps_down: int = 0
    gap: str = NO_GAP
    gap_secondary: str = ""
    position_delta: int | None = None
    position_change: str = NOT_AVAILABLE
    rank_change: int | None = None
    positions_gained: int | None = None
    last_lap: str = PLACEHOLDER
    last_lap_duration: float | None = None
    personal_best: str = PLACEHOLDER
    personal_best_duration: float | None = None


@dataclass(frozen=True)
class LapsDownContext:
    """Laps completed by the current leader, carried down the field."""

    leader_laps: int | None = None

    def advance(self, record: CompetitorRecord) -> tuple[LapsDownContext, int]:
        """Return the context for the next driver and this driver's laps-down."""
        if record.status is CompetitorStatus.ACTIVE and record.rank == 1:
            return LapsDownContext(leader_laps=record.total_laps_completed), 0
        if self.leader_laps is None:
            return self, 0
        return self, max(0, self.leader_laps - record.total_laps_completed)


# ----------------------------------------------------------------------
# Per-field derivations
# ----------------------------------------------------------------------

def decode_drs(code: int | None, status: CompetitorStatus) -> DrsState:
    if status is CompetitorStatus.OUT:
        return DrsState.NOT_APPLICABLE
    if code is None:
        return DrsState.DISABLED
    if code in DRS_OPEN_CODES:
        return DrsState.OPEN
    if code == DRS_AVAILABLE_CODE:
        return DrsState.AVAILABLE
    return DrsState.OFF


def derive_tyres(record: CompetitorRecord) -> tuple[str, int | None, int | None]:
    """Compound, laps on the current set and pit-stop count."""
    stint = record.latest_stint
    if stint is None:
        return NOT_AVAILABLE, None, None

    compound = stint.compound or NOT_AVAILABLE
    pit_stops = max(0, stint.stint_number - 1) if stint.stint_number else None

    laps_on_set = stint.tyre_age_at_start
    lap = record.latest_lap
    if lap is not None and stint.lap_start is not None:
        on_set = lap.lap_number - stint.lap_start + 1
        if on_set > 0:
            laps_on_set = on_set

    return compound, laps_on_set, pit_stops


def derive_gap(record: CompetitorRecord, laps_down: int) -> tuple[str, str]:
    """Main gap value and the "+N LAP" annotation.

    The interval to the car ahead is preferred over the gap to the leader;
    lap-count values are shown as the feed sends them.
    """
    if record.status is CompetitorStatus.OUT:
        return OUT_MARKER, ""
    if record.rank == 1:
        return "", ""

    secondary = format_laps_down(laps_down)
    interval = record.latest_interval
    if interval is None:
        return NO_GAP, secondary

    value = interval.interval if interval.interval is not None else interval.gap_to_leader
    if value is None:
        return NO_GAP, secondary
    if is_lap_encoded(value):
        return value, secondary
    return format_time(value, include_sign_if_positive=True), secondary


def derive_lap_times(record: CompetitorRecord) -> tuple[str, str]:
    """Last-lap and personal-best strings."""
    lap = record.latest_lap
    duration = lap.lap_duration if lap is not None else None
    is_out = record.status is CompetitorStatus.OUT

    if is_out:
        last_lap = format_time(duration) if duration else OUT_MARKER
    elif lap is not None and lap.is_pit_out_lap:
        last_lap = OUT_LAP_MARKER
    elif duration:
        last_lap = format_time(duration)
    else:
        last_lap = PLACEHOLDER

    if record.personal_best:
        personal_best = format_time(record.personal_best)
    else:
        personal_best = NOT_AVAILABLE if is_out else PLACEHOLDER

    return last_lap, personal_best


def position_delta(record: CompetitorRecord) -> int | None:
    """Places gained (+) or lost (-) over this cycle's position history."""
    if record.cycle_first_rank is None or record.cycle_last_rank is None:
        return None
    return record.cycle_first_rank - record.cycle_last_rank


def positions_gained(record: CompetitorRecord) -> int | None:
    """Places gained (+) or lost (-) since the driver was first ranked this session."""
    if record.status is not CompetitorStatus.ACTIVE:
        return None
    if record.first_known_rank is None or record.rank is None:
        return None
    return record.first_known_rank - record.rank


def derive_row(
    record: CompetitorRecord, laps_down: int, previous_rank: int | None = None
) -> StandingRow:
    """Build the standings row for one driver."""
    identity = record.identity
    compound, laps_on_set, pit_stops = derive_tyres(record)
    gap, gap_secondary = derive_gap(record, laps_down)
    last_lap, personal_best = derive_lap_times(record)
    delta = position_delta(record)

    rank_change = None
    if record.status is CompetitorStatus.ACTIVE and previous_rank is not None and record.rank is not None:
        rank_change = previous_rank - record.rank

    if record.status is CompetitorStatus.OUT:
        position_change = OUT_MARKER
    elif delta is None:
        position_change = NOT_AVAILABLE
    else:
        position_change = format_position_delta(delta)

    telemetry = record.latest_telemetry
    return StandingRow(
        driver_number=record.driver_number,
        full_name=identity.full_name or NOT_AVAILABLE,
        name_acronym=identity.name_acronym or NOT_AVAILABLE,
        team_name=identity.team_name or NOT_AVAILABLE,
        team_colour=identity.team_colour or "333333",
        status=record.status,
        rank=record.rank,
        total_laps_completed=record.total_laps_completed,
        current_lap=record.latest_lap.lap_number if record.latest_lap else None,
        drs=decode_drs(telemetry.drs if telemetry else None, record.status),
        compound=compound,
        laps_on_current_set=laps_on_set,
        pit_stop_count=pit_stops,
        laps_down=laps_down,
        gap=gap,
        gap_secondary=gap_secondary,
        position_delta=delta,
        position_change=position_change,
        rank_change=rank_change,
        positions_gained=positions_gained(record),
        last_lap=last_lap,
        last_lap_duration=record.latest_lap.lap_duration if record.latest_lap else None,
        personal_best=personal_best,
        personal_best_duration=record.personal_best,
    )


def derive_standings(state: RaceState) -> list[StandingRow]:
    """Derive one row per ACTIVE/OUT driver, in standings order.

    A driver whose row cannot be built is logged and left out; the rest of
    the field is still derived.
    """
    rows: list[StandingRow] = []
    context = LapsDownContext()
    for record in sort_competitors(state.ranked_competitors()):
        context, laps_down = context.advance(record)
        try:
            rows.append(derive_row(record, laps_down, state.presented_ranks.get(record.driver_number)))
        except Exception as exc:
            logger.warning("Could not derive standings row for driver #{}: {}", record.driver_number, exc)
    return rows
