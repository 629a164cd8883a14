"""Render sinks: where each cycle's ordered standings and header end up."""

from __future__ import annotations

from typing import Protocol

import pandas as pd

from f1_tracker.formatting import format_position_delta
from f1_tracker.race_state import CompetitorStatus
from f1_tracker.standings import StandingRow
from f1_tracker.summary import SessionSummary


class RenderSink(Protocol):
    def paint(self, rows: list[StandingRow], summary: SessionSummary) -> None: ...


def standings_frame(rows: list[StandingRow]) -> pd.DataFrame:
    """Tabular view of the standings, one row per driver."""
    records = []
    for row in rows:
        if row.rank is not None:
            pos = str(row.rank)
        else:
            pos = "OUT" if row.status is CompetitorStatus.OUT else "--"
        gap = f"{row.gap} ({row.gap_secondary})" if row.gap_secondary else row.gap
        records.append({
            "Pos": pos,
            "No": row.driver_number,
            "Driver": f"{row.full_name} ({row.name_acronym})",
            "Team": row.team_name,
            "DRS": row.drs.value,
            "Tyre": row.compound,
            "L": "--" if row.laps_on_current_set is None else row.laps_on_current_set,
            "P": "-" if row.pit_stop_count is None else row.pit_stop_count,
            "+/-": row.position_change,
            "Net": format_position_delta(row.positions_gained),
            "Gap": gap,
            "Last": row.last_lap,
            "Best": row.personal_best,
        })
    return pd.DataFrame.from_records(
        records,
        columns=[
            "Pos", "No", "Driver", "Team", "DRS", "Tyre", "L", "P", "+/-", "Net", "Gap", "Last", "Best",
        ],
    )


class ConsoleSink:
    """Prints the header and standings table to stdout."""

    def __init__(self, width: int = 100) -> None:
        self.width = width

    def paint(self, rows: list[StandingRow], summary: SessionSummary) -> None:
        print(f"\n{'=' * self.width}")
        print(f"  {summary.event_title}")
        print(
            f"  Lap: {summary.laps_display}  |  Track: {summary.track_status}"
            f"  |  Remaining: {summary.time_remaining}"
        )
        print(f"{'=' * self.width}")
        if not rows:
            print("  No driver data for this session.")
            return
        print(standings_frame(rows).to_string(index=False))


class LatestStandingsSink:
    """Keeps a copy of the most recent paint for readers such as the API."""

    def __init__(self) -> None:
        self._rows: list[StandingRow] | None = None
        self._summary: SessionSummary | None = None
        self.paint_count = 0

    def paint(self, rows: list[StandingRow], summary: SessionSummary) -> None:
        self._rows = [row.model_copy() for row in rows]
        self._summary = summary.model_copy()
        self.paint_count += 1

    @property
    def has_data(self) -> bool:
        return self._summary is not None

    @property
    def rows(self) -> list[StandingRow]:
        return list(self._rows or [])

    @property
    def summary(self) -> SessionSummary | None:
        return self._summary
