"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone

import pytest

from f1_tracker.models import (
    CarDataRecord,
    DriverDetail,
    IntervalRecord,
    LapRecord,
    PositionRecord,
    Snapshot,
    StintRecord,
    TrackStatusRecord,
    parse_records,
)

T0 = datetime(2025, 3, 16, 4, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def t0() -> datetime:
    return T0


@pytest.fixture
def make_snapshot():
    """Build a Snapshot from raw feed-shaped dicts, validated like real payloads."""

    def _make(
        positions=(),
        drivers=(),
        laps=(),
        car_data=(),
        stints=(),
        intervals=(),
        track_status=(),
    ) -> Snapshot:
        return Snapshot(
            positions=parse_records(PositionRecord, list(positions)),
            driver_details=parse_records(DriverDetail, list(drivers)),
            laps=parse_records(LapRecord, list(laps)),
            car_data=parse_records(CarDataRecord, list(car_data)),
            stints=parse_records(StintRecord, list(stints)),
            intervals=parse_records(IntervalRecord, list(intervals)),
            track_status=parse_records(TrackStatusRecord, list(track_status)),
        )

    return _make


@pytest.fixture
def race_payload() -> dict[str, list[dict]]:
    """Three-car race: VER leads, NOR passed HAM for P2, HAM is a lap down."""
    return {
        "positions": [
            {"driver_number": 1, "position": 1, "date": "2025-03-16T03:59:00+00:00"},
            {"driver_number": 44, "position": 2, "date": "2025-03-16T03:59:00+00:00"},
            {"driver_number": 4, "position": 3, "date": "2025-03-16T03:59:00+00:00"},
            {"driver_number": 4, "position": 2, "date": "2025-03-16T03:59:40+00:00"},
            {"driver_number": 44, "position": 3, "date": "2025-03-16T03:59:40+00:00"},
        ],
        "drivers": [
            {"driver_number": 1, "full_name": "Max VERSTAPPEN", "name_acronym": "VER",
             "team_name": "Red Bull Racing", "team_colour": "3671C6"},
            {"driver_number": 4, "full_name": "Lando NORRIS", "name_acronym": "NOR",
             "team_name": "McLaren", "team_colour": "FF8000"},
            {"driver_number": 44, "full_name": "Lewis HAMILTON", "name_acronym": "HAM",
             "team_name": "Ferrari", "team_colour": "E8002D"},
        ],
        "laps": [
            {"driver_number": 1, "lap_number": 14, "lap_duration": 92.481,
             "date_start": "2025-03-16T03:56:00+00:00"},
            {"driver_number": 1, "lap_number": 15, "lap_duration": 91.902,
             "date_start": "2025-03-16T03:57:32+00:00"},
            {"driver_number": 4, "lap_number": 14, "lap_duration": 92.913,
             "date_start": "2025-03-16T03:56:03+00:00"},
            {"driver_number": 4, "lap_number": 15, "lap_duration": None,
             "date_start": "2025-03-16T03:57:36+00:00", "is_pit_out_lap": True},
            {"driver_number": 44, "lap_number": 13, "lap_duration": 93.550,
             "date_start": "2025-03-16T03:56:10+00:00"},
            {"driver_number": 44, "lap_number": 14, "lap_duration": 93.004,
             "date_start": "2025-03-16T03:57:44+00:00"},
        ],
        "car_data": [
            {"driver_number": 1, "drs": 8, "speed": 301, "date": "2025-03-16T03:59:50+00:00"},
            {"driver_number": 4, "drs": 12, "speed": 318, "date": "2025-03-16T03:59:50+00:00"},
            {"driver_number": 44, "drs": 1, "speed": 287, "date": "2025-03-16T03:59:50+00:00"},
        ],
        "stints": [
            {"driver_number": 1, "stint_number": 1, "lap_start": 1, "compound": "MEDIUM",
             "tyre_age_at_start": 0},
            {"driver_number": 4, "stint_number": 1, "lap_start": 1, "lap_end": 14,
             "compound": "MEDIUM", "tyre_age_at_start": 0},
            {"driver_number": 4, "stint_number": 2, "lap_start": 15, "compound": "HARD",
             "tyre_age_at_start": 0},
            {"driver_number": 44, "stint_number": 1, "lap_start": 1, "compound": "SOFT",
             "tyre_age_at_start": 3},
        ],
        "intervals": [
            {"driver_number": 1, "gap_to_leader": 0, "interval": 0,
             "date": "2025-03-16T03:59:45+00:00"},
            {"driver_number": 4, "gap_to_leader": 21.377, "interval": 21.377,
             "date": "2025-03-16T03:59:45+00:00"},
            {"driver_number": 44, "gap_to_leader": "+1 LAP", "interval": 3.912,
             "date": "2025-03-16T03:59:45+00:00"},
        ],
        "track_status": [
            {"status": "1", "status_type": "AllClear", "date": "2025-03-16T03:00:00+00:00"},
            {"status": "2", "status_type": "Yellow", "date": "2025-03-16T03:58:00+00:00"},
        ],
    }


@pytest.fixture
def race_snapshot(make_snapshot, race_payload) -> Snapshot:
    return make_snapshot(**race_payload)
