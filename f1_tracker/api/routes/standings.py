"""Standings endpoints: the latest leaderboard and session header."""

from fastapi import APIRouter, HTTPException

from f1_tracker.api.services import TrackerService
from f1_tracker.sinks import LatestStandingsSink
from f1_tracker.standings import StandingRow
from f1_tracker.summary import SessionSummary

router = APIRouter()


def _painted_sink() -> LatestStandingsSink:
    sink = TrackerService.get_instance().sink
    if not sink.has_data:
        raise HTTPException(status_code=503, detail="No standings yet. The first cycle has not completed.")
    return sink


@router.get("/standings", response_model=list[StandingRow])
async def get_standings() -> list[StandingRow]:
    """Ordered standings from the most recent cycle."""
    return _painted_sink().rows


@router.get("/session", response_model=SessionSummary)
async def get_session() -> SessionSummary:
    """Header figures: event, lap count, track status, time remaining."""
    return _painted_sink().summary
