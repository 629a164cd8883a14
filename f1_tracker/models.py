"""Typed records for the OpenF1 sub-streams.

Every record is validated once, when the feed payload is parsed. Anything the
rest of the tracker sees has a driver number, timezone-aware timestamps and
explicit optional fields.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, TypeVar

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class FeedRecord(BaseModel):
    """Base for all feed records: immutable, unknown keys ignored."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("*", mode="after")
    @classmethod
    def _assume_utc(cls, value: Any) -> Any:
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class PositionRecord(FeedRecord):
    """Race position of one car at a point in time."""

    driver_number: int
    position: int | None = None
    date: datetime | None = None


class DriverDetail(FeedRecord):
    """Display identity of a driver."""

    driver_number: int
    full_name: str | None = None
    name_acronym: str | None = None
    broadcast_name: str | None = None
    team_name: str | None = None
    team_colour: str | None = None
    country_code: str | None = None

    @classmethod
    def placeholder(cls, driver_number: int) -> DriverDetail:
        return cls(driver_number=driver_number, full_name=f"Driver {driver_number}")

    def refreshed(self, incoming: DriverDetail) -> DriverDetail:
        """Return a copy updated with the non-empty fields of ``incoming``."""
        update = {
            key: value
            for key, value in incoming.model_dump().items()
            if value is not None and key != "driver_number"
        }
        return self.model_copy(update=update)


class LapRecord(FeedRecord):
    """One lap of one driver. Re-sent with more fields as the lap completes."""

    driver_number: int
    lap_number: int
    lap_duration: float | None = None
    date_start: datetime | None = None
    is_pit_out_lap: bool | None = None
    duration_sector_1: float | None = None
    duration_sector_2: float | None = None
    duration_sector_3: float | None = None


class CarDataRecord(FeedRecord):
    """Car telemetry sample (~3.7 Hz)."""

    driver_number: int
    date: datetime | None = None
    drs: int | None = None
    speed: int | None = None
    n_gear: int | None = None
    throttle: int | None = None
    brake: int | None = None
    rpm: int | None = None


class StintRecord(FeedRecord):
    """A run on one set of tyres."""

    driver_number: int
    stint_number: int | None = None
    lap_start: int | None = None
    lap_end: int | None = None
    compound: str | None = None
    tyre_age_at_start: int | None = None


class IntervalRecord(FeedRecord):
    """Gap to leader and to the car ahead; either seconds or a lap-count string."""

    driver_number: int
    date: datetime | None = None
    gap_to_leader: float | str | None = None
    interval: float | str | None = None


class TrackStatusRecord(FeedRecord):
    """Session-wide track status change (flags, safety car)."""

    date: datetime | None = None
    status: str | None = None
    status_type: str | None = None
    message: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _status_as_text(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value


class SessionInfo(FeedRecord):
    """Session metadata from the discovery endpoint."""

    session_key: int
    session_name: str | None = None
    session_type: str | None = None
    date_start: datetime | None = None
    date_end: datetime | None = None
    meeting_key: int | None = None
    country_name: str | None = None
    circuit_short_name: str | None = None

    @property
    def is_race(self) -> bool:
        return self.session_type == "Race"


class MeetingInfo(FeedRecord):
    """Meeting (race weekend) metadata."""

    meeting_key: int
    meeting_name: str | None = None
    meeting_official_name: str | None = None
    country_name: str | None = None
    location: str | None = None


class Snapshot(BaseModel):
    """The seven collections returned by one fetch. Empty means "no data"."""

    positions: list[PositionRecord] = Field(default_factory=list)
    driver_details: list[DriverDetail] = Field(default_factory=list)
    laps: list[LapRecord] = Field(default_factory=list)
    car_data: list[CarDataRecord] = Field(default_factory=list)
    stints: list[StintRecord] = Field(default_factory=list)
    intervals: list[IntervalRecord] = Field(default_factory=list)
    track_status: list[TrackStatusRecord] = Field(default_factory=list)


RecordT = TypeVar("RecordT", bound=BaseModel)


def parse_records(model: type[RecordT], payload: Iterable[Any] | None) -> list[RecordT]:
    """Validate raw feed rows, dropping the ones that do not fit ``model``."""
    if not payload:
        return []
    records: list[RecordT] = []
    dropped = 0
    for row in payload:
        try:
            records.append(model.model_validate(row))
        except ValidationError as exc:
            dropped += 1
            logger.debug("Dropping malformed {} row: {}", model.__name__, exc.errors()[0]["msg"])
    if dropped:
        logger.debug("Dropped {} of {} {} rows", dropped, dropped + len(records), model.__name__)
    return records
