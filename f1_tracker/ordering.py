"""Presentation order of the field.

ACTIVE drivers first by race position; OUT drivers after them, those who
covered more laps first. Every path ends on the driver number, so the order
is total and stable between cycles.
"""

from __future__ import annotations

from typing import Protocol, TypeVar

from f1_tracker.race_state import CompetitorStatus

# Stand-in rank for drivers without a position yet
UNRANKED = 99


class Orderable(Protocol):
    driver_number: int
    status: CompetitorStatus

    @property
    def rank(self) -> int | None: ...

    @property
    def total_laps_completed(self) -> int: ...


OrderableT = TypeVar("OrderableT", bound=Orderable)


def ordering_key(item: Orderable) -> tuple[int, int, int, int]:
    """Sort key implementing the standings comparator."""
    rank = item.rank if item.rank is not None else UNRANKED
    if item.status is CompetitorStatus.OUT:
        return (1, -item.total_laps_completed, rank, item.driver_number)
    return (0, rank, 0, item.driver_number)


def sort_competitors(items: list[OrderableT]) -> list[OrderableT]:
    """Return ``items`` in standings order (input left untouched)."""
    return sorted(items, key=ordering_key)
