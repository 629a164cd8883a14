"""Unit tests for standings order."""

from dataclasses import dataclass

from f1_tracker.ordering import ordering_key, sort_competitors
from f1_tracker.race_state import CompetitorStatus

ACTIVE = CompetitorStatus.ACTIVE
OUT = CompetitorStatus.OUT


@dataclass
class Entry:
    driver_number: int
    status: CompetitorStatus
    rank: int | None
    total_laps_completed: int = 0


def _numbers(entries):
    return [e.driver_number for e in sort_competitors(entries)]


class TestOrdering:
    """Tests for the standings comparator."""

    def test_active_by_rank(self):
        """Active drivers sort by race position."""
        entries = [Entry(44, ACTIVE, 3), Entry(1, ACTIVE, 1), Entry(4, ACTIVE, 2)]
        assert _numbers(entries) == [1, 4, 44]

    def test_out_after_active(self):
        """Retired drivers come after every running one."""
        entries = [Entry(16, OUT, 1, 40), Entry(44, ACTIVE, 20, 10)]
        assert _numbers(entries) == [44, 16]

    def test_out_by_laps_then_rank(self):
        """Retired drivers sort by laps covered, then last rank."""
        entries = [
            Entry(10, OUT, 5, 12),
            Entry(20, OUT, 9, 30),
            Entry(31, OUT, 4, 12),
        ]
        assert _numbers(entries) == [20, 31, 10]

    def test_missing_rank_sorts_last(self):
        """A driver without a position sorts after ranked ones."""
        entries = [Entry(7, ACTIVE, None), Entry(3, ACTIVE, 20)]
        assert _numbers(entries) == [3, 7]

    def test_ties_broken_by_driver_number(self):
        """Equal ranks fall back to driver number, whatever the input order."""
        entries = [Entry(63, ACTIVE, 2), Entry(14, ACTIVE, 2)]
        assert _numbers(entries) == [14, 63]
        assert _numbers(list(reversed(entries))) == [14, 63]

    def test_keys_are_unique_per_driver(self):
        """Distinct drivers never compare equal, so the order is total."""
        entries = [
            Entry(1, ACTIVE, 1),
            Entry(2, ACTIVE, 1),
            Entry(3, OUT, 1, 0),
            Entry(4, OUT, None, 0),
            Entry(5, ACTIVE, None),
        ]
        keys = [ordering_key(e) for e in entries]
        assert len(set(keys)) == len(keys)

    def test_input_untouched(self):
        """Sorting returns a new list."""
        entries = [Entry(44, ACTIVE, 3), Entry(1, ACTIVE, 1)]
        sort_competitors(entries)
        assert [e.driver_number for e in entries] == [44, 1]
