"""Tests for daily puzzle numbering."""

from __future__ import annotations

from datetime import UTC, date, datetime

import pytest

from heardle.errors import ErrorKind, InvalidPuzzleDayError
from heardle.puzzle import DEFAULT_EPOCH, puzzle_day, puzzle_index, require_puzzle_index


def test_epoch_is_puzzle_one():
    assert puzzle_index(DEFAULT_EPOCH) == 1


def test_two_days_after_epoch():
    assert puzzle_index("2025-08-19", epoch="2025-08-17") == 3


def test_time_of_day_is_ignored():
    morning = datetime(2025, 8, 19, 0, 0, 1, tzinfo=UTC)
    evening = datetime(2025, 8, 19, 23, 59, 59, tzinfo=UTC)
    assert puzzle_index(morning) == puzzle_index(evening) == 3


def test_consecutive_days_increase_by_one():
    previous = puzzle_index("2025-12-31")
    assert puzzle_index("2026-01-01") == previous + 1


def test_days_before_epoch():
    assert puzzle_index("2025-08-16") == 0
    assert puzzle_index(date(2025, 8, 1)) == -15


def test_require_puzzle_index_rejects_pre_epoch():
    with pytest.raises(InvalidPuzzleDayError) as excinfo:
        require_puzzle_index("2025-08-16")
    assert excinfo.value.kind == ErrorKind.INVALID_PUZZLE_DAY
    assert excinfo.value.status == 400


@pytest.mark.parametrize("index", [1, 3, 100, 1000])
def test_puzzle_day_inverts_index(index: int):
    assert puzzle_index(puzzle_day(index)) == index


def test_custom_epoch():
    assert puzzle_day(1, epoch="2024-02-28") == "2024-02-28"
    assert puzzle_day(3, epoch="2024-02-28") == "2024-03-01"
