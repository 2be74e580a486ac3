from __future__ import annotations

from datetime import date, datetime, timedelta

from heardle.dates import canonical_day, parse_canonical_day, to_utc, utc_midnight
from heardle.errors import InvalidPuzzleDayError

DEFAULT_EPOCH = "2025-08-17"
MS_PER_DAY = 86_400_000

DayLike = str | date | datetime


def _as_day(value: DayLike) -> date:
    """Strip any time-of-day: strings are parsed, datetimes are taken in UTC."""
    if isinstance(value, datetime):
        return to_utc(value).date()
    if isinstance(value, date):
        return value
    return parse_canonical_day(value)


def puzzle_index(day: DayLike, epoch: DayLike = DEFAULT_EPOCH) -> int:
    """
    Daily puzzle number of ``day``; the epoch day is puzzle 1.

    Both arguments are aligned to UTC midnight before subtracting, so the time
    of day of a datetime argument never changes the result. Days before the
    epoch give numbers <= 0.
    """
    day_ms = int(utc_midnight(_as_day(day)).timestamp() * 1000)
    epoch_ms = int(utc_midnight(_as_day(epoch)).timestamp() * 1000)
    return (day_ms - epoch_ms) // MS_PER_DAY + 1


def require_puzzle_index(day: DayLike, epoch: DayLike = DEFAULT_EPOCH) -> int:
    """Like ``puzzle_index`` but rejects days before the epoch."""
    index = puzzle_index(day, epoch)
    if index < 1:
        raise InvalidPuzzleDayError(
            f"No puzzle before {canonical_day(_as_day(epoch))}",
            day=canonical_day(_as_day(day)),
        )
    return index


def puzzle_day(index: int, epoch: DayLike = DEFAULT_EPOCH) -> str:
    """Canonical day of puzzle ``index`` (inverse of ``puzzle_index``)."""
    return canonical_day(_as_day(epoch) + timedelta(days=index - 1))
