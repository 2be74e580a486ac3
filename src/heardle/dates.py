"""UTC calendar-day handling for daily puzzles.

The server is the only source of truth for "today". A client may send its own
date to absorb timezone skew around midnight, but only a date within a small
window of the server's UTC day is honoured; anything else falls back to the
server day and is flagged so the caller can log it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from enum import StrEnum

from heardle.safe_logging import sanitize_client_value

logger = logging.getLogger(__name__)

CANONICAL_DAY_FORMAT = "%Y-%m-%d"
_CANONICAL_DAY_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


class InvalidDateReason(StrEnum):
    """Why a client-supplied date was not used."""

    UNPARSABLE = "unparsable"
    OUT_OF_RANGE = "out_of_range"
    BEFORE_EPOCH = "before_epoch"


@dataclass(frozen=True)
class AnchoredDay:
    """Result of anchoring a requested date to a canonical UTC day."""

    day: str
    requested: str | None = None
    fell_back: bool = False
    reason: InvalidDateReason | None = None


def to_utc(moment: datetime) -> datetime:
    """Return ``moment`` in UTC; naive datetimes are taken to already be UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def canonical_day(moment: datetime | date) -> str:
    """Format the UTC calendar day of ``moment`` as ``YYYY-MM-DD``."""
    if isinstance(moment, datetime):
        moment = to_utc(moment).date()
    return moment.strftime(CANONICAL_DAY_FORMAT)


def parse_canonical_day(value: str) -> date:
    """
    Parse a strict ``YYYY-MM-DD`` string.

    Raises ValueError for anything else, including ``2025-8-1`` or trailing
    time components, so that every accepted value round-trips unchanged.
    """
    if not _CANONICAL_DAY_RE.fullmatch(value):
        raise ValueError(f"not a YYYY-MM-DD day: {value!r}")
    return datetime.strptime(value, CANONICAL_DAY_FORMAT).date()


def utc_midnight(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=UTC)


def utc_today(now: datetime | None = None) -> str:
    return canonical_day(now if now is not None else datetime.now(UTC))


def seconds_until_next_day(now: datetime | None = None) -> int:
    """Seconds until the next UTC midnight, i.e. until the next daily puzzle."""
    current = to_utc(now if now is not None else datetime.now(UTC))
    next_midnight = utc_midnight(current.date() + timedelta(days=1))
    return int((next_midnight - current).total_seconds())


class DateAnchor:
    """
    Normalizes a possibly client-supplied date to a canonical UTC day.

    Args:
        tolerance_days: How many days a client date may differ from the
            server's UTC day and still be accepted (default 1, for timezones
            that are already past or not yet at UTC midnight).
        earliest: First day a client may ask for, usually the puzzle epoch.
            Earlier days fall back to the server day.
    """

    def __init__(self, tolerance_days: int = 1, earliest: date | str | None = None):
        if tolerance_days < 0:
            raise ValueError("tolerance_days must be >= 0")
        self.tolerance_days = tolerance_days
        if isinstance(earliest, str):
            earliest = parse_canonical_day(earliest)
        self.earliest = earliest

    def normalize(self, raw_date: str | None, server_now: datetime) -> AnchoredDay:
        server_day = to_utc(server_now).date()
        server_day_str = canonical_day(server_day)

        if raw_date is None or not raw_date.strip():
            return AnchoredDay(day=server_day_str)

        requested = raw_date.strip()
        try:
            client_day = parse_canonical_day(requested)
        except ValueError:
            return self._fall_back(requested, server_day_str, InvalidDateReason.UNPARSABLE)

        if abs((client_day - server_day).days) > self.tolerance_days:
            return self._fall_back(requested, server_day_str, InvalidDateReason.OUT_OF_RANGE)

        if self.earliest is not None and client_day < self.earliest <= server_day:
            return self._fall_back(requested, server_day_str, InvalidDateReason.BEFORE_EPOCH)

        if requested != server_day_str:
            logger.debug(f"Using client date {requested} (server day {server_day_str})")
        return AnchoredDay(day=requested, requested=requested)

    def _fall_back(self, requested: str, server_day: str, reason: InvalidDateReason) -> AnchoredDay:
        logger.warning(
            f"Client date {sanitize_client_value(requested)!r} rejected ({reason}), "
            f"using server date {server_day}"
        )
        return AnchoredDay(day=server_day, requested=requested, fell_back=True, reason=reason)
