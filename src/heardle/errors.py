"""Typed failures for the Heardle core.

Every failure carries a stable machine-readable ``kind`` and the HTTP status the
outer layer should answer with. Callers branch on the exception class or on
``kind``; nothing here is swallowed silently.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class ErrorKind(StrEnum):
    """Stable error identifiers exposed to API clients."""

    INVALID_DATE_INPUT = "invalid_date_input"
    EMPTY_POOL = "empty_pool"
    POOL_EXHAUSTED = "pool_exhausted"
    ALREADY_FINISHED = "already_finished"
    CATALOG_UNAVAILABLE = "catalog_unavailable"
    ARTIST_NOT_FOUND = "artist_not_found"
    INVALID_PUZZLE_DAY = "invalid_puzzle_day"
    MALFORMED_INPUT = "malformed_input"
    UNEXPECTED = "unexpected"


class HeardleError(Exception):
    """Base class for all Heardle failures."""

    kind: ErrorKind = ErrorKind.UNEXPECTED
    status: int = 500

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context


class EmptyPoolError(HeardleError):
    """The artist pool has no songs to pick from."""

    kind = ErrorKind.EMPTY_POOL
    status = 404


class PoolExhaustedError(HeardleError):
    """Every song of the pool is in the practice exclusion set."""

    kind = ErrorKind.POOL_EXHAUSTED
    status = 404


class AlreadyFinishedError(HeardleError):
    """A guess or skip was submitted after the game reached a terminal state."""

    kind = ErrorKind.ALREADY_FINISHED
    status = 400


class CatalogUnavailableError(HeardleError):
    """The catalog collaborator failed to produce a pool."""

    kind = ErrorKind.CATALOG_UNAVAILABLE
    status = 500


class ArtistNotFoundError(HeardleError):
    kind = ErrorKind.ARTIST_NOT_FOUND
    status = 404


class InvalidPuzzleDayError(HeardleError):
    """The day lies before the puzzle epoch."""

    kind = ErrorKind.INVALID_PUZZLE_DAY
    status = 400


class MalformedInputError(HeardleError):
    kind = ErrorKind.MALFORMED_INPUT
    status = 400


@dataclass(frozen=True)
class ErrorDescriptor:
    """JSON-serializable error answer for the HTTP layer."""

    kind: ErrorKind
    message: str
    status: int

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "kind": str(self.kind), "status": self.status}


def describe_error(exc: BaseException) -> ErrorDescriptor:
    """
    Map any exception onto an ErrorDescriptor.

    Heardle errors keep their own kind and status. Anything else is reported as
    ``unexpected`` with status 500 and a generic message, so internals never leak
    into API responses.
    """
    if isinstance(exc, HeardleError):
        return ErrorDescriptor(kind=exc.kind, message=exc.message, status=exc.status)
    return ErrorDescriptor(kind=ErrorKind.UNEXPECTED, message="Unexpected error", status=500)
