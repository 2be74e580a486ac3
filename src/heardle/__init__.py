__all__ = (
    "cli",
    "Config",
    # Game core
    "Song",
    "DateAnchor",
    "AnchoredDay",
    "puzzle_index",
    "puzzle_day",
    "DeterministicSelector",
    "ExclusionSampler",
    "RevealStateMachine",
    "RevealState",
    "GuessResult",
    "Outcome",
    "GuessNormalizer",
    "DURATION_LADDER_MS",
    "MAX_TRIES",
    "SKIP_MARKER",
    # Errors
    "HeardleError",
    "ErrorKind",
    "EmptyPoolError",
    "PoolExhaustedError",
    "AlreadyFinishedError",
    "CatalogUnavailableError",
    "ArtistNotFoundError",
    "InvalidPuzzleDayError",
    "MalformedInputError",
    "describe_error",
    # Catalog
    "ArtistCatalog",
    "StaticCatalog",
    "ITunesCatalog",
    "ITunesClient",
    # Service
    "HeardleService",
    "DailyPuzzle",
    "GameSessions",
    "parse_exclusions",
    # Scoring
    "calculate_score",
    "share_text",
)

from heardle.catalog import ArtistCatalog, StaticCatalog
from heardle.cli import cli
from heardle.config import Config
from heardle.dates import AnchoredDay, DateAnchor
from heardle.errors import (
    AlreadyFinishedError,
    ArtistNotFoundError,
    CatalogUnavailableError,
    EmptyPoolError,
    ErrorKind,
    HeardleError,
    InvalidPuzzleDayError,
    MalformedInputError,
    PoolExhaustedError,
    describe_error,
)
from heardle.itunes import ITunesCatalog, ITunesClient
from heardle.models import Song
from heardle.normalize import GuessNormalizer
from heardle.puzzle import puzzle_day, puzzle_index
from heardle.reveal import (
    DURATION_LADDER_MS,
    MAX_TRIES,
    SKIP_MARKER,
    GuessResult,
    Outcome,
    RevealState,
    RevealStateMachine,
)
from heardle.scoring import calculate_score, share_text
from heardle.selection import DeterministicSelector, ExclusionSampler
from heardle.service import DailyPuzzle, GameSessions, HeardleService, parse_exclusions
