"""
Heardle game service.

Ties the pure components together for an outer layer (CLI, HTTP handler):
anchor the requested date, number the puzzle, fetch the artist pool and pick a
song, then hand out reveal state machines for play.

Usage:
    from heardle.service import HeardleService

    service = HeardleService.from_config(Config.load())
    puzzle = service.daily_song("twice", raw_date="2025-08-19")
    game = service.start_game(puzzle.song)
    game.submit_guess("Dynamite")
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from rapidfuzz import fuzz

from heardle.catalog import ArtistCatalog, StaticCatalog
from heardle.config import Config
from heardle.dates import DateAnchor, seconds_until_next_day
from heardle.errors import CatalogUnavailableError, HeardleError, MalformedInputError
from heardle.itunes import ITunesCatalog, ITunesClient
from heardle.models import Song
from heardle.normalize import GuessNormalizer
from heardle.puzzle import require_puzzle_index
from heardle.reveal import RevealStateMachine
from heardle.safe_logging import sanitize_client_value
from heardle.selection import DeterministicSelector, ExclusionSampler

logger = logging.getLogger(__name__)

MAX_EXCLUSIONS = 1000


def parse_exclusions(raw: str | Iterable[str] | None) -> frozenset[str]:
    """
    Parse a practice exclusion list.

    Accepts the comma-separated query form (``"123,456"``) or an iterable of
    ids. Blank entries are dropped. More than ``MAX_EXCLUSIONS`` entries is
    treated as malformed input.
    """
    if raw is None:
        return frozenset()
    items = raw.split(",") if isinstance(raw, str) else raw
    excluded = frozenset(item.strip() for item in items if item and item.strip())
    if len(excluded) > MAX_EXCLUSIONS:
        raise MalformedInputError(
            f"Too many excluded songs ({len(excluded)} > {MAX_EXCLUSIONS})",
            count=len(excluded),
        )
    return excluded


@dataclass(frozen=True)
class DailyPuzzle:
    """The daily pick for one artist; also the unit recorded for statistics."""

    day: str
    puzzle_index: int
    artist_id: str
    song: Song
    date_fell_back: bool = False

    def record(self) -> dict[str, Any]:
        return {
            "puzzleIndex": self.puzzle_index,
            "songId": self.song.id,
            "day": self.day,
            "artist": self.artist_id,
        }

    def to_dict(self) -> dict[str, Any]:
        return {**self.record(), "song": self.song.to_dict(), "dateFellBack": self.date_fell_back}


def build_catalog(config: Config, snapshot: Path | None = None) -> ArtistCatalog:
    """
    Catalog for a configuration.

    A JSON snapshot wins when given; offline mode without a snapshot serves
    empty pools for the configured artists.
    """
    if snapshot is not None:
        return StaticCatalog.from_json(snapshot)
    if config.offline_mode:
        logger.info("Offline mode: no catalog snapshot given, artist pools are empty")
        return StaticCatalog({artist.id: [] for artist in config.artists})
    return ITunesCatalog(config, ITunesClient.from_config(config))


class HeardleService:
    """
    Entry point for daily and practice play.

    All collaborators are injected; ``clock`` returns the server's current
    time and is the only notion of "now" the service uses.
    """

    def __init__(
        self,
        config: Config,
        catalog: ArtistCatalog,
        selector: DeterministicSelector | None = None,
        sampler: ExclusionSampler | None = None,
        anchor: DateAnchor | None = None,
        normalizer: GuessNormalizer | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.config = config
        self.catalog = catalog
        self.selector = selector or DeterministicSelector(config.game.daily_salt)
        self.sampler = sampler or ExclusionSampler()
        self.anchor = anchor or DateAnchor(
            config.game.date_tolerance_days, earliest=config.game.epoch
        )
        self.normalizer = normalizer or GuessNormalizer()
        self.clock = clock or (lambda: datetime.now(UTC))
        self.sessions = GameSessions()

    @classmethod
    def from_config(cls, config: Config, snapshot: Path | None = None) -> HeardleService:
        return cls(config, build_catalog(config, snapshot))

    def get_pool(self, artist_id: str) -> list[Song]:
        """Artist pool from the catalog; unexpected catalog failures become CatalogUnavailableError."""
        try:
            return self.catalog.get_pool(artist_id)
        except HeardleError:
            raise
        except Exception as e:
            logger.error(f"Catalog failed for {sanitize_client_value(artist_id)!r}: {e}")
            raise CatalogUnavailableError(
                f"Catalog unavailable for {artist_id}", artist=artist_id
            ) from e

    def daily_song(self, artist_id: str, raw_date: str | None = None) -> DailyPuzzle:
        """
        Today's song for an artist.

        ``raw_date`` is the client's idea of today; it is honoured only within
        the configured tolerance of the server's UTC day.
        """
        anchored = self.anchor.normalize(raw_date, self.clock())
        index = require_puzzle_index(anchored.day, self.config.game.epoch)
        song = self.selector.select_daily(self.get_pool(artist_id), index)
        logger.info(f"Daily puzzle #{index} ({anchored.day}) for {artist_id}: {song.id}")
        return DailyPuzzle(
            day=anchored.day,
            puzzle_index=index,
            artist_id=artist_id,
            song=song,
            date_fell_back=anchored.fell_back,
        )

    def practice_song(self, artist_id: str, exclude: str | Iterable[str] | None = None) -> Song:
        excluded = parse_exclusions(exclude)
        song = self.sampler.select_practice(self.get_pool(artist_id), excluded)
        logger.debug(f"Practice song for {artist_id} ({len(excluded)} excluded): {song.id}")
        return song

    def start_game(self, song: Song, session_key: str | None = None) -> RevealStateMachine:
        """New game for ``song``, registered under ``session_key`` when one is given."""
        game = RevealStateMachine(song, self.normalizer)
        if session_key is not None:
            self.sessions.start(session_key, game)
        return game

    def suggest_titles(self, artist_id: str, query: str, limit: int = 10) -> list[Song]:
        """
        Autocomplete song titles for the guess input.

        Songs whose normalized title contains the normalized query, best
        ``partial_ratio`` first. Only a typing aid; guesses are judged by
        ``GuessNormalizer.titles_match``.
        """
        needle = self.normalizer.normalize_guess(query)
        if not needle:
            return []

        scored = []
        for song in self.get_pool(artist_id):
            title = self.normalizer.normalize_guess(song.name)
            if needle in title:
                scored.append((fuzz.partial_ratio(needle, title), -len(title), song))

        scored.sort(key=lambda item: (item[0], item[1]), reverse=True)
        return [song for _, _, song in scored[:limit]]

    def seconds_until_next_puzzle(self) -> int:
        return seconds_until_next_day(self.clock())

    def close(self) -> None:
        """Release the catalog's HTTP client, if it has one."""
        close = getattr(self.catalog, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> HeardleService:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class GameSessions:
    """
    Registry of running games, one RevealStateMachine per session key.

    The registry lock only guards the mapping; each machine serializes its own
    transitions.
    """

    def __init__(self) -> None:
        self._games: dict[str, RevealStateMachine] = {}
        self._lock = threading.Lock()

    def start(self, session_key: str, machine: RevealStateMachine) -> RevealStateMachine:
        """Register ``machine`` for the session, replacing any previous game."""
        with self._lock:
            self._games[session_key] = machine
        return machine

    def get(self, session_key: str) -> RevealStateMachine | None:
        with self._lock:
            return self._games.get(session_key)

    def end(self, session_key: str) -> RevealStateMachine | None:
        with self._lock:
            return self._games.pop(session_key, None)

    def prune_finished(self) -> int:
        """Drop finished games and return how many were dropped."""
        with self._lock:
            finished = [key for key, game in self._games.items() if game.state.is_over]
            for key in finished:
                del self._games[key]
        return len(finished)

    def __len__(self) -> int:
        with self._lock:
            return len(self._games)
