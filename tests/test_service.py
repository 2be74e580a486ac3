"""Tests for the game service: daily and practice flows end to end."""

from __future__ import annotations

import random
import threading
from datetime import UTC, datetime

import pytest

from heardle.catalog import StaticCatalog
from heardle.config import Config
from heardle.errors import (
    ArtistNotFoundError,
    CatalogUnavailableError,
    EmptyPoolError,
    ErrorKind,
    InvalidPuzzleDayError,
    MalformedInputError,
    PoolExhaustedError,
    describe_error,
)
from heardle.models import Song
from heardle.reveal import Outcome
from heardle.selection import ExclusionSampler
from heardle.service import (
    MAX_EXCLUSIONS,
    GameSessions,
    HeardleService,
    build_catalog,
    parse_exclusions,
)


class _BrokenCatalog:
    def get_pool(self, artist_id: str) -> list[Song]:
        raise OSError("disk on fire")


class TestDailySong:
    def test_puzzle_number_and_day(self, service: HeardleService):
        puzzle = service.daily_song("twice")
        assert puzzle.day == "2025-08-19"
        assert puzzle.puzzle_index == 3
        assert puzzle.date_fell_back is False

    def test_same_day_same_song(self, service: HeardleService):
        assert service.daily_song("twice").song.id == service.daily_song("TWICE").song.id

    def test_client_date_within_tolerance(self, service: HeardleService):
        puzzle = service.daily_song("twice", raw_date="2025-08-20")
        assert puzzle.day == "2025-08-20"
        assert puzzle.puzzle_index == 4

    def test_far_future_date_falls_back(self, service: HeardleService):
        puzzle = service.daily_song("twice", raw_date="2099-01-01")
        assert puzzle.date_fell_back is True
        assert puzzle.day == "2025-08-19"
        assert puzzle.song.id == service.daily_song("twice").song.id

    def test_record(self, service: HeardleService):
        puzzle = service.daily_song("twice")
        assert puzzle.record() == {
            "puzzleIndex": 3,
            "songId": puzzle.song.id,
            "day": "2025-08-19",
            "artist": "twice",
        }
        assert puzzle.to_dict()["song"]["previewUrl"] == puzzle.song.preview_url

    def test_empty_pool(self, service: HeardleService):
        with pytest.raises(EmptyPoolError):
            service.daily_song("le-sserafim")

    def test_unknown_artist(self, service: HeardleService):
        with pytest.raises(ArtistNotFoundError) as excinfo:
            service.daily_song("blackpink")
        assert describe_error(excinfo.value).status == 404

    def test_before_epoch(self, static_catalog: StaticCatalog):
        service = HeardleService(
            Config(), static_catalog, clock=lambda: datetime(2025, 8, 1, tzinfo=UTC)
        )
        with pytest.raises(InvalidPuzzleDayError):
            service.daily_song("twice")

    def test_client_day_before_epoch_falls_back(self, static_catalog: StaticCatalog):
        # Epoch day, client still on the previous day
        service = HeardleService(
            Config(), static_catalog, clock=lambda: datetime(2025, 8, 17, 3, tzinfo=UTC)
        )
        puzzle = service.daily_song("twice", raw_date="2025-08-16")
        assert puzzle.day == "2025-08-17"
        assert puzzle.puzzle_index == 1
        assert puzzle.date_fell_back is True

    def test_catalog_failure_is_typed(self):
        service = HeardleService(Config(), _BrokenCatalog())
        with pytest.raises(CatalogUnavailableError) as excinfo:
            service.daily_song("twice")
        assert excinfo.value.kind == ErrorKind.CATALOG_UNAVAILABLE
        assert isinstance(excinfo.value.__cause__, OSError)

    def test_seconds_until_next_puzzle(self, service: HeardleService):
        assert service.seconds_until_next_puzzle() == 12 * 3600


class TestPracticeSong:
    def test_comma_separated_exclusions(self, service: HeardleService, twice_songs: list[Song]):
        keep = twice_songs[4]
        exclude = ",".join(str(s.track_id) for s in twice_songs if s is not keep)
        assert service.practice_song("twice", exclude).id == keep.id

    def test_exhausted(self, service: HeardleService, twice_songs: list[Song]):
        with pytest.raises(PoolExhaustedError):
            service.practice_song("twice", [s.id for s in twice_songs])

    def test_empty_pool_is_exhausted(self, service: HeardleService):
        with pytest.raises(PoolExhaustedError):
            service.practice_song("le-sserafim")

    def test_practice_session_plays_every_song_once(
        self, service: HeardleService, twice_songs: list[Song]
    ):
        played: list[str] = []
        for _ in twice_songs:
            played.append(service.practice_song("twice", played).id)
        assert sorted(played) == sorted(s.id for s in twice_songs)


class TestParseExclusions:
    def test_blank_entries_dropped(self):
        assert parse_exclusions(" 1, ,2,,3 ") == {"1", "2", "3"}

    def test_none_and_empty(self):
        assert parse_exclusions(None) == frozenset()
        assert parse_exclusions("") == frozenset()

    def test_iterable(self):
        assert parse_exclusions(["itunes-1", " ", "itunes-2"]) == {"itunes-1", "itunes-2"}

    def test_too_many(self):
        raw = ",".join(str(i) for i in range(MAX_EXCLUSIONS + 1))
        with pytest.raises(MalformedInputError) as excinfo:
            parse_exclusions(raw)
        assert excinfo.value.status == 400


class TestGame:
    def test_daily_game_flow(self, service: HeardleService):
        puzzle = service.daily_song("twice")
        game = service.start_game(puzzle.song)

        game.skip()
        result = game.submit_guess(puzzle.song.name.lower())

        assert result.correct
        assert game.state.outcome == Outcome.SOLVED

    def test_suggest_titles(self, service: HeardleService):
        titles = [song.name for song in service.suggest_titles("twice", "ch")]
        assert titles == ["CHEER UP"]

    def test_suggest_titles_ranked_and_limited(self, service: HeardleService):
        titles = [song.name for song in service.suggest_titles("twice", "t", limit=3)]
        assert len(titles) == 3
        assert titles[0] == "TT"

    def test_suggest_blank_query(self, service: HeardleService):
        assert service.suggest_titles("twice", "  ?! ") == []


class TestGameSessions:
    def test_start_get_end(self, service: HeardleService, dynamite: Song):
        sessions = GameSessions()
        game = sessions.start("abc", service.start_game(dynamite))

        assert sessions.get("abc") is game
        assert len(sessions) == 1
        assert sessions.end("abc") is game
        assert sessions.get("abc") is None

    def test_prune_finished(self, service: HeardleService, dynamite: Song):
        sessions = GameSessions()
        sessions.start("won", service.start_game(dynamite)).submit_guess("dynamite")
        sessions.start("playing", service.start_game(dynamite))

        assert sessions.prune_finished() == 1
        assert sessions.get("playing") is not None

    def test_concurrent_starts(self, service: HeardleService, dynamite: Song):
        sessions = GameSessions()

        def start(i: int) -> None:
            sessions.start(f"s{i}", service.start_game(dynamite))

        threads = [threading.Thread(target=start, args=(i,)) for i in range(50)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(sessions) == 50

    def test_service_registers_keyed_games(self, service: HeardleService, dynamite: Song):
        game = service.start_game(dynamite, session_key="bts:practice")
        assert service.sessions.get("bts:practice") is game

        service.start_game(dynamite)
        assert len(service.sessions) == 1


class _ClosingCatalog(StaticCatalog):
    closed = False

    def close(self) -> None:
        self.closed = True


def test_service_context_closes_catalog():
    catalog = _ClosingCatalog()
    with HeardleService(Config(), catalog):
        pass
    assert catalog.closed


def test_service_close_without_catalog_close(static_catalog: StaticCatalog):
    HeardleService(Config(), static_catalog).close()


class TestBuildCatalog:
    def test_snapshot_wins(self, catalog_snapshot, twice_songs: list[Song]):
        catalog = build_catalog(Config(), catalog_snapshot)
        assert catalog.get_pool("twice") == twice_songs

    def test_offline_without_snapshot(self):
        catalog = build_catalog(Config(offline_mode=True))
        assert catalog.get_pool("twice") == []

    def test_service_from_snapshot(self, catalog_snapshot):
        service = HeardleService.from_config(Config(), catalog_snapshot)
        service.sampler = ExclusionSampler(random.Random(0))
        assert service.practice_song("twice").artists == ("TWICE",)

    @pytest.mark.parametrize(
        "content",
        [
            '{"twice": [{"name": "TT"}]}',
            '{"twice": 5}',
            '{"twice": [5]}',
            '{"twice": [{"id": "x", "name": "TT", "trackId": "abc"}]}',
        ],
    )
    def test_malformed_snapshot(self, tmp_path, content: str):
        path = tmp_path / "broken.json"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(CatalogUnavailableError):
            build_catalog(Config(), path)
