"""Pytest configuration and shared fixtures for heardle tests."""

from __future__ import annotations

import os
import random
from datetime import UTC, datetime

import pytest

from heardle.catalog import StaticCatalog
from heardle.config import Config
from heardle.models import Song
from heardle.selection import ExclusionSampler
from heardle.service import HeardleService

# =============================================================================
# Song Fixtures
# =============================================================================


def make_song(track_id: int, name: str, artist: str = "TWICE") -> Song:
    """Build a catalog song in the shape the iTunes catalog produces."""
    return Song(
        id=f"itunes-{track_id}",
        name=name,
        artists=(artist,),
        album=f"{name} - Single",
        preview_url=f"https://audio.example.com/{track_id}.m4a",
        duration=200_000,
        track_url=f"https://music.apple.com/us/album/{track_id}",
        artwork_url=f"https://art.example.com/{track_id}/300x300bb.jpg",
        track_id=track_id,
    )


TWICE_TITLES = [
    "Like OOH-AHH",
    "CHEER UP",
    "TT",
    "KNOCK KNOCK",
    "SIGNAL",
    "What is Love?",
    "FANCY",
    "Feel Special",
    "MORE & MORE",
    "I CAN'T STOP ME",
]


@pytest.fixture
def twice_songs() -> list[Song]:
    return [make_song(1000 + i, title) for i, title in enumerate(TWICE_TITLES)]


@pytest.fixture
def dynamite() -> Song:
    return make_song(1530000000, "Dynamite", artist="BTS")


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def static_catalog(twice_songs: list[Song]) -> StaticCatalog:
    return StaticCatalog({"twice": twice_songs, "le-sserafim": []})


@pytest.fixture
def server_now() -> datetime:
    """Fixed server clock: 2025-08-19 12:00 UTC, puzzle #3."""
    return datetime(2025, 8, 19, 12, 0, tzinfo=UTC)


@pytest.fixture
def service(static_catalog: StaticCatalog, server_now: datetime) -> HeardleService:
    return HeardleService(
        Config(),
        static_catalog,
        sampler=ExclusionSampler(random.Random(7)),
        clock=lambda: server_now,
    )


@pytest.fixture
def catalog_snapshot(tmp_path, static_catalog: StaticCatalog):
    """JSON catalog snapshot on disk, for CLI tests."""
    path = tmp_path / "catalog.json"
    static_catalog.write_json(path)
    return path


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep developer HEARDLE_* settings out of the tests."""
    for key in list(os.environ):
        if key.startswith("HEARDLE_") or key == "NEXT_PUBLIC_HEARDLE_START_DATE_UTC":
            monkeypatch.delenv(key, raising=False)
