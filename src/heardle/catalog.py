"""Artist catalogs: where song pools come from.

The game core only needs ``get_pool(artist_id)``. ``StaticCatalog`` serves
fixed pools (tests, offline play, JSON snapshots); ``heardle.itunes`` provides
the network-backed catalog.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from heardle.errors import ArtistNotFoundError, CatalogUnavailableError
from heardle.models import Song

logger = logging.getLogger(__name__)


@runtime_checkable
class ArtistCatalog(Protocol):
    """Supplies the song pool of one artist."""

    def get_pool(self, artist_id: str) -> list[Song]: ...


def dedupe_by_id(songs: Iterable[Song]) -> list[Song]:
    """Drop repeated song ids, keeping the first occurrence and the order."""
    seen: set[str] = set()
    unique: list[Song] = []
    for song in songs:
        if song.id in seen:
            continue
        seen.add(song.id)
        unique.append(song)
    return unique


class StaticCatalog:
    """In-memory catalog with fixed pools per artist."""

    def __init__(self, pools: Mapping[str, Sequence[Song]] | None = None):
        self._pools: dict[str, list[Song]] = {
            artist_id.lower(): dedupe_by_id(songs) for artist_id, songs in (pools or {}).items()
        }

    def add(self, artist_id: str, songs: Iterable[Song]) -> None:
        key = artist_id.lower()
        self._pools[key] = dedupe_by_id([*self._pools.get(key, []), *songs])

    def artist_ids(self) -> list[str]:
        return sorted(self._pools)

    def get_pool(self, artist_id: str) -> list[Song]:
        try:
            return list(self._pools[artist_id.strip().lower()])
        except KeyError:
            raise ArtistNotFoundError(f"Unknown artist: {artist_id}", artist=artist_id) from None

    @classmethod
    def from_json(cls, path: Path) -> StaticCatalog:
        """
        Load pools from a JSON snapshot.

        Expected shape: ``{"<artist id>": [<song wire dict>, ...], ...}``, as
        written by ``write_json``.
        """
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise CatalogUnavailableError(f"Cannot read catalog snapshot {path.name}: {e}") from e

        if not isinstance(data, dict):
            raise CatalogUnavailableError(f"Catalog snapshot {path.name} is not an object")

        try:
            pools = {
                artist_id: [Song.from_dict(item) for item in items]
                for artist_id, items in data.items()
            }
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise CatalogUnavailableError(
                f"Catalog snapshot {path.name} has a malformed pool: {e!r}"
            ) from e
        logger.info(f"Loaded catalog snapshot with {len(pools)} artists from {path.name}")
        return cls(pools)

    def write_json(self, path: Path) -> None:
        data = {artist_id: [s.to_dict() for s in songs] for artist_id, songs in self._pools.items()}
        path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
