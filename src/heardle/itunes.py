"""
iTunes Search API catalog.

Builds an artist's song pool from the public iTunes lookup and search
endpoints: looks the artist up by id, searches by each configured search term,
keeps playable songs by that artist, drops alternate versions and collapses
duplicates. Responses are cached on disk and requests throttled.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Callable, Iterable
from typing import Any

import httpx

from heardle.catalog import dedupe_by_id
from heardle.config import ArtistConfig, Config
from heardle.errors import ArtistNotFoundError, CatalogUnavailableError
from heardle.http_cache import ResponseCache, cache_key_for
from heardle.models import Song
from heardle.normalize import GuessNormalizer
from heardle.rate_limiter import TokenBucket

logger = logging.getLogger(__name__)


def track_to_song(track: dict[str, Any]) -> Song:
    """Convert an iTunes track result to a Song (artwork upscaled to 300x300)."""
    track_id = int(track["trackId"])
    artwork = track.get("artworkUrl100") or ""
    return Song(
        id=f"itunes-{track_id}",
        name=track.get("trackName") or "Unknown Track",
        artists=(track.get("artistName") or "Unknown Artist",),
        album=track.get("collectionName") or "Unknown Album",
        preview_url=track.get("previewUrl") or "",
        duration=int(track.get("trackTimeMillis") or 0),
        track_url=track.get("trackViewUrl") or "",
        artwork_url=artwork.replace("100x100", "300x300"),
        track_id=track_id,
    )


class ITunesClient:
    """
    Thin client for the iTunes lookup and search endpoints.

    Uses an optional response cache and token bucket; any transport, HTTP or
    decoding failure surfaces as CatalogUnavailableError.
    """

    def __init__(
        self,
        base_url: str = "https://itunes.apple.com",
        country: str = "us",
        timeout_s: float = 15.0,
        cache: ResponseCache | None = None,
        limiter: TokenBucket | None = None,
        client: httpx.Client | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.country = country
        self.cache = cache
        self.limiter = limiter
        self._client = client or httpx.Client(timeout=timeout_s)

    @classmethod
    def from_config(cls, config: Config) -> ITunesClient:
        cache = None
        if config.http_cache.enabled:
            cache = ResponseCache(config.http_cache.directory, config.http_cache.ttl_seconds)
        return cls(
            base_url=config.catalog.itunes_base_url,
            country=config.catalog.country,
            timeout_s=config.catalog.timeout_s,
            cache=cache,
            limiter=TokenBucket.per_minute(config.catalog.rate_limit_per_minute),
        )

    def _request(self, endpoint: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        url = f"{self.base_url}/{endpoint}"
        key = cache_key_for(url, params)

        if self.cache:
            cached = self.cache.get_json(key)
            if cached is not None:
                logger.debug(f"Cache hit for {key}")
                return cached.get("results", [])

        if self.limiter:
            self.limiter.acquire()

        try:
            response = self._client.get(url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise CatalogUnavailableError(f"iTunes {endpoint} request failed: {e}") from e
        except ValueError as e:
            raise CatalogUnavailableError(f"iTunes {endpoint} returned invalid JSON") from e

        if not isinstance(payload, dict) or not isinstance(payload.get("results"), list):
            raise CatalogUnavailableError(f"iTunes {endpoint} returned an unexpected payload")

        if self.cache:
            self.cache.put_json(key, payload)
        return payload["results"]

    def lookup_artist_songs(self, artist_id: str, limit: int = 200) -> list[dict[str, Any]]:
        """Songs of an iTunes artist id (the first result is the artist itself)."""
        return self._request(
            "lookup",
            {"id": artist_id, "entity": "song", "limit": limit, "country": self.country},
        )

    def search(self, term: str, limit: int = 200) -> list[dict[str, Any]]:
        return self._request(
            "search",
            {
                "term": term,
                "entity": "song",
                "media": "music",
                "attribute": "artistTerm",
                "limit": limit,
                "country": self.country,
            },
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ITunesClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ITunesCatalog:
    """
    ArtistCatalog backed by the iTunes Search API.

    Pools are fetched once per artist and kept in memory until ``refresh``.
    """

    def __init__(
        self,
        config: Config,
        client: ITunesClient,
        normalizer: GuessNormalizer | None = None,
    ):
        self.config = config
        self.client = client
        self.normalizer = normalizer or GuessNormalizer()
        self._pools: dict[str, list[Song]] = {}
        # Guards the two dicts; fetches only hold their artist's lock
        self._lock = threading.Lock()
        self._artist_locks: dict[str, threading.Lock] = {}

    def get_pool(self, artist_id: str) -> list[Song]:
        artist = self.config.get_artist(artist_id)
        if artist is None:
            raise ArtistNotFoundError(f"Unknown artist: {artist_id}", artist=artist_id)

        with self._artist_lock(artist.id):
            with self._lock:
                pool = self._pools.get(artist.id)
            if pool is None:
                pool = self._fetch_pool(artist)
                with self._lock:
                    self._pools[artist.id] = pool
        return list(pool)

    def refresh(self, artist_id: str) -> None:
        """Forget the cached pool so the next ``get_pool`` fetches again."""
        artist = self.config.get_artist(artist_id)
        with self._lock:
            self._pools.pop(artist.id if artist else artist_id, None)

    def close(self) -> None:
        self.client.close()

    def _artist_lock(self, artist_id: str) -> threading.Lock:
        with self._lock:
            return self._artist_locks.setdefault(artist_id, threading.Lock())

    def _fetch_pool(self, artist: ArtistConfig) -> list[Song]:
        limit = self.config.catalog.limit
        requests: list[tuple[str, Callable[[str, int], list[dict[str, Any]]], str]] = []
        if artist.itunes_artist_id:
            requests.append(("lookup", self.client.lookup_artist_songs, artist.itunes_artist_id))
        for term in artist.terms:
            requests.append(("search", self.client.search, term))

        tracks: list[dict[str, Any]] = []
        failures: list[CatalogUnavailableError] = []
        for kind, call, arg in requests:
            label = f"{kind} {arg!r}"
            try:
                results = call(arg, limit)
            except CatalogUnavailableError as e:
                logger.warning(f"{artist.display_name}: {label} failed: {e}")
                failures.append(e)
                continue
            logger.debug(f"{artist.display_name}: {label} returned {len(results)} results")
            tracks.extend(results)

        if failures and len(failures) == len(requests):
            raise CatalogUnavailableError(
                f"Catalog unavailable for {artist.display_name}", artist=artist.id
            ) from failures[-1]

        pool = self.build_pool(artist, tracks)
        logger.info(f"{artist.display_name}: {len(tracks)} results -> {len(pool)} playable songs")
        return pool

    def build_pool(self, artist: ArtistConfig, tracks: Iterable[dict[str, Any]]) -> list[Song]:
        """Filter raw iTunes results down to a deduplicated pool of clean songs."""
        songs = [track_to_song(t) for t in tracks if self._is_playable(artist, t)]
        songs = dedupe_by_id(songs)

        # One song per title: prefer the shortest title, then the oldest track id
        by_key: dict[str, Song] = {}
        for song in sorted(songs, key=lambda s: (len(s.name), s.track_id)):
            key = self.normalizer.title_info(song.name).key or song.id
            by_key.setdefault(key, song)
        return sorted(by_key.values(), key=lambda s: s.track_id)

    def _is_playable(self, artist: ArtistConfig, track: dict[str, Any]) -> bool:
        if track.get("wrapperType", "track") != "track" or track.get("kind", "song") != "song":
            return False
        name = track.get("trackName")
        if not track.get("trackId") or not name:
            return False
        if self.config.catalog.require_preview and not track.get("previewUrl"):
            return False
        if not self._by_artist(artist, track):
            return False
        if "[" in name or self.normalizer.title_info(name).is_alternate_version:
            return False
        album = track.get("collectionName") or ""
        return not re.search(r"\([^)]*remix[^)]*\)", album, re.IGNORECASE)

    def _by_artist(self, artist: ArtistConfig, track: dict[str, Any]) -> bool:
        if artist.itunes_artist_id and str(track.get("artistId")) == artist.itunes_artist_id:
            return True
        credited = self.normalizer.normalize_guess(track.get("artistName") or "")
        return any(
            (term_key := self.normalizer.normalize_guess(term)) and term_key in credited
            for term in artist.terms
        )
