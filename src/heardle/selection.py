"""Song selection for daily and practice play.

Daily selection is a pure function of the pool contents and the puzzle index:
the pool is put into a stable order keyed on track id, and the index is hashed
with SHA-256 to an offset. Hashing (instead of ``index % len(pool)``) keeps
consecutive days from walking the pool in a visible cycle.

Known non-stability window: the song for a given index only stays the same
while the pool does. When the catalog adds or drops a song, the mapping for
every index may change. ``pool_fingerprint`` identifies the pool a selection
was made from.
"""

from __future__ import annotations

import hashlib
import logging
import random
from collections.abc import Collection, Sequence

from heardle.errors import EmptyPoolError, PoolExhaustedError
from heardle.models import Song

logger = logging.getLogger(__name__)

DEFAULT_DAILY_SALT = "heardle-daily"


def stable_order(pool: Sequence[Song]) -> list[Song]:
    """Order a pool independently of fetch order (by track id, then song id)."""
    return sorted(pool, key=lambda song: (song.track_id, song.id))


def pool_fingerprint(pool: Sequence[Song], length: int = 12) -> str:
    """Short hash of the pool membership, independent of ordering."""
    ids = "\n".join(song.id for song in stable_order(pool))
    return hashlib.sha256(ids.encode()).hexdigest()[:length]


class DeterministicSelector:
    """
    Picks the daily song for a puzzle index.

    Args:
        salt: Mixed into the hash; changing it reshuffles every day's song.
    """

    def __init__(self, salt: str = DEFAULT_DAILY_SALT):
        self.salt = salt

    def offset(self, index: int, pool_size: int) -> int:
        """Position in the stably ordered pool for ``index``."""
        digest = hashlib.sha256(f"{self.salt}:{index}".encode()).digest()
        return int.from_bytes(digest[:8], "big") % pool_size

    def select_daily(self, pool: Sequence[Song], index: int) -> Song:
        if not pool:
            raise EmptyPoolError("No songs available for the daily puzzle", index=index)

        ordered = stable_order(pool)
        position = self.offset(index, len(ordered))
        song = ordered[position]
        logger.debug(
            f"Daily puzzle {index}: position {position}/{len(ordered)} "
            f"(pool {pool_fingerprint(ordered)}) -> {song.id}"
        )
        return song


class ExclusionSampler:
    """
    Picks a random practice song the player has not heard yet.

    A song is excluded when either its ``id`` or its ``track_id`` (as a string)
    is in the exclusion set. No reproducibility is promised here.

    Args:
        rng: Random source; a fresh, OS-seeded ``random.Random`` by default.
    """

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def candidates(self, pool: Sequence[Song], excluded: Collection[str]) -> list[Song]:
        return [
            song
            for song in pool
            if song.id not in excluded and str(song.track_id) not in excluded
        ]

    def select_practice(self, pool: Sequence[Song], excluded: Collection[str] = ()) -> Song:
        available = self.candidates(pool, excluded)
        if not available:
            raise PoolExhaustedError(
                "All songs have already been played in this practice session",
                pool_size=len(pool),
                excluded=len(excluded),
            )
        return self.rng.choice(available)
