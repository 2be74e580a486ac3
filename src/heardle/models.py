from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Song:
    """
    A playable catalog track.

    Owned by the catalog; the game core only reads it. ``to_dict`` produces the
    camelCase wire shape served to clients.
    """

    id: str
    name: str
    artists: tuple[str, ...]
    album: str
    preview_url: str
    duration: int
    track_url: str
    artwork_url: str
    track_id: int

    def __post_init__(self) -> None:
        # Callers often hand in a list; keep the dataclass hashable.
        if not isinstance(self.artists, tuple):
            object.__setattr__(self, "artists", tuple(self.artists))

    @property
    def primary_artist(self) -> str:
        return self.artists[0] if self.artists else ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "artists": list(self.artists),
            "album": self.album,
            "previewUrl": self.preview_url,
            "duration": self.duration,
            "trackUrl": self.track_url,
            "artworkUrl": self.artwork_url,
            "trackId": self.track_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Song:
        """Build a Song from its wire form (``itunesUrl`` is accepted for ``trackUrl``)."""
        artists = data.get("artists") or ()
        if isinstance(artists, str):
            artists = (artists,)
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            artists=tuple(str(a) for a in artists),
            album=str(data.get("album", "")),
            preview_url=str(data.get("previewUrl", "")),
            duration=int(data.get("duration") or 0),
            track_url=str(data.get("trackUrl") or data.get("itunesUrl") or ""),
            artwork_url=str(data.get("artworkUrl", "")),
            track_id=int(data.get("trackId") or 0),
        )


ArtistPool = Sequence[Song]
