# core/models.py
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .cleaning import clean_artist, clean_title


@dataclass
class Track:
    title: str
    artist: str
    album: str
    raw_title: str
    raw_artist: str
    playing: bool
    duration: float
    position: float
    thumbnail: Optional[bytes] = field(default=None, repr=False)
    artwork_url: Optional[str] = None
    external_url: Optional[str] = None
    scrobble_artist: Optional[str] = None
    scrobble_title: Optional[str] = None

    @classmethod
    def from_raw(
        cls,
        raw_title: str,
        raw_artist: str,
        album: str = "",
        duration: float = 0.0,
        position: float = 0.0,
        playing: bool = True,
        thumbnail: Optional[bytes] = None,
    ) -> "Track":
        return cls(
            title=clean_title(raw_title),
            artist=clean_artist(raw_artist),
            album=album or "",
            raw_title=raw_title,
            raw_artist=raw_artist,
            playing=playing,
            duration=duration,
            position=position,
            thumbnail=thumbnail or None,
        )

    @property
    def identity(self) -> Tuple[str, str]:
        """Cleaned (title, artist); what decides whether the track changed."""
        return (self.title, self.artist)

    @property
    def track_key(self) -> Tuple[str, str]:
        return (self.raw_artist, self.raw_title)

    @property
    def history_entry(self) -> str:
        return f"{self.artist} — {self.title}"

    def scrobble_names(self) -> Tuple[str, str]:
        return (
            self.scrobble_artist or self.raw_artist,
            self.scrobble_title or self.raw_title,
        )


@dataclass(frozen=True)
class Enrichment:
    artwork_url: Optional[str]
    external_url: Optional[str]
    scrobble_artist: Optional[str]
    scrobble_title: Optional[str]
