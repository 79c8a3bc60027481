# core/cleaning.py
import re
from typing import List, Tuple

# Apple Music appends the album to the artist as "Artist — Album".
ARTIST_SEPARATOR = " — "

_TITLE_SUFFIXES = (
    re.compile(r"\s*-\s*Single$", re.IGNORECASE),
    re.compile(r"\s*-\s*EP$", re.IGNORECASE),
    re.compile(r"\s*\[Explicit\]$", re.IGNORECASE),
    re.compile(r"\s*\(Explicit\)$", re.IGNORECASE),
)

_SCROBBLE_ARTIST_PATTERNS = (
    re.compile(r"\s*\(feat\..*?\)", re.IGNORECASE),
    re.compile(r"\s*(feat\.|featuring|ft\.)\s*.*", re.IGNORECASE),
)

_SCROBBLE_TITLE_PATTERNS = (
    re.compile(r"\s*\(feat\.[^)]*\)", re.IGNORECASE),
    re.compile(r"\s*-\s*(Single|EP)$", re.IGNORECASE),
    re.compile(r"\s*\[(Explicit|Clean)\]$", re.IGNORECASE),
    re.compile(r"\s*\((Explicit|Clean)\)$", re.IGNORECASE),
    re.compile(r"\s*-\s*Remastered.*$", re.IGNORECASE),
    re.compile(r"\s*\(Remastered.*?\)$", re.IGNORECASE),
)

_COLLABORATION_SPLIT = re.compile(r" & |, | x | X ")


def clean_title(title: str) -> str:
    if not title:
        return title or ""
    for pattern in _TITLE_SUFFIXES:
        title = pattern.sub("", title)
    return title.strip()


def clean_artist(artist: str) -> str:
    if not artist:
        return artist or ""
    idx = artist.find(ARTIST_SEPARATOR)
    if idx > 0:
        return artist[:idx].strip()
    return artist.strip()


def clean_for_scrobble(raw_artist: str, raw_title: str) -> Tuple[str, str]:
    """
    Last-resort scrobble names when no catalog recognised the track:
    drops featuring clauses, the album suffix and edition markers.
    """
    artist = raw_artist or ""
    title = raw_title or ""

    for pattern in _SCROBBLE_ARTIST_PATTERNS:
        artist = pattern.sub("", artist)
    idx = artist.find(ARTIST_SEPARATOR)
    if idx > 0:
        artist = artist[:idx]

    for pattern in _SCROBBLE_TITLE_PATTERNS:
        title = pattern.sub("", title)

    return artist.strip(), title.strip()


def split_artists(artist: str) -> List[str]:
    """'A & B, C x D' -> ['a', 'b', 'c', 'd']"""
    parts = _COLLABORATION_SPLIT.split(artist or "")
    return [p.strip().lower() for p in parts if p.strip()]
