import logging
import re
import urllib.parse
from typing import List, Optional, Tuple

import requests

from .http import REQUEST_TIMEOUT

log = logging.getLogger(__name__)

ITUNES_SEARCH_URL = "https://itunes.apple.com/search"
APPLE_MUSIC_SEARCH_URL = "https://music.apple.com/search"

# A candidate scoring at least this much is trusted for scrobbling.
CONFIDENT_SCORE = 100


def apple_music_search_url(title: str, artist: str) -> str:
    q = urllib.parse.quote_plus(f"{artist} {title}".strip())
    return f"{APPLE_MUSIC_SEARCH_URL}?term={q}"


def upgrade_artwork_url(url: Optional[str]) -> Optional[str]:
    """iTunes serves 100x100 thumbnails; the same path serves 512x512."""
    if not url:
        return url
    return re.sub(r"/\d+x\d+bb", "/512x512bb", url)


def search_songs(session: requests.Session, term: str, limit: int = 10) -> List[dict]:
    params = {"term": term, "media": "music", "entity": "song", "limit": limit}
    try:
        r = session.get(ITUNES_SEARCH_URL, params=params, timeout=REQUEST_TIMEOUT)
        r.raise_for_status()
        data = r.json()
    except (requests.RequestException, ValueError) as e:
        log.info("iTunes search failed for '%s': %s", term, e)
        return []
    results = data.get("results", []) if isinstance(data, dict) else []
    return [item for item in results if isinstance(item, dict)]


def score_candidate(item: dict, artist: str, title: str) -> int:
    result_artist = (item.get("artistName") or "").lower()
    result_track = (item.get("trackName") or "").lower()
    artist = artist.lower()
    title = title.lower()

    score = 0
    if result_artist == artist:
        score += 100
    elif result_artist and artist and (artist in result_artist or result_artist in artist):
        score += 50

    if result_track == title:
        score += 100
    elif result_track and title and (title in result_track or result_track in title):
        score += 50

    if "remix" in title and "remix" in result_track:
        score += 25
    if "live" in title and "live" in result_track:
        score += 25

    return score


def pick_best(results: List[dict], artist: str, title: str) -> Tuple[Optional[dict], int]:
    """Highest-scoring candidate; the first result stands in when nothing scores."""
    best, best_score = None, 0
    for item in results:
        score = score_candidate(item, artist, title)
        if score > best_score:
            best, best_score = item, score
            log.debug("  Better match (score %d): %s - %s",
                      score, item.get("artistName"), item.get("trackName"))
    if best is None and results:
        best = results[0]
    return best, best_score
