# core/resolver.py
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import requests

from . import itunes_lookup
from .cleaning import clean_artist, clean_for_scrobble, clean_title, split_artists
from .image_upload import ImageUploader
from .lastfm import PLACEHOLDER_IMAGE_HASH, LastFMClient, LastFMError
from .models import Enrichment, Track

log = logging.getLogger(__name__)

CACHE_CAPACITY = 100
LASTFM_SEARCH_LIMIT = 30


@dataclass
class CacheEntry:
    enrichment: Enrichment
    access_time: float


def cache_key(track: Track) -> str:
    return f"{track.raw_artist}|{track.raw_title}".lower()


class EnrichmentCache:
    """LRU: a hit moves the entry to the back, eviction pops the front."""

    def __init__(self, capacity: int = CACHE_CAPACITY, clock: Callable[[], float] = time.time):
        self.capacity = capacity
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[Enrichment]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        entry.access_time = self._clock()
        self._entries.move_to_end(key)
        return entry.enrichment

    def put(self, key: str, enrichment: Enrichment) -> Optional[str]:
        """Store `enrichment`; returns the evicted key, if any."""
        evicted = None
        if key not in self._entries and len(self._entries) >= self.capacity:
            evicted, _ = self._entries.popitem(last=False)
        self._entries[key] = CacheEntry(enrichment, self._clock())
        self._entries.move_to_end(key)
        return evicted

    def access_times(self) -> Dict[str, float]:
        return {k: e.access_time for k, e in self._entries.items()}


class MetadataResolver:
    """
    Artwork, storefront link and scrobble-safe names for a track.

    Lookup order: cache, thumbnail upload, iTunes search, Last.fm album art,
    Last.fm track search, string cleaning. A storefront search link is
    synthesised when iTunes found nothing, so external_url is never empty.
    """

    def __init__(
        self,
        session: requests.Session,
        uploader: Optional[ImageUploader] = None,
        lookup_client: Optional[LastFMClient] = None,
        cache: Optional[EnrichmentCache] = None,
    ):
        self.session = session
        self.uploader = uploader or ImageUploader(session)
        self.lookup_client = lookup_client
        self.cache = cache if cache is not None else EnrichmentCache()

    def resolve(self, track: Track) -> Enrichment:
        key = cache_key(track)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        search_artist = clean_artist(track.raw_artist)
        search_title = clean_title(track.raw_title)

        art_url = self.uploader.upload(track.thumbnail)

        external_url = None
        scrobble_names: Optional[Tuple[str, str]] = None
        fallback_names: Optional[Tuple[str, str]] = None

        results = itunes_lookup.search_songs(self.session, f"{search_artist} {search_title}")
        log.debug("iTunes search: '%s - %s' returned %d results", search_artist, search_title, len(results))
        if results:
            match, score = itunes_lookup.pick_best(results, search_artist, search_title)
            names = (match.get("artistName") or "", match.get("trackName") or "")
            external_url = match.get("trackViewUrl") or None
            if score >= itunes_lookup.CONFIDENT_SCORE:
                scrobble_names = names if all(names) else None
            else:
                log.debug("  Low confidence match (score %d), kept as fallback", score)
                fallback_names = names if all(names) else None
            if not art_url:
                art_url = itunes_lookup.upgrade_artwork_url(match.get("artworkUrl100")) or None

        if not art_url:
            art_url = self._lastfm_album_art(track.raw_artist, track.raw_title)

        if scrobble_names is None:
            scrobble_names = self._lastfm_search(search_artist, search_title)

        if scrobble_names is None:
            scrobble_names = fallback_names

        if scrobble_names is None:
            scrobble_names = clean_for_scrobble(track.raw_artist, track.raw_title)
            log.debug("All lookups failed, using cleaned: %s - %s", *scrobble_names)

        if not external_url:
            external_url = itunes_lookup.apple_music_search_url(search_title, search_artist)
            log.debug("Using Apple Music search URL fallback")

        enrichment = Enrichment(
            artwork_url=art_url,
            external_url=external_url,
            scrobble_artist=scrobble_names[0],
            scrobble_title=scrobble_names[1],
        )
        evicted = self.cache.put(key, enrichment)
        if evicted:
            log.debug("Evicted '%s' from the artwork cache", evicted)
        return enrichment

    def _lastfm_album_art(self, artist: str, title: str) -> Optional[str]:
        if self.lookup_client is None:
            return None
        try:
            images = self.lookup_client.track_get_info(artist, title)
        except (LastFMError, requests.RequestException, ValueError) as e:
            log.info("Last.fm track.getInfo failed: %s", e)
            return None
        # Images come smallest first
        for image in reversed(images):
            url = image.get("#text") or ""
            if url and PLACEHOLDER_IMAGE_HASH not in url:
                return url
        return None

    def _lastfm_search(self, artist: str, title: str) -> Optional[Tuple[str, str]]:
        if self.lookup_client is None:
            return None
        artists = split_artists(artist)
        title_lower = title.lower()
        try:
            matches = self.lookup_client.track_search(title, limit=LASTFM_SEARCH_LIMIT)
        except (LastFMError, requests.RequestException, ValueError) as e:
            log.info("Last.fm search fallback failed: %s", e)
            return None

        log.debug("Last.fm search for '%s' returned %d results", title, len(matches))
        best, best_listeners = None, 0
        for m in matches:
            result_artist = m["artist"].lower()
            result_title = m["name"].lower()
            if not result_artist or not result_title:
                continue
            artist_matches = any(a in result_artist or result_artist in a for a in artists)
            title_matches = title_lower in result_title or result_title in title_lower
            if artist_matches and title_matches and m["listeners"] > best_listeners:
                best, best_listeners = m, m["listeners"]

        if best is None:
            return None
        log.debug("Using Last.fm match: %s - %s (%d listeners)", best["artist"], best["name"], best_listeners)
        return best["artist"], best["name"]
