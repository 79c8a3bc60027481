# tests/test_resolver.py
from unittest.mock import MagicMock

import pytest
import requests

from core.lastfm import PLACEHOLDER_IMAGE_HASH, LastFMError
from core.models import Enrichment
from core.resolver import EnrichmentCache, MetadataResolver, cache_key


ITUNES_DRAKE = {
    "artistName": "Drake",
    "trackName": "Jumpman",
    "trackViewUrl": "https://music.apple.com/us/album/jumpman/1?i=2",
    "artworkUrl100": "https://is1.mzstatic.com/image/thumb/x/100x100bb.jpg",
}


@pytest.fixture
def search(mocker):
    return mocker.patch("core.resolver.itunes_lookup.search_songs", return_value=[])


@pytest.fixture
def uploader():
    u = MagicMock()
    u.upload.return_value = None
    return u


@pytest.fixture
def lookup():
    client = MagicMock()
    client.track_get_info.return_value = []
    client.track_search.return_value = []
    return client


@pytest.fixture
def resolver(uploader, lookup):
    return MetadataResolver(MagicMock(), uploader=uploader, lookup_client=lookup)


def test_confident_itunes_match(resolver, search, make_track):
    search.return_value = [ITUNES_DRAKE]
    result = resolver.resolve(make_track(title="Jumpman - Single", artist="Drake — What a Time"))

    assert result == Enrichment(
        artwork_url="https://is1.mzstatic.com/image/thumb/x/512x512bb.jpg",
        external_url=ITUNES_DRAKE["trackViewUrl"],
        scrobble_artist="Drake",
        scrobble_title="Jumpman",
    )
    assert search.call_args.args[1] == "Drake Jumpman"


def test_uploaded_thumbnail_wins_over_catalog_art(resolver, search, uploader, make_track):
    uploader.upload.return_value = "https://files.catbox.moe/cover.jpg"
    search.return_value = [ITUNES_DRAKE]
    result = resolver.resolve(make_track(title="Jumpman", artist="Drake", thumbnail=b"jpeg"))
    assert result.artwork_url == "https://files.catbox.moe/cover.jpg"
    uploader.upload.assert_called_once_with(b"jpeg")


def test_cache_hit_makes_no_network_calls(resolver, search, uploader, lookup, make_track):
    search.return_value = [ITUNES_DRAKE]
    first = resolver.resolve(make_track(title="Jumpman", artist="Drake"))
    search.reset_mock()
    uploader.reset_mock()

    second = resolver.resolve(make_track(title="JUMPMAN", artist="drake", position=50))

    assert second == first
    search.assert_not_called()
    uploader.upload.assert_not_called()


def test_lastfm_album_art_skips_placeholder(resolver, search, lookup, make_track):
    lookup.track_get_info.return_value = [
        {"#text": "https://lastfm/s/real-small.png", "size": "small"},
        {"#text": "https://lastfm/l/real-large.png", "size": "large"},
        {"#text": f"https://lastfm/xl/{PLACEHOLDER_IMAGE_HASH}.png", "size": "extralarge"},
        {"#text": "", "size": "mega"},
    ]
    result = resolver.resolve(make_track(title="Obscure", artist="Nobody"))
    assert result.artwork_url == "https://lastfm/l/real-large.png"
    lookup.track_get_info.assert_called_once_with("Nobody", "Obscure")


def test_low_confidence_match_defers_to_lastfm_search(resolver, search, lookup, make_track):
    search.return_value = [{
        "artistName": "Karaoke Stars", "trackName": "Something Else",
        "trackViewUrl": "https://music.apple.com/karaoke", "artworkUrl100": "",
    }]
    lookup.track_search.return_value = [
        {"artist": "Unrelated", "name": "Jumpman", "listeners": 9_000_000},
        {"artist": "Drake", "name": "Jumpman", "listeners": 1_500_000},
        {"artist": "Drake & Future", "name": "Jumpman", "listeners": 2_000_000},
    ]

    result = resolver.resolve(make_track(title="Jumpman", artist="Drake & Future"))

    assert (result.scrobble_artist, result.scrobble_title) == ("Drake & Future", "Jumpman")
    assert result.external_url == "https://music.apple.com/karaoke"
    lookup.track_search.assert_called_once_with("Jumpman", limit=30)


def test_low_confidence_match_used_when_nothing_better(resolver, search, lookup, make_track):
    search.return_value = [{
        "artistName": "DRAKE feat. X", "trackName": "Something",
        "trackViewUrl": "https://music.apple.com/low", "artworkUrl100": "",
    }]
    result = resolver.resolve(make_track(title="Jumpman Remix", artist="Drake"))
    assert (result.scrobble_artist, result.scrobble_title) == ("DRAKE feat. X", "Something")


def test_everything_failing_falls_back_to_cleaning(resolver, search, lookup, make_track):
    lookup.track_get_info.side_effect = requests.exceptions.Timeout("slow")
    lookup.track_search.side_effect = LastFMError(6, "not found")

    result = resolver.resolve(
        make_track(title="Jumpman (feat. Future) [Explicit]", artist="Drake (feat. Future) — WATTBA")
    )

    assert result.artwork_url is None
    assert (result.scrobble_artist, result.scrobble_title) == ("Drake", "Jumpman")
    assert result.external_url.startswith("https://music.apple.com/search?term=")


def test_without_lookup_client(search, uploader, make_track):
    resolver = MetadataResolver(MagicMock(), uploader=uploader, lookup_client=None)
    result = resolver.resolve(make_track(title="Song - EP", artist="Band"))
    assert (result.scrobble_artist, result.scrobble_title) == ("Band", "Song")
    assert result.external_url == "https://music.apple.com/search?term=Band+Song"


def test_cache_key_is_lowercased_raw_pair(make_track):
    assert cache_key(make_track(title="Song - Single", artist="A — B")) == "a — b|song - single"


def _enrichment(n):
    return Enrichment(None, f"https://x/{n}", "a", str(n))


def test_cache_bounded_to_capacity(clock):
    cache = EnrichmentCache(capacity=100, clock=clock)
    for i in range(100):
        clock.advance(1)
        cache.put(f"k{i}", _enrichment(i))
    assert len(cache) == 100

    clock.advance(1)
    evicted = cache.put("k100", _enrichment(100))
    assert evicted == "k0"
    assert len(cache) == 100


def test_cache_evicts_least_recently_accessed_not_first_inserted(clock):
    cache = EnrichmentCache(capacity=100, clock=clock)
    for i in range(100):
        clock.advance(1)
        cache.put(f"k{i}", _enrichment(i))

    clock.advance(1)
    assert cache.get("k0") is not None
    times = cache.access_times()
    oldest = min(times, key=times.get)
    assert oldest == "k1"

    clock.advance(1)
    assert cache.put("k100", _enrichment(100)) == "k1"
    assert "k0" in cache
    assert "k1" not in cache


def test_resolver_evicts_through_cache(search, uploader, make_track, clock):
    cache = EnrichmentCache(capacity=2, clock=clock)
    resolver = MetadataResolver(MagicMock(), uploader=uploader, cache=cache)
    for title in ("One", "Two"):
        clock.advance(1)
        resolver.resolve(make_track(title=title))
    clock.advance(1)
    resolver.resolve(make_track(title="One"))
    clock.advance(1)
    resolver.resolve(make_track(title="Three"))
    assert "artist|one" in cache
    assert "artist|two" not in cache
    assert len(cache) == 2


def test_lastfm_search_ignores_matches_without_listeners(resolver, search, lookup, make_track):
    lookup.track_search.return_value = [
        {"artist": "Drake", "name": "Jumpman (Official)", "listeners": 0},
    ]
    result = resolver.resolve(make_track(title="Jumpman", artist="Drake"))
    assert (result.scrobble_artist, result.scrobble_title) == ("Drake", "Jumpman")
    assert lookup.track_search.call_count == 1
