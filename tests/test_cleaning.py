# tests/test_cleaning.py
import pytest

from core.cleaning import clean_artist, clean_for_scrobble, clean_title, split_artists


@pytest.mark.parametrize("raw, expected", [
    ("Song - Single", "Song"),
    ("Song - EP", "Song"),
    ("Song [Explicit]", "Song"),
    ("Song (explicit)", "Song"),
    ("Song - single", "Song"),
    ("Single Ladies", "Single Ladies"),
    ("", ""),
])
def test_clean_title(raw, expected):
    assert clean_title(raw) == expected


def test_clean_artist_drops_album_suffix():
    assert clean_artist("A — B") == "A"
    assert clean_artist("Drake — Views") == "Drake"


def test_clean_artist_keeps_plain_hyphen():
    assert clean_artist("Jay-Z - Live") == "Jay-Z - Live"


def test_clean_artist_leading_separator_is_kept():
    # Only a separator after some text counts
    assert clean_artist(" — B") == "— B"


def test_cleaned_identity_example():
    assert (clean_title("Song - Single"), clean_artist("A — B")) == ("Song", "A")


def test_clean_for_scrobble_strips_featuring_and_editions():
    artist, title = clean_for_scrobble(
        "Drake (feat. Future) — What a Time", "Jumpman (feat. Lil Wayne) - Remastered 2015"
    )
    assert artist == "Drake"
    assert title == "Jumpman"


def test_clean_for_scrobble_ft_clause_and_clean_marker():
    assert clean_for_scrobble("Artist ft. Someone", "Track [Clean]") == ("Artist", "Track")
    assert clean_for_scrobble("Artist", "Track (Remastered 2009)") == ("Artist", "Track")


def test_split_artists():
    assert split_artists("A & B, C x D X E") == ["a", "b", "c", "d", "e"]
    assert split_artists("Solo") == ["solo"]
    assert split_artists("") == []
