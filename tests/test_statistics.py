# tests/test_statistics.py
from core.statistics import Statistics, format_duration


def test_format_duration():
    assert format_duration(0) == "0m"
    assert format_duration(12 * 60 + 59) == "12m"
    assert format_duration(3900) == "1h 5m"
    assert format_duration(-5) == "0m"


def test_counts_tracks_and_artists(make_track, clock):
    stats = Statistics(clock=clock)
    stats.on_track_changed(make_track(artist="A", duration=180))
    stats.on_track_changed(make_track(artist="B", duration=120))
    stats.on_track_changed(make_track(artist="A", duration=60))
    stats.on_track_changed(None)

    snap = stats.snapshot()
    assert snap.session_start == clock.now
    assert snap.track_count == 3
    assert snap.total_listen_time == 360
    assert snap.top_artists == (("A", 2), ("B", 1))


def test_counts_scrobbles():
    stats = Statistics()
    stats.on_scrobbled("A", "Song")
    stats.on_scrobbled("B", "Other")
    assert stats.snapshot().scrobble_count == 2


def test_top_artists_limit(make_track):
    stats = Statistics()
    for name in "ABCDEFG":
        stats.on_track_changed(make_track(artist=name))
    assert len(stats.top_artists()) == 5
    assert len(stats.top_artists(2)) == 2
