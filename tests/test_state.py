# tests/test_state.py
from core.models import Track
from core.state import History, SharedPlaybackState, project_position


def test_history_dedups_only_against_head():
    history = History()
    assert history.add("A — One")
    assert not history.add("A — One")
    assert history.add("B — Two")
    assert history.add("A — One")
    assert history.entries() == ["A — One", "B — Two", "A — One"]


def test_history_is_bounded_most_recent_first():
    history = History()
    for i in range(15):
        history.add(f"Artist — {i}")
    entries = history.entries()
    assert len(entries) == 10
    assert entries[0] == "Artist — 14"
    assert entries[-1] == "Artist — 5"


def test_history_entries_are_copies():
    history = History()
    history.add("A — One")
    history.entries().append("junk")
    assert len(history) == 1


def test_project_position_advances_and_clamps(make_track):
    track = make_track(duration=100.0, position=90.0)
    assert project_position(track, 50.0, 50.0) == 90.0
    assert project_position(track, 50.0, 55.0) == 95.0
    assert project_position(track, 50.0, 80.0) == 100.0


def test_project_position_is_monotonic(make_track):
    track = make_track(duration=30.0, position=0.0)
    samples = [project_position(track, 0.0, t / 2) for t in range(100)]
    assert samples == sorted(samples)
    assert max(samples) == 30.0


def test_project_position_without_duration_is_unclamped(make_track):
    track = make_track(duration=0.0, position=5.0)
    assert project_position(track, 0.0, 10.0) == 15.0


def test_project_position_none_and_not_playing(make_track):
    assert project_position(None, 0.0, 10.0) == 0.0
    paused = make_track(position=12.0, playing=False)
    assert project_position(paused, 0.0, 10.0) == 12.0


def test_update_progress_restamps(clock, make_track):
    state = SharedPlaybackState(clock)
    state.replace_track(make_track(position=10.0))
    clock.advance(2)
    state.update_progress(12.5, 201.0)
    assert state.current_track.position == 12.5
    assert state.current_track.duration == 201.0
    assert state.last_update == clock.now


def test_update_progress_without_track_is_noop(clock):
    state = SharedPlaybackState(clock)
    state.update_progress(5.0, 10.0)
    assert state.current_track is None


def test_snapshot_is_a_copy(clock, make_track):
    state = SharedPlaybackState(clock)
    state.replace_track(make_track(title="Live", position=1.0))
    state.history.add("Artist — Live")

    snap = state.snapshot()
    snap.track.position = 999.0
    assert state.current_track.position == 1.0
    assert snap.history == ("Artist — Live",)

    clock.advance(3)
    assert snap.position(now=clock.now) == 4.0


def test_track_identity_uses_cleaned_names():
    a = Track.from_raw("Song - Single", "A — B")
    b = Track.from_raw("Song", "A")
    assert a.identity == b.identity == ("Song", "A")
    assert a.track_key != b.track_key
    assert a.history_entry == "A — Song"


def test_scrobble_names_fall_back_to_raw():
    track = Track.from_raw("Song - Single", "A — B")
    assert track.scrobble_names() == ("A — B", "Song - Single")
    track.scrobble_artist, track.scrobble_title = "A", "Song"
    assert track.scrobble_names() == ("A", "Song")
