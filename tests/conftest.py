# tests/conftest.py
import pytest

from core.models import Track


class FakeClock:
    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_track():
    def _make(title="Song", artist="Artist", album="Album", duration=200.0,
              position=0.0, playing=True, thumbnail=None):
        return Track.from_raw(
            raw_title=title,
            raw_artist=artist,
            album=album,
            duration=duration,
            position=position,
            playing=playing,
            thumbnail=thumbnail,
        )
    return _make
