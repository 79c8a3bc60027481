# core/state.py
import time
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from .models import Track

HISTORY_LIMIT = 10


def project_position(track: Optional[Track], last_update: float, now: float) -> float:
    """
    Live position estimate between polls. Every consumer (main view, mini
    view, progress timers) must use this so they never drift apart.
    """
    if track is None:
        return 0.0
    if not track.playing:
        return track.position
    position = track.position + max(0.0, now - last_update)
    if track.duration > 0:
        position = min(position, track.duration)
    return position


class History:
    """Most-recent-first "artist — title" entries, deduplicated against the head only."""

    def __init__(self, limit: int = HISTORY_LIMIT):
        self.limit = limit
        self._entries: List[str] = []

    def add(self, entry: str) -> bool:
        if self._entries and self._entries[0] == entry:
            return False
        self._entries.insert(0, entry)
        del self._entries[self.limit:]
        return True

    def entries(self) -> List[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(frozen=True)
class PlaybackSnapshot:
    track: Optional[Track]
    last_update: float
    paused: bool
    history: Tuple[str, ...]

    def position(self, now: Optional[float] = None) -> float:
        return project_position(
            self.track, self.last_update, time.monotonic() if now is None else now
        )


class SharedPlaybackState:
    """
    Written only by the poll loop. Readers go through snapshot(), which
    copies the current track so nothing outside the loop holds a live record.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        # (track, last_update) swapped as one reference so readers never tear
        self._record: Tuple[Optional[Track], float] = (None, clock())
        self.paused = False
        self.history = History()

    @property
    def current_track(self) -> Optional[Track]:
        return self._record[0]

    @property
    def last_update(self) -> float:
        return self._record[1]

    def replace_track(self, track: Optional[Track]) -> None:
        self._record = (track, self._clock())

    def update_progress(self, position: float, duration: float) -> None:
        track = self._record[0]
        if track is None:
            return
        self._record = (replace(track, position=position, duration=duration), self._clock())

    def snapshot(self) -> PlaybackSnapshot:
        track, last_update = self._record
        return PlaybackSnapshot(
            track=replace(track) if track is not None else None,
            last_update=last_update,
            paused=self.paused,
            history=tuple(self.history.entries()),
        )
