# core/statistics.py
import threading
import time
from collections import Counter
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .models import Track


def format_duration(seconds: float) -> str:
    total_minutes = int(max(0.0, seconds) // 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours >= 1:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


@dataclass(frozen=True)
class StatisticsSnapshot:
    session_start: float
    track_count: int
    total_listen_time: float
    scrobble_count: int
    top_artists: Tuple[Tuple[str, int], ...]


class Statistics:
    """Session listening statistics, fed by the service's notifications."""

    def __init__(self, clock=time.time):
        self.session_start = clock()
        self._lock = threading.Lock()
        self.track_count = 0
        self.total_listen_time = 0.0
        self.scrobble_count = 0
        self._artists: Counter = Counter()

    def on_track_changed(self, track: Optional[Track]) -> None:
        if track is None:
            return
        with self._lock:
            self.track_count += 1
            self.total_listen_time += max(0.0, track.duration)
            if track.artist:
                self._artists[track.artist] += 1

    def on_scrobbled(self, *_args) -> None:
        with self._lock:
            self.scrobble_count += 1

    def top_artists(self, count: int = 5) -> List[Tuple[str, int]]:
        with self._lock:
            return self._artists.most_common(count)

    def snapshot(self, count: int = 5) -> StatisticsSnapshot:
        top = tuple(self.top_artists(count))
        with self._lock:
            return StatisticsSnapshot(
                session_start=self.session_start,
                track_count=self.track_count,
                total_listen_time=self.total_listen_time,
                scrobble_count=self.scrobble_count,
                top_artists=top,
            )
