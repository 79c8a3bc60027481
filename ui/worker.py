# ui/worker.py
from dataclasses import asdict
from typing import Optional

from PySide6.QtCore import QObject, Signal

from core.models import Track
from core.presence_service import PresenceService


def track_to_dict(track: Optional[Track]) -> dict:
    if track is None:
        return {
            "title": "",
            "artist": "",
            "album": "",
            "duration": 0.0,
            "position": 0.0,
            "playing": False,
            "artwork_url": "",
            "external_url": "",
        }
    d = asdict(track)
    d.pop("thumbnail", None)
    d["artwork_url"] = track.artwork_url or ""
    d["external_url"] = track.external_url or ""
    return d


class PresenceWorker(QObject):
    """
    Qt face of the presence service. Notifications arrive on the poll
    thread and are re-emitted as signals, which Qt queues onto the
    receiving widgets' thread.
    """

    status = Signal(str, bool)   # message, is_error
    account = Signal(dict)       # {"name": str, "avatar_url": str}
    now_playing = Signal(dict)   # Track dict, blanks when stopped
    history = Signal(list)

    def __init__(self, service: PresenceService, parent=None):
        super().__init__(parent)
        self.service = service
        self._subscribed = False
        self._subscribe()

    def _subscribe(self):
        if self._subscribed:
            return
        self.service.status_changed.subscribe(self._on_status)
        self.service.account_changed.subscribe(self._on_account)
        self.service.track_changed.subscribe(self._on_track)
        self.service.history_changed.subscribe(self._on_history)
        self._subscribed = True

    def close(self):
        if not self._subscribed:
            return
        self.service.status_changed.unsubscribe(self._on_status)
        self.service.account_changed.unsubscribe(self._on_account)
        self.service.track_changed.unsubscribe(self._on_track)
        self.service.history_changed.unsubscribe(self._on_history)
        self._subscribed = False

    # service -> Qt

    def _on_status(self, message: str, is_error: bool):
        self.status.emit(message, is_error)

    def _on_account(self, info: dict):
        self.account.emit(dict(info))

    def _on_track(self, track: Optional[Track]):
        self.now_playing.emit(track_to_dict(track))

    def _on_history(self, entries: list):
        self.history.emit(list(entries))

    # Qt -> service

    def position(self) -> float:
        """Projected playback position for progress bars and timers."""
        return self.service.snapshot().position()

    def current(self) -> dict:
        return track_to_dict(self.service.snapshot().track)

    def toggle_paused(self):
        if self.service.is_paused:
            self.service.resume()
        else:
            self.service.pause()

    def refresh_presence(self):
        self.service.force_refresh()
