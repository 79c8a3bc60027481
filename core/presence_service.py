# core/presence_service.py
import logging
import threading
import time
from dataclasses import replace
from typing import Callable, List, Optional

from .discord_rpc import PresencePublisher, truncate
from .events import Observers
from .media_source import MediaSource, MediaSourceError
from .models import Track
from .resolver import MetadataResolver
from .scrobbler import Scrobbler
from .state import PlaybackSnapshot, SharedPlaybackState

log = logging.getLogger(__name__)

TICK_SECONDS = 2.0
PAUSE_SLICE_SECONDS = 1.0
ERROR_COOLDOWN_SECONDS = 10.0
# Long enough for one in-flight request to hit its timeout
JOIN_TIMEOUT_SECONDS = 15.0

_UNSET = object()


def track_changed(previous: Optional[Track], current: Optional[Track]) -> bool:
    if previous is None or current is None:
        return (previous is None) != (current is None)
    return previous.identity != current.identity


class PresenceService:
    """
    The poll loop. One background thread owns the shared playback state,
    the artwork cache and the scrobble state; everything else talks to it
    through snapshots, observer notifications and flag-flip commands that
    are picked up on the next tick.
    """

    def __init__(
        self,
        media_source: MediaSource,
        resolver: MetadataResolver,
        publisher: PresencePublisher,
        scrobbler: Optional[Scrobbler] = None,
        status_changed: Optional[Observers] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.media_source = media_source
        self.resolver = resolver
        self.publisher = publisher
        self.scrobbler: Optional[Scrobbler] = None

        self.state = SharedPlaybackState(clock)

        self.track_changed = Observers("track_changed")
        self.status_changed = status_changed if status_changed is not None else Observers("status_changed")
        self.history_changed = Observers("history_changed")
        self.account_changed = Observers("account_changed")
        self.scrobbled = Observers("scrobbled")

        self._last_track: Optional[Track] = None
        self._force_refresh = False
        self._pending_scrobbler = _UNSET

        self._lifecycle_lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

        self._set_scrobbler(scrobbler)

    # --- read side ---

    @property
    def is_paused(self) -> bool:
        return self.state.paused

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def history(self) -> List[str]:
        return self.state.history.entries()

    def snapshot(self) -> PlaybackSnapshot:
        return self.state.snapshot()

    # --- commands ---

    def start(self) -> None:
        with self._lifecycle_lock:
            self._cancel_current()
            stop = threading.Event()
            thread = threading.Thread(
                target=self._run, args=(stop,), name="presence-loop", daemon=True
            )
            self._stop_event, self._thread = stop, thread
            thread.start()
        log.debug("Start() completed")

    def stop(self) -> None:
        with self._lifecycle_lock:
            self._cancel_current()
            self._stop_event, self._thread = None, None

    def pause(self) -> None:
        self.state.paused = True
        self.status_changed.emit("Paused", False)

    def resume(self) -> None:
        self.state.paused = False
        self._force_refresh = True
        self.status_changed.emit("Resuming...", False)

    def force_refresh(self) -> None:
        self._force_refresh = True

    def update_scrobbler(self, scrobbler: Optional[Scrobbler]) -> None:
        self._pending_scrobbler = scrobbler

    def dispose(self) -> None:
        self.stop()
        try:
            self.publisher.clear()
        except Exception as e:
            log.debug("Presence clear on shutdown failed: %s", e)
        self.publisher.close()

    # --- loop ---

    def _cancel_current(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        thread = self._thread
        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(JOIN_TIMEOUT_SECONDS)
            if thread.is_alive():
                log.warning("Previous poll loop did not stop within %ss", JOIN_TIMEOUT_SECONDS)

    def _run(self, stop: threading.Event) -> None:
        log.info("Poll loop started")
        while not stop.is_set():
            try:
                delay = self.tick()
            except Exception as e:
                log.exception("Poll loop error")
                self.status_changed.emit(f"Error: {e}", True)
                self.publisher.close()
                delay = ERROR_COOLDOWN_SECONDS
            if stop.wait(delay):
                break
        log.info("Poll loop stopped")

    def tick(self) -> float:
        """One loop iteration; returns how long to wait before the next."""
        if self._pending_scrobbler is not _UNSET:
            self._set_scrobbler(self._pending_scrobbler)
            self._pending_scrobbler = _UNSET

        if self.publisher.connect():
            # A fresh client starts without presence
            self._force_refresh = True
            self.status_changed.emit("Connected to Discord", False)
            self.account_changed.emit(self.publisher.account())

        if self.state.paused:
            if self.publisher.has_presence:
                self.publisher.clear()
            return PAUSE_SLICE_SECONDS

        try:
            track = self.media_source()
        except MediaSourceError as e:
            log.warning("Media source failed: %s", e)
            self.status_changed.emit(f"Media source error: {e}", True)
            return TICK_SECONDS

        changed = track_changed(self._last_track, track)
        if self._force_refresh and track is not None:
            if not changed:
                track = self._same_occurrence(track)
            changed = True
            self._force_refresh = False

        if changed:
            self._apply_change(track)
            self._last_track = track
        elif track is not None:
            # Keeps the progress estimate accurate between transitions
            self.state.update_progress(track.position, track.duration)

        self._check_scrobble(track)
        return TICK_SECONDS

    def _apply_change(self, track: Optional[Track]) -> None:
        if track is None:
            self.publisher.clear()
            self.state.replace_track(None)
            self.track_changed.emit(None)
            self.status_changed.emit("Stopped", False)
            return

        if self.state.history.add(track.history_entry):
            self.history_changed.emit(self.state.history.entries())

        enrichment = self.resolver.resolve(track)
        track = replace(
            track,
            artwork_url=enrichment.artwork_url,
            external_url=enrichment.external_url,
            scrobble_artist=enrichment.scrobble_artist,
            scrobble_title=enrichment.scrobble_title,
        )
        self.state.replace_track(track)
        self.track_changed.emit(replace(track))

        self.publisher.publish(track)
        self.status_changed.emit(f"Playing: {truncate(track.title, 30)}", False)

        scrobbler = self.scrobbler
        if scrobbler is not None:
            scrobbler.begin_track(track.track_key, track.duration)
            if scrobbler.is_authenticated and track.playing:
                artist, title = track.scrobble_names()
                scrobbler.notify_now_playing(artist, title, track.album, track.duration)

    def _same_occurrence(self, track: Track) -> Track:
        """Keep the published raw names so a refresh never restarts scrobble tracking."""
        current = self.state.current_track
        if current is None or current.identity != track.identity:
            return track
        return replace(track, raw_title=current.raw_title, raw_artist=current.raw_artist)

    def _check_scrobble(self, observed: Optional[Track]) -> None:
        scrobbler = self.scrobbler
        current = self.state.current_track
        if scrobbler is None or observed is None or current is None:
            return
        if not observed.playing or not scrobbler.is_authenticated:
            return
        artist, title = current.scrobble_names()
        scrobbler.check_and_scrobble(
            current.track_key, artist, title, current.album, observed.position
        )

    def _set_scrobbler(self, scrobbler: Optional[Scrobbler]) -> None:
        if self.scrobbler is not None:
            self.scrobbler.scrobbled.unsubscribe(self.scrobbled.emit)
        self.scrobbler = scrobbler
        if scrobbler is not None:
            scrobbler.scrobbled.subscribe(self.scrobbled.emit)
            current = self.state.current_track
            if current is not None:
                scrobbler.begin_track(current.track_key, current.duration)
        log.debug("Scrobbler %s", "configured" if scrobbler else "disabled")
