# core/scrobbler.py
import logging
import threading
import time
import webbrowser
from dataclasses import dataclass
from typing import Callable, Hashable, Optional, Tuple

import requests

from .events import Observers
from .lastfm import LastFMClient, LastFMError

log = logging.getLogger(__name__)

# Last.fm rules: half the track or four minutes, whichever comes first.
# Tracks of 30s or less (or unknown length) go after 30s of listening.
SCROBBLE_MAX_SECONDS = 240
SHORT_TRACK_SECONDS = 30

AUTH_POLL_SECONDS = 2
AUTH_TIMEOUT_SECONDS = 120


@dataclass
class TrackingState:
    track_key: Hashable
    start_time: float
    duration: float
    has_scrobbled: bool = False


def is_eligible(duration: float, elapsed: float, position: float) -> bool:
    if duration > SHORT_TRACK_SECONDS:
        scrobble_point = min(duration / 2, SCROBBLE_MAX_SECONDS)
        return elapsed >= scrobble_point or position >= scrobble_point
    return elapsed >= SHORT_TRACK_SECONDS


class Scrobbler:
    """
    Now-playing notifications and the per-track scrobble state machine.

    Only one track is tracked at a time. A new key always starts a fresh
    TrackingState, even if that key was tracked before. Once Last.fm has
    answered a scrobble (accepted, ignored or rejected) has_scrobbled stays
    set for the rest of that occurrence; a transport failure is retried.
    """

    def __init__(self, client: Optional[LastFMClient], enabled: bool = True,
                 username: str = "", clock: Callable[[], float] = time.time):
        self.client = client
        self.enabled = enabled
        self.username = username
        self._clock = clock
        self.state: Optional[TrackingState] = None
        self.scrobbled = Observers("scrobbled")

    @property
    def is_authenticated(self) -> bool:
        return bool(self.enabled and self.client is not None and self.client.session_key)

    def begin_track(self, track_key: Hashable, duration: Optional[float]) -> bool:
        """Start tracking `track_key`; returns True if the state was reset."""
        if self.state is not None and self.state.track_key == track_key:
            return False
        self.state = TrackingState(
            track_key=track_key,
            start_time=self._clock(),
            duration=duration or 0.0,
        )
        return True

    def notify_now_playing(self, artist: str, title: str, album: Optional[str] = None,
                           duration: Optional[float] = None) -> None:
        if not self.is_authenticated:
            return
        try:
            self.client.update_now_playing(artist, title, album=album or None, duration=duration)
            log.info("Now playing: %s - %s", artist, title)
        except LastFMError as e:
            log.warning("UpdateNowPlaying error %s: %s (artist: %s, track: %s)",
                        e.code, e.message, artist, title)
        except requests.RequestException as e:
            log.warning("UpdateNowPlaying failed: %s", e)

    def check_and_scrobble(self, track_key: Hashable, artist: str, title: str,
                           album: Optional[str] = None, position: float = 0.0) -> bool:
        """Returns True if this call issued the scrobble."""
        state = self.state
        if not self.is_authenticated or state is None or state.has_scrobbled:
            return False
        if state.track_key != track_key:
            return False

        elapsed = self._clock() - state.start_time
        if not is_eligible(state.duration, elapsed, position or 0.0):
            return False

        # Set before sending; only a transport failure clears it again.
        state.has_scrobbled = True
        if not self._scrobble(artist, title, album):
            state.has_scrobbled = False
        return True

    def _scrobble(self, artist: str, title: str, album: Optional[str]) -> bool:
        """False when the request never got an answer and should be retried."""
        timestamp = int(self._clock())
        try:
            result = self.client.scrobble(artist, title, timestamp, album=album or None)
        except LastFMError as e:
            log.warning("Scrobble error %s: %s (artist: %s, track: %s)", e.code, e.message, artist, title)
            return True
        except requests.RequestException as e:
            log.warning("Scrobble failed, retrying next tick (artist: %s, track: %s): %s", artist, title, e)
            return False

        if result.accepted > 0:
            log.info("Scrobbled: %s - %s", artist, title)
            self.scrobbled.emit(artist, title)
        elif result.ignored > 0:
            log.info("Scrobble ignored (%s): %s (artist: %s, track: %s)",
                     result.ignored_code, result.ignored_message, artist, title)
        else:
            log.warning("Scrobble response unclear: %r", result)
        return True

    def authenticate(
        self,
        open_url: Callable[[str], object] = webbrowser.open,
        cancel: Optional[threading.Event] = None,
        poll_seconds: float = AUTH_POLL_SECONDS,
        timeout_seconds: float = AUTH_TIMEOUT_SECONDS,
    ) -> Optional[Tuple[str, str]]:
        """
        Desktop auth flow: fetch a token, send the user to the approval page,
        then poll auth.getSession until it succeeds or the timeout passes.

        Returns (session_key, username); the caller persists the key.
        """
        if self.client is None:
            return None
        cancel = cancel or threading.Event()
        try:
            token = self.client.get_token()
        except (LastFMError, requests.RequestException) as e:
            log.warning("auth.getToken failed: %s", e)
            return None

        open_url(self.client.auth_url(token))

        for _ in range(int(timeout_seconds // poll_seconds)):
            if cancel.wait(poll_seconds):
                return None
            try:
                session = self.client.get_session(token)
            except LastFMError as e:
                # 14: token not authorised yet
                log.debug("auth.getSession pending: %s", e)
                continue
            except requests.RequestException as e:
                log.debug("auth.getSession failed: %s", e)
                continue
            if session:
                key, name = session
                self.client.session_key = key
                self.username = name
                log.info("Last.fm authenticated as %s", name or "(unknown)")
                return key, name

        log.warning("Last.fm authentication timed out")
        return None
