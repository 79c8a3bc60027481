"""
Thin client for the Last.fm web service (https://www.last.fm/api).

Write methods and the session exchange are signed: parameters sorted by
key, concatenated as key+value, followed by the shared secret, MD5'd.
Lookups (track.search, track.getInfo) only need an API key.
"""
import hashlib
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import requests

from .http import REQUEST_TIMEOUT

log = logging.getLogger(__name__)

API_URL = "https://ws.audioscrobbler.com/2.0/"
AUTH_URL = "https://www.last.fm/api/auth/"

# Last.fm's grey star image, returned when an album has no artwork.
PLACEHOLDER_IMAGE_HASH = "2a96cbd8b46e442fc41c2b86b821562f"

# Not part of the signature
_UNSIGNED_PARAMS = {"format", "callback"}


class LastFMError(Exception):
    def __init__(self, code: Optional[int], message: str):
        super().__init__(f"Last.fm error {code}: {message}")
        self.code = code
        self.message = message


@dataclass(frozen=True)
class ScrobbleResult:
    accepted: int
    ignored: int
    ignored_code: Optional[str] = None
    ignored_message: Optional[str] = None


def sign(params: Dict[str, str], secret: str) -> str:
    payload = "".join(
        f"{k}{params[k]}" for k in sorted(params) if k not in _UNSIGNED_PARAMS
    )
    payload += secret
    return hashlib.md5(payload.encode("utf-8")).hexdigest()


def _to_int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class LastFMClient:
    def __init__(
        self,
        api_key: str,
        api_secret: str = "",
        session_key: str = "",
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.api_secret = api_secret
        self.session_key = session_key or ""
        self.http = session or requests.Session()

    def auth_url(self, token: str) -> str:
        return f"{AUTH_URL}?api_key={self.api_key}&token={token}"

    def _call(self, method: str, params: Optional[dict] = None, *, signed: bool = False, post: bool = False) -> dict:
        query = {"method": method, "api_key": self.api_key}
        for k, v in (params or {}).items():
            if v is not None and v != "":
                query[k] = str(v)
        if signed:
            query["api_sig"] = sign(query, self.api_secret)
        query["format"] = "json"

        if post:
            r = self.http.post(API_URL, data=query, timeout=REQUEST_TIMEOUT)
        else:
            r = self.http.get(API_URL, params=query, timeout=REQUEST_TIMEOUT)

        try:
            data = r.json()
        except ValueError:
            r.raise_for_status()
            raise LastFMError(None, f"non-JSON response from {method}")

        if isinstance(data, dict) and "error" in data:
            raise LastFMError(_to_int(data.get("error")) or None, str(data.get("message", "")))
        r.raise_for_status()
        return data if isinstance(data, dict) else {}

    # --- auth ---

    def get_token(self) -> str:
        data = self._call("auth.getToken", signed=True)
        token = data.get("token") or ""
        if not token:
            raise LastFMError(None, "auth.getToken returned no token")
        return token

    def get_session(self, token: str) -> Optional[Tuple[str, str]]:
        """(session_key, username), or None while the token is not yet authorised."""
        data = self._call("auth.getSession", {"token": token}, signed=True)
        session = data.get("session") or {}
        key = session.get("key") or ""
        if not key:
            return None
        return key, session.get("name") or ""

    # --- scrobbling ---

    def update_now_playing(self, artist: str, track: str, album: Optional[str] = None,
                           duration: Optional[float] = None) -> None:
        params = {"artist": artist, "track": track, "album": album, "sk": self.session_key}
        if duration and duration > 0:
            params["duration"] = int(duration)
        self._call("track.updateNowPlaying", params, signed=True, post=True)

    def scrobble(self, artist: str, track: str, timestamp: int, album: Optional[str] = None) -> ScrobbleResult:
        params = {
            "artist": artist,
            "track": track,
            "timestamp": int(timestamp),
            "album": album,
            "sk": self.session_key,
        }
        data = self._call("track.scrobble", params, signed=True, post=True)
        scrobbles = data.get("scrobbles") or {}
        attr = scrobbles.get("@attr") or {}
        scrobble = scrobbles.get("scrobble") or {}
        if isinstance(scrobble, list):
            scrobble = scrobble[0] if scrobble else {}
        ignored = scrobble.get("ignoredMessage") or {}
        return ScrobbleResult(
            accepted=_to_int(attr.get("accepted")),
            ignored=_to_int(attr.get("ignored")),
            ignored_code=ignored.get("code"),
            ignored_message=ignored.get("#text"),
        )

    # --- lookups ---

    def track_search(self, track: str, limit: int = 30) -> List[dict]:
        data = self._call("track.search", {"track": track, "limit": limit})
        matches = ((data.get("results") or {}).get("trackmatches") or {}).get("track") or []
        if isinstance(matches, dict):
            matches = [matches]
        return [
            {
                "artist": m.get("artist") or "",
                "name": m.get("name") or "",
                "listeners": _to_int(m.get("listeners")),
            }
            for m in matches
            if isinstance(m, dict)
        ]

    def track_get_info(self, artist: str, track: str) -> List[dict]:
        data = self._call("track.getInfo", {"artist": artist, "track": track})
        album = (data.get("track") or {}).get("album") or {}
        images = album.get("image") or []
        return [img for img in images if isinstance(img, dict)]
