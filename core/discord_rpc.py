#core/discord_rpc.py
import logging
import time
from typing import Callable, Optional

from pypresence import Presence
from pypresence.types import ActivityType

from .models import Track

log = logging.getLogger(__name__)

# APP ID
APP_CLIENT_ID = "1465803809761792193"

FIELD_LIMIT = 128
ELLIPSIS = "…"
BUTTON_LABEL = "Play on Apple Music"


def truncate(value: Optional[str], limit: int = FIELD_LIMIT) -> str:
    value = value or ""
    if len(value) <= limit:
        return value
    return value[: limit - len(ELLIPSIS)] + ELLIPSIS


def build_payload(track: Track, now: Optional[float] = None) -> dict:
    payload = {
        "details": truncate(track.title),
        "state": truncate(track.artist),
        "activity_type": ActivityType.LISTENING,
    }

    if track.artwork_url:
        payload["large_image"] = track.artwork_url
        if track.album:
            payload["large_text"] = truncate(track.album)

    if track.external_url:
        payload["buttons"] = [{"label": BUTTON_LABEL, "url": track.external_url}]

    # Countdown only while playing; recomputed from the fresh position every time
    if track.playing and track.duration > 0:
        now = time.time() if now is None else now
        payload["start"] = int(now - track.position)
        payload["end"] = int(now + (track.duration - track.position))

    return payload


def account_info(user: Optional[dict]) -> dict:
    user = user or {}
    username = user.get("username")
    if not username:
        return {"name": "Connected", "avatar_url": ""}

    disc = user.get("discriminator", "") or ""
    display = f"{username}#{disc}" if disc and disc != "0" else username

    user_id = user.get("id", "")
    avatar = user.get("avatar")  # can be None
    avatar_url = ""

    # Custom avatar
    if user_id and avatar:
        ext = "gif" if str(avatar).startswith("a_") else "png"
        avatar_url = f"https://cdn.discordapp.com/avatars/{user_id}/{avatar}.{ext}?size=128"

    # Default avatar fallback
    elif user_id:
        # discriminator is "0" for newer usernames
        disc_num = int(disc) if disc.isdigit() else 0
        avatar_url = f"https://cdn.discordapp.com/embed/avatars/{disc_num % 5}.png"

    return {"name": display, "avatar_url": avatar_url}


class PresencePublisher:
    """
    Owns the Discord IPC client. Any failure should be followed by close();
    the next connect() then builds a fresh client.
    """

    def __init__(self, client_id: str = APP_CLIENT_ID,
                 factory: Callable[[str], Presence] = Presence):
        self.client_id = client_id or APP_CLIENT_ID
        self._factory = factory
        self._rpc: Optional[Presence] = None
        self.has_presence = False

    @property
    def connected(self) -> bool:
        return self._rpc is not None

    def connect(self) -> bool:
        """Returns True if a new connection was made."""
        if self._rpc is not None:
            return False
        rpc = self._factory(self.client_id)
        rpc.connect()
        self._rpc = rpc
        self.has_presence = False
        log.info("Discord client initialized")
        return True

    def account(self) -> dict:
        if self._rpc is None:
            return {"name": "Not connected", "avatar_url": ""}
        try:
            return account_info(getattr(self._rpc, "user", None))
        except Exception:
            return {"name": "Connected", "avatar_url": ""}

    def publish(self, track: Track) -> dict:
        payload = build_payload(track)
        self._rpc.update(**payload)
        self.has_presence = True
        log.debug("Presence updated: %s — %s", track.title, track.artist)
        return payload

    def clear(self) -> None:
        if self._rpc is None:
            return
        self._rpc.clear()
        self.has_presence = False

    def close(self) -> None:
        rpc, self._rpc = self._rpc, None
        self.has_presence = False
        if rpc is None:
            return
        try:
            rpc.close()
        except Exception as e:
            log.debug("Discord close failed: %s", e)
