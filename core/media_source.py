# core/media_source.py
import logging
import sys
from typing import Callable, Optional

from .models import Track

log = logging.getLogger(__name__)

# Known AppUserModelIds of Apple Music sessions (matched case-insensitively as substrings)
APPLE_MUSIC_IDENTIFIERS = ("applemusic", "appleinc.applemusic", "apple.music", "music.ui")

# Title the OS reports while a session is loading
PLACEHOLDER_TITLE = "Unknown"

MediaSource = Callable[[], Optional[Track]]


class MediaSourceError(Exception):
    """The media-session query itself failed (not the same as nothing playing)."""


def is_apple_music_id(app_id: Optional[str]) -> bool:
    app_id = (app_id or "").lower()
    return any(ident in app_id for ident in APPLE_MUSIC_IDENTIFIERS)


def is_placeholder_title(title: Optional[str]) -> bool:
    title = title or ""
    return not title.strip() or title == PLACEHOLDER_TITLE


def load_media_source(status: Optional[Callable[[str, bool], None]] = None) -> Optional[MediaSource]:
    """Pick the adapter for this platform, or None if there isn't one."""
    if sys.platform == "win32":
        try:
            from .music_windows import WindowsMediaSource
        except Exception as e:
            log.warning("Windows media source unavailable: %s", e)
            return None
        source = WindowsMediaSource(status=status)
        return source if source.available else None
    if sys.platform == "darwin":
        from .music_macos import get_current_track
        return get_current_track
    return None
