#core/music_macos.py
import subprocess
from typing import Optional

from .http import REQUEST_TIMEOUT
from .media_source import MediaSourceError, is_placeholder_title
from .models import Track


SCRIPT = r'''
tell application "Music"
    if it is not running then
        return "OK=0"
    end if

    set ps to (player state as string)
    if ps is not "playing" then
        return "OK=0"
    end if

    set tName to (name of current track as string)
    set tArtist to (artist of current track as string)
    set tAlbum to (album of current track as string)
    set tDur to (duration of current track)
    set tPos to (player position)

    return "OK=1|" & tName & "|" & tArtist & "|" & tAlbum & "|" & (tDur as string) & "|" & (tPos as string)
end tell
'''


def _to_float(v: str) -> float:
    try:
        return float(v.replace(",", "."))
    except (AttributeError, ValueError):
        return 0.0


def parse_output(out: str) -> Optional[Track]:
    out = (out or "").strip()
    if not out.startswith("OK=1|"):
        return None

    # OK=1|title|artist|album|duration|position
    parts = out.split("|")
    if len(parts) < 6:
        return None
    title = parts[1]
    if is_placeholder_title(title):
        return None

    return Track.from_raw(
        raw_title=title,
        raw_artist=parts[2] or "Unknown",
        album=parts[3],
        duration=_to_float(parts[4]),
        position=_to_float(parts[5]),
        playing=True,
    )


def get_current_track() -> Optional[Track]:
    try:
        out = subprocess.check_output(
            ["osascript", "-e", SCRIPT],
            text=True,
            timeout=REQUEST_TIMEOUT,
        )
    except (OSError, subprocess.SubprocessError) as e:
        raise MediaSourceError(f"osascript failed: {e}") from e
    return parse_output(out)
