# core/music_windows.py
import asyncio
import logging
from typing import Callable, Optional

from .media_source import MediaSourceError, is_apple_music_id, is_placeholder_title
from .models import Track

log = logging.getLogger(__name__)

try:
    from winsdk.windows.media.control import (
        GlobalSystemMediaTransportControlsSessionManager as MediaManager,
        GlobalSystemMediaTransportControlsSessionPlaybackStatus as PlaybackStatus,
    )
    from winsdk.windows.storage.streams import Buffer, DataReader, InputStreamOptions
except Exception:  # winsdk not installed or not on Windows
    MediaManager = None
    PlaybackStatus = None
    Buffer = None
    DataReader = None
    InputStreamOptions = None


def _timespan_seconds(value) -> float:
    if value is None:
        return 0.0
    try:
        return float(value.total_seconds())
    except Exception:
        pass
    try:
        # Some WinRT bindings expose a "duration" in 100ns ticks.
        return float(value.duration) / 10_000_000.0
    except Exception:
        return 0.0


def _session_app_id(session) -> str:
    try:
        return session.source_app_user_model_id or ""
    except Exception:
        return ""


async def _read_thumbnail(props) -> Optional[bytes]:
    thumb_ref = getattr(props, "thumbnail", None)
    if thumb_ref is None or Buffer is None:
        return None
    try:
        stream = await thumb_ref.open_read_async()
        try:
            size = int(stream.size)
            if size <= 0:
                return None
            buffer = Buffer(size)
            await stream.read_async(buffer, size, InputStreamOptions.READ_AHEAD)
            reader = DataReader.from_buffer(buffer)
            data = bytearray(buffer.length)
            reader.read_bytes(data)
            return bytes(data)
        finally:
            stream.close()
    except Exception as e:
        log.debug("Thumbnail read failed: %s", e)
        return None


class WindowsMediaSource:
    """Reads the Apple Music session from the Windows media-session registry (GSMTC)."""

    def __init__(self, status: Optional[Callable[[str, bool], None]] = None):
        self._status = status

    @property
    def available(self) -> bool:
        return MediaManager is not None

    def _report(self, message: str) -> None:
        if self._status:
            self._status(message, False)

    async def _get_current_track_async(self) -> Optional[Track]:
        manager = await MediaManager.request_async()
        sessions = list(manager.get_sessions())

        session = None
        session_ids = []
        for candidate in sessions:
            app_id = _session_app_id(candidate).lower()
            session_ids.append(app_id)
            if is_apple_music_id(app_id):
                session = candidate
                break

        log.debug("Sessions found: %d. IDs: [%s]", len(sessions), ", ".join(session_ids))

        if session is None:
            if not sessions:
                self._report("No media sessions found")
            else:
                self._report(f"Found {len(sessions)} sessions, none are Apple Music")
            return None

        props = await session.try_get_media_properties_async()
        if props is None:
            return None

        playback = session.get_playback_info()
        if playback is None or playback.playback_status != PlaybackStatus.PLAYING:
            return None

        title = getattr(props, "title", "") or ""
        if is_placeholder_title(title):
            return None

        timeline = session.get_timeline_properties()
        duration = _timespan_seconds(getattr(timeline, "end_time", None))
        position = _timespan_seconds(getattr(timeline, "position", None))

        return Track.from_raw(
            raw_title=title,
            raw_artist=getattr(props, "artist", "") or "Unknown",
            album=getattr(props, "album_title", "") or "",
            duration=duration,
            position=position,
            playing=True,
            thumbnail=await _read_thumbnail(props),
        )

    def __call__(self) -> Optional[Track]:
        if MediaManager is None:
            raise MediaSourceError("winsdk is not available")
        try:
            return asyncio.run(self._get_current_track_async())
        except MediaSourceError:
            raise
        except Exception as e:
            raise MediaSourceError(f"media session query failed: {e}") from e
