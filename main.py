#main.py
import argparse
import logging
import sys
import time
import webbrowser
from typing import Optional

from core.config import AppConfig, load_config, save_session
from core.debug import clear_debug_log, setup_logging
from core.discord_rpc import PresencePublisher
from core.events import Observers
from core.http import new_session
from core.image_upload import ImageUploader
from core.lastfm import LastFMClient
from core.media_source import load_media_source
from core.presence_service import PresenceService
from core.resolver import MetadataResolver
from core.scrobbler import Scrobbler
from core.statistics import Statistics, format_duration

log = logging.getLogger("main")


def build_scrobbler(config: AppConfig) -> Scrobbler:
    client = None
    if config.has_lastfm_credentials:
        client = LastFMClient(
            config.lastfm_api_key,
            config.lastfm_api_secret,
            session_key=config.lastfm_session_key,
            session=new_session(),
        )
    return Scrobbler(client, enabled=config.scrobbling_enabled, username=config.lastfm_username)


def build_service(config: AppConfig, status: Optional[Observers] = None):
    if status is None:
        status = Observers("status_changed")
    media_source = load_media_source(status=status.emit)
    if media_source is None:
        return None

    http = new_session()
    lookup_client = LastFMClient(config.lookup_key, session=http) if config.lookup_key else None
    resolver = MetadataResolver(http, ImageUploader(http), lookup_client)

    return PresenceService(
        media_source,
        resolver,
        PresencePublisher(config.discord_client_id),
        build_scrobbler(config),
        status_changed=status,
    )


def run(config: AppConfig) -> int:
    service = build_service(config)
    if service is None:
        print("[Music] Unsupported OS or missing Windows dependency (winsdk).")
        return 1

    stats = Statistics()
    service.track_changed.subscribe(stats.on_track_changed)
    service.scrobbled.subscribe(stats.on_scrobbled)
    service.status_changed.subscribe(lambda msg, is_error: print(f"[{'ERR' if is_error else 'RPC'}] {msg}"))

    print("[Music] Watching Apple Music… (Ctrl+C to stop)")
    service.start()
    try:
        while service.is_running:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        service.dispose()
        snap = stats.snapshot()
        print(f"[Music] {snap.track_count} tracks, {format_duration(snap.total_listen_time)}, "
              f"{snap.scrobble_count} scrobbles")
    return 0


def auth(config: AppConfig) -> int:
    if not config.has_lastfm_credentials:
        print(f"[Last.fm] Set api_key and api_secret in {config.config_path} first.")
        return 1

    scrobbler = build_scrobbler(config)

    def open_url(url: str):
        print(f"[Last.fm] Approve access in your browser: {url}")
        webbrowser.open(url)

    result = scrobbler.authenticate(open_url=open_url)
    if not result:
        print("[Last.fm] Authentication failed or timed out.")
        return 1

    key, username = result
    save_session(config, key, username)
    print(f"[Last.fm] Connected as {username or 'unknown user'}.")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Apple Music rich presence and Last.fm scrobbling")
    parser.add_argument("--config", help="path to config.ini")
    parser.add_argument("command", nargs="?", default="run", choices=["run", "auth", "clear-log"])
    args = parser.parse_args(argv)

    setup_logging()
    config = load_config(args.config)

    if args.command == "auth":
        return auth(config)
    if args.command == "clear-log":
        return 0 if clear_debug_log() else 1
    return run(config)


if __name__ == "__main__":
    sys.exit(main())
