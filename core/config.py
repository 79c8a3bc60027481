# core/config.py
import configparser
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

log = logging.getLogger(__name__)

APP_DIR_NAME = "AppleMusicPresence"
CONFIG_FILE_NAME = "config.ini"


def data_dir() -> Path:
    if sys.platform == "win32":
        base = os.getenv("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
    elif sys.platform == "darwin":
        base = str(Path.home() / "Library" / "Application Support")
    else:
        base = os.getenv("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / APP_DIR_NAME


def default_config_path() -> Path:
    env_path = os.getenv("AMP_CONFIG", "").strip()
    if env_path:
        return Path(env_path)
    return data_dir() / CONFIG_FILE_NAME


@dataclass
class AppConfig:
    lastfm_api_key: str = ""
    lastfm_api_secret: str = ""
    lastfm_session_key: str = ""
    lastfm_username: str = ""
    scrobbling_enabled: bool = True
    lastfm_lookup_key: str = ""
    discord_client_id: str = ""
    config_path: str = ""

    @property
    def lookup_key(self) -> str:
        return self.lastfm_lookup_key or self.lastfm_api_key

    @property
    def has_lastfm_credentials(self) -> bool:
        return bool(self.lastfm_api_key and self.lastfm_api_secret)


def _to_bool(value: str, default: bool) -> bool:
    value = (value or "").strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return default


def load_config(path: Optional[Path] = None) -> AppConfig:
    path = Path(path) if path else default_config_path()
    cfg = AppConfig(config_path=str(path))

    parser = configparser.ConfigParser(interpolation=None)
    try:
        read = parser.read(path, encoding="utf-8")
    except (configparser.Error, OSError, UnicodeDecodeError) as e:
        log.warning("Config unreadable (%s), using defaults: %s", path, e)
        return cfg
    if not read:
        return cfg

    lastfm = parser["LastFM"] if parser.has_section("LastFM") else {}
    general = parser["General"] if parser.has_section("General") else {}

    cfg.lastfm_api_key = lastfm.get("api_key", "").strip()
    cfg.lastfm_api_secret = lastfm.get("api_secret", "").strip()
    cfg.lastfm_session_key = lastfm.get("session_key", "").strip()
    cfg.lastfm_username = lastfm.get("username", "").strip()
    cfg.scrobbling_enabled = _to_bool(lastfm.get("enable_scrobbling", ""), True)
    cfg.lastfm_lookup_key = general.get("lastfm_lookup_key", "").strip()
    cfg.discord_client_id = general.get("discord_client_id", "").strip()
    return cfg


def save_config(cfg: AppConfig) -> bool:
    path = Path(cfg.config_path) if cfg.config_path else default_config_path()
    parser = configparser.ConfigParser(interpolation=None)
    parser["LastFM"] = {
        "api_key": cfg.lastfm_api_key,
        "api_secret": cfg.lastfm_api_secret,
        "enable_scrobbling": str(cfg.scrobbling_enabled).lower(),
        "session_key": cfg.lastfm_session_key,
        "username": cfg.lastfm_username,
    }
    parser["General"] = {
        "lastfm_lookup_key": cfg.lastfm_lookup_key,
        "discord_client_id": cfg.discord_client_id,
    }
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            parser.write(f)
        return True
    except OSError as e:
        log.warning("Config save failed (%s): %s", path, e)
        return False


def save_session(cfg: AppConfig, session_key: str, username: Optional[str]) -> bool:
    cfg.lastfm_session_key = session_key
    cfg.lastfm_username = username or ""
    return save_config(cfg)
