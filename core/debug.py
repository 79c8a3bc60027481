# core/debug.py
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from .config import data_dir


LOG_FORMAT = "[%(asctime)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def debug_enabled() -> bool:
    return os.getenv("AMP_DEBUG") == "1"


def default_log_path() -> Path:
    return data_dir() / "debug.log"


class SafeFileHandler(logging.FileHandler):
    """Append-only file handler whose write failures are dropped."""

    def __init__(self, path: Path):
        super().__init__(str(path), mode="a", encoding="utf-8", delay=True)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            Path(self.baseFilename).parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            return
        super().emit(record)

    def handleError(self, record: logging.LogRecord) -> None:
        pass


def setup_logging(log_path: Optional[Path] = None) -> logging.Logger:
    level_name = os.getenv("AMP_LOG_LEVEL", "DEBUG" if debug_enabled() else "INFO").upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    for handler in list(root.handlers):
        if isinstance(handler, SafeFileHandler):
            root.removeHandler(handler)
            handler.close()

    file_handler = SafeFileHandler(log_path or default_log_path())
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    root.addHandler(file_handler)

    if debug_enabled() and not any(
        type(h) is logging.StreamHandler for h in root.handlers
    ):
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(logging.Formatter("[DEBUG] %(message)s"))
        root.addHandler(console)

    # urllib3 and asyncio are chatty at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    return root


def clear_debug_log(log_path: Optional[Path] = None) -> bool:
    path = log_path or default_log_path()
    try:
        path.write_text("", encoding="utf-8")
        return True
    except OSError:
        return False
