# core/image_upload.py
import logging
from typing import Callable, List, Optional, Tuple

import requests

from .http import REQUEST_TIMEOUT

log = logging.getLogger(__name__)

CATBOX_URL = "https://catbox.moe/user/api.php"
ZEROX0_URL = "https://0x0.st"
FILEIO_URL = "https://file.io"


def _upload_catbox(session: requests.Session, data: bytes) -> Optional[str]:
    r = session.post(
        CATBOX_URL,
        data={"reqtype": "fileupload"},
        files={"fileToUpload": ("cover.jpg", data)},
        timeout=REQUEST_TIMEOUT,
    )
    if not r.ok:
        return None
    url = r.text.strip()
    return url if url.startswith("https://files.catbox.moe/") else None


def _upload_0x0(session: requests.Session, data: bytes) -> Optional[str]:
    r = session.post(
        ZEROX0_URL,
        files={"file": ("cover.jpg", data)},
        timeout=REQUEST_TIMEOUT,
    )
    if not r.ok:
        return None
    url = r.text.strip()
    if url.startswith("https://0x0.st/") or url.startswith("http://0x0.st/"):
        return url.replace("http://", "https://", 1)
    return None


def _upload_fileio(session: requests.Session, data: bytes) -> Optional[str]:
    r = session.post(
        FILEIO_URL,
        files={"file": ("cover.jpg", data)},
        timeout=REQUEST_TIMEOUT,
    )
    if not r.ok:
        return None
    payload = r.json()
    if isinstance(payload, dict) and payload.get("success") is True:
        return payload.get("link") or None
    return None


Uploader = Callable[[requests.Session, bytes], Optional[str]]

# Priority order; the first host that answers with a URL wins.
HOSTS: List[Tuple[str, Uploader]] = [
    ("catbox", _upload_catbox),
    ("0x0", _upload_0x0),
    ("file.io", _upload_fileio),
]


class ImageUploader:
    def __init__(self, session: requests.Session, hosts: Optional[List[Tuple[str, Uploader]]] = None):
        self.session = session
        self.hosts = hosts if hosts is not None else HOSTS

    def upload(self, data: Optional[bytes]) -> Optional[str]:
        if not data:
            return None
        for name, upload in self.hosts:
            try:
                url = upload(self.session, data)
            except (requests.RequestException, ValueError) as e:
                log.info("Artwork upload to %s failed: %s", name, e)
                continue
            if url:
                log.debug("Artwork uploaded to %s: %s", name, url)
                return url
        return None
