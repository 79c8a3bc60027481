# tests/test_image_upload.py
from unittest.mock import MagicMock

import pytest
import requests

from core import image_upload
from core.image_upload import ImageUploader


def _response(ok=True, text="", json_data=None):
    r = MagicMock()
    r.ok = ok
    r.text = text
    r.json.return_value = json_data
    return r


@pytest.fixture
def session():
    return MagicMock()


def test_catbox_first(session):
    session.post.return_value = _response(text="https://files.catbox.moe/abc.jpg\n")
    assert ImageUploader(session).upload(b"img") == "https://files.catbox.moe/abc.jpg"
    assert session.post.call_count == 1
    assert session.post.call_args.args[0] == image_upload.CATBOX_URL


def test_falls_through_to_0x0_and_forces_https(session):
    session.post.side_effect = [
        requests.exceptions.Timeout("slow"),
        _response(text="http://0x0.st/xyz.jpg"),
    ]
    assert ImageUploader(session).upload(b"img") == "https://0x0.st/xyz.jpg"


def test_falls_through_to_fileio(session):
    session.post.side_effect = [
        _response(ok=False),
        _response(text="error page"),
        _response(json_data={"success": True, "link": "https://file.io/q1"}),
    ]
    assert ImageUploader(session).upload(b"img") == "https://file.io/q1"


def test_all_hosts_failing_is_not_fatal(session):
    session.post.side_effect = [
        _response(ok=False),
        requests.exceptions.ConnectionError("down"),
        _response(json_data={"success": False}),
    ]
    assert ImageUploader(session).upload(b"img") is None


def test_no_bytes_no_requests(session):
    assert ImageUploader(session).upload(None) is None
    assert ImageUploader(session).upload(b"") is None
    session.post.assert_not_called()
