# core/http.py
import requests

USER_AGENT = "AppleMusicPresence/1.0"
REQUEST_TIMEOUT = 10


def new_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT})
    return session
