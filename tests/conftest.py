import threading

import pytest
import requests


class RecordingSink:
    """Notification sink that keeps what it was asked to send."""

    def __init__(self, fail_on=(), fail_all=False):
        self.sent = []
        self.attempts = 0
        self.fail_on = set(fail_on)
        self.fail_all = fail_all
        self._lock = threading.Lock()

    def send(self, title, body=None):
        with self._lock:
            self.attempts += 1
        if self.fail_all or title in self.fail_on:
            raise RuntimeError(f"cannot send {title}")
        with self._lock:
            self.sent.append((title, body))


class FakeResponse:
    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """Stands in for requests.Session; every call gets the same response."""

    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text
        self.requested = []
        self.posts = []

    def get(self, url, **kwargs):
        self.requested.append(url)
        return FakeResponse(self.status_code, self.text)

    def post(self, url, **kwargs):
        self.posts.append((url, kwargs))
        return FakeResponse(self.status_code)

    def close(self):
        pass


def catalog_block(name, price):
    return f"<div><span>★</span><p>{name}<br>\n<br>{price}</p></div>"


def catalog_page(*blocks):
    return (
        "<html><head><title>skin buy</title></head><body>"
        '<div class="contents"><div class="inner"><div class="main"><section>'
        + "".join(catalog_block(name, price) for name, price in blocks)
        + "</section></div></div></div>"
        "<footer>★</footer></body></html>"
    )


@pytest.fixture
def make_sink():
    return RecordingSink


@pytest.fixture
def make_session():
    return FakeSession


@pytest.fixture
def make_page():
    return catalog_page
