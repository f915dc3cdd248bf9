"""Shared fixtures: an in-process HTTP session and a recording sink."""

import pytest
import requests
from requests.structures import CaseInsensitiveDict
from requests.utils import get_encoding_from_headers

from offline_sync.core.fetcher import PageFetcher
from offline_sync.core.notifications import NotificationSink


def make_response(url, status=200, body=b"", content_type="text/html; charset=utf-8"):
    if isinstance(body, str):
        body = body.encode("utf-8")
    resp = requests.Response()
    resp.status_code = status
    resp._content = body
    resp.headers = CaseInsensitiveDict({"Content-Type": content_type})
    resp.url = url
    resp.encoding = get_encoding_from_headers(resp.headers)
    return resp


class FakeSession:
    """Stands in for requests.Session; routes URLs to canned responses."""

    def __init__(self, routes=None):
        self.headers = CaseInsensitiveDict()
        self.routes = dict(routes or {})
        self.requests = []
        self.closed = False

    def get(self, url, timeout=None, headers=None):
        self.requests.append({"url": url, "timeout": timeout})
        route = self.routes.get(url)
        if route is None:
            raise requests.exceptions.ConnectionError(f"no route to {url}")
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(url)
        return route

    def close(self):
        self.closed = True


class RecordingSink(NotificationSink):
    def __init__(self):
        self.progress_events = []
        self.contents = []

    def progress(self, progress):
        self.progress_events.append(progress)

    def content_ready(self, content):
        self.contents.append(content)


def page(body_html, title="Page"):
    return f"<html><head><title>{title}</title></head><body>{body_html}</body></html>"


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def fetcher(fake_session):
    return PageFetcher(session=fake_session, timeout=5)


@pytest.fixture
def sink():
    return RecordingSink()
