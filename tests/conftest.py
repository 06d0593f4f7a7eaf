"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timezone
from email.utils import format_datetime

import httpx
import pytest

from feedloop.config import Settings
from feedloop.identity import IdentityAssigner
from feedloop.state import AppState

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_rss(title: str, items: list[dict], link: str = "http://a/") -> str:
    """Build an RSS 2.0 document; items are dicts with title, link and optional pub."""
    parts = []
    for item in items:
        pub = item.get("pub")
        pub_xml = f"<pubDate>{format_datetime(pub)}</pubDate>" if pub else ""
        parts.append(
            f"<item><title>{item.get('title', item['link'])}</title>"
            f"<link>{item['link']}</link>"
            f"<description>{item.get('description', '')}</description>{pub_xml}</item>"
        )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<rss version="2.0"><channel><title>{title}</title><link>{link}</link>'
        f"<description>{title} description</description>{''.join(parts)}</channel></rss>"
    )


class FakeGateway:
    """Serves canned documents by URL; freshness params are ignored for lookup."""

    def __init__(self, responses: dict | None = None):
        self.responses = dict(responses or {})
        self.calls: list[str] = []

    async def fetch(self, url: str) -> str:
        self.calls.append(url)
        base = str(httpx.URL(url).copy_remove_param("after"))
        value = self.responses.get(url, self.responses.get(base))
        if value is None:
            raise KeyError(f"no canned response for {url}")
        if isinstance(value, BaseException):
            raise value
        return value


@pytest.fixture
def test_settings():
    """Settings with test values - no proxy, short interval."""
    return Settings(
        poll_interval_seconds=5.0,
        proxy_url="",
        request_timeout_seconds=2.0,
        log_level="DEBUG",
    )


@pytest.fixture
def state():
    return AppState()


@pytest.fixture
def ids():
    return IdentityAssigner()


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def recorded_sleeps():
    """Sleep replacement that records delays and returns immediately."""
    delays: list[float] = []

    async def _sleep(delay: float):
        delays.append(delay)

    _sleep.delays = delays
    return _sleep
