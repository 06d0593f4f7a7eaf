"""HTTP fetch gateway, optionally routed through an AllOrigins-style proxy."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx

from feedloop.config import Settings
from feedloop.errors import NetworkError

logger = logging.getLogger("feedloop.gateway")


def format_timestamp(when: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a trailing Z."""
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return when.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def with_freshness(url: str, when: datetime) -> str:
    """Ask for content published after `when` (keeps existing query params)."""
    return str(httpx.URL(url).copy_add_param("after", format_timestamp(when)))


class FetchGateway:
    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self.settings = settings
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=settings.request_timeout_seconds,
            follow_redirects=True,
            headers={"User-Agent": settings.user_agent},
        )

    def build_request_url(self, url: str) -> str:
        if not self.settings.uses_proxy():
            return url
        proxy = httpx.URL(self.settings.proxy_url).join("/get")
        return str(proxy.copy_merge_params({"disableCache": "true", "url": url}))

    async def fetch(self, url: str) -> str:
        """Return the raw document at `url`. Raises NetworkError on any failure."""
        request_url = self.build_request_url(url)
        try:
            resp = await self.client.get(request_url)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise NetworkError(f"Failed to fetch {url}: {e}", url=url) from e

        if not self.settings.uses_proxy():
            return resp.text

        try:
            payload = resp.json()
        except ValueError as e:
            raise NetworkError(f"Proxy returned invalid JSON for {url}", url=url) from e
        contents = payload.get("contents") if isinstance(payload, dict) else None
        if contents is None:
            status = payload.get("status", {}) if isinstance(payload, dict) else {}
            raise NetworkError(f"Proxy could not fetch {url}: {status}", url=url)
        logger.debug(f"Fetched {url} ({len(contents)} chars)")
        return contents

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> FetchGateway:
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()
