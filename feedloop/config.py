"""Configuration loaded from environment variables / .env file."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

from dotenv import load_dotenv


@dataclass
class Settings:
    # Polling
    poll_interval_seconds: float = 5.0

    # Fetching (empty proxy_url = fetch feeds directly)
    proxy_url: str = "https://allorigins.hexlet.app"
    request_timeout_seconds: float = 10.0
    user_agent: str = "feedloop/0.1 (RSS reader)"

    # Logging
    log_level: str = "INFO"

    # Feeds to subscribe to on start
    feeds: list[str] = field(default_factory=list)

    def validate(self) -> list[str]:
        """Validate configuration. Returns list of error strings (empty = valid)."""
        errors = []

        if self.poll_interval_seconds <= 0:
            errors.append(f"POLL_INTERVAL_SECONDS must be > 0, got {self.poll_interval_seconds}")

        if self.request_timeout_seconds <= 0:
            errors.append(f"REQUEST_TIMEOUT_SECONDS must be > 0, got {self.request_timeout_seconds}")

        if self.proxy_url:
            parsed = urlparse(self.proxy_url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                errors.append(f"PROXY_URL does not look valid: {self.proxy_url!r}")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            errors.append(f"LOG_LEVEL is not a logging level: {self.log_level!r}")

        return errors

    def uses_proxy(self) -> bool:
        return bool(self.proxy_url)


def load_settings() -> Settings:
    load_dotenv()

    return Settings(
        poll_interval_seconds=float(os.environ.get("POLL_INTERVAL_SECONDS", "5")),
        proxy_url=os.environ.get("PROXY_URL", "https://allorigins.hexlet.app"),
        request_timeout_seconds=float(os.environ.get("REQUEST_TIMEOUT_SECONDS", "10")),
        user_agent=os.environ.get("USER_AGENT", "feedloop/0.1 (RSS reader)"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        feeds=[f.strip() for f in os.environ.get("FEEDLOOP_FEEDS", "").split(",") if f.strip()],
    )
