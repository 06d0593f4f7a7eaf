"""Aggregator - wires fetcher, parser, state and scheduler together."""

from __future__ import annotations

import logging
from collections.abc import Callable

from feedloop.config import Settings
from feedloop.errors import classify_error, error_message
from feedloop.gateway import FetchGateway
from feedloop.identity import IdentityAssigner, default_assigner
from feedloop.merge import ingest_feed
from feedloop.models import FormState, ParsedFeed, SubmissionResult
from feedloop.parser import parse_feed
from feedloop.scheduler import Fetcher, PollingScheduler, Sleep
from feedloop.state import AppState
from feedloop.validation import validate_link

logger = logging.getLogger("feedloop.service")


class Aggregator:
    def __init__(
        self,
        settings: Settings,
        gateway: Fetcher | None = None,
        parser: Callable[[str, str], ParsedFeed] = parse_feed,
        ids: IdentityAssigner | None = None,
        state: AppState | None = None,
        sleep: Sleep | None = None,
    ):
        self.settings = settings
        self.gateway = gateway or FetchGateway(settings)
        self.parser = parser
        self.ids = ids or default_assigner
        self.state = state or AppState()

        scheduler_kwargs = {"sleep": sleep} if sleep is not None else {}
        self.scheduler = PollingScheduler(
            self.state,
            self.gateway,
            parser=self.parser,
            ids=self.ids,
            interval=settings.poll_interval_seconds,
            **scheduler_kwargs,
        )

    async def submit(self, url: str) -> SubmissionResult:
        """Validate, fetch, parse and add a feed.

        Failures come back as a classified result, never as an exception, and
        leave the state untouched.
        """
        try:
            link = validate_link(url, self.state.feed_links())
            raw = await self.gateway.fetch(link)
            parsed = self.parser(raw, link)
            # A concurrent submit of the same link may have finished first.
            validate_link(link, self.state.feed_links())
            feed = ingest_feed(self.state, parsed, link, self.ids)
        except Exception as e:
            kind = classify_error(e)
            logger.info(f"Submission of {url!r} failed ({kind.value}): {e}")
            return SubmissionResult(status=FormState.INVALID, error=kind, message=error_message(e))

        return SubmissionResult(status=FormState.ADDED, feed=feed)

    async def aclose(self):
        await self.scheduler.stop()
        if isinstance(self.gateway, FetchGateway):
            await self.gateway.aclose()
