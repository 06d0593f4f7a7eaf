"""Polling scheduler - re-fetches every tracked feed on a fixed delay.

One cycle fans out a unit of work per feed (fetch, parse, merge) and waits for
all of them to settle. A failing unit is logged and dropped; it never cancels
its siblings or stops the loop. The next cycle starts `interval` seconds after
the previous one settled.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Protocol

from feedloop.gateway import with_freshness
from feedloop.identity import IdentityAssigner, default_assigner
from feedloop.merge import last_known_post, merge_posts
from feedloop.models import Feed, ParsedFeed, Post
from feedloop.parser import parse_feed
from feedloop.state import AppState

logger = logging.getLogger("feedloop.scheduler")


class Fetcher(Protocol):
    async def fetch(self, url: str) -> str: ...


Parser = Callable[[str, str], ParsedFeed]
Sleep = Callable[[float], Awaitable[None]]


class SchedulerStatus(str, Enum):
    IDLE = "idle"
    POLLING = "polling"


@dataclass
class CycleReport:
    cycle: int
    feeds_polled: int = 0
    new_posts: int = 0
    failures: list[str] = field(default_factory=list)  # links of feeds that failed

    @property
    def ok(self) -> bool:
        return not self.failures


class PollingScheduler:
    def __init__(
        self,
        state: AppState,
        gateway: Fetcher,
        parser: Parser = parse_feed,
        ids: IdentityAssigner = default_assigner,
        interval: float = 5.0,
        sleep: Sleep = asyncio.sleep,
    ):
        self.state = state
        self.gateway = gateway
        self.parser = parser
        self.ids = ids
        self.interval = interval
        self._sleep = sleep
        self.status = SchedulerStatus.IDLE
        self.cycles = 0
        self._task: asyncio.Task | None = None

    def refresh_url(self, feed: Feed) -> str:
        """URL to re-fetch: scoped to content newer than the last known post, if any."""
        last = last_known_post(self.state, feed)
        if last is None or last.pub_date is None:
            return feed.link
        return with_freshness(feed.link, last.pub_date)

    async def poll_feed(self, feed: Feed) -> list[Post]:
        """Fetch, parse and merge one feed. Errors propagate to the caller."""
        raw = await self.gateway.fetch(self.refresh_url(feed))
        parsed = self.parser(raw, feed.link)
        return merge_posts(self.state, feed, parsed.posts, self.ids)

    async def _poll_isolated(self, feed: Feed, report: CycleReport) -> None:
        try:
            posts = await self.poll_feed(feed)
        except Exception as e:
            report.failures.append(feed.link)
            logger.warning(f"Polling {feed.link} failed: {e}")
            return
        report.new_posts += len(posts)

    async def run_cycle(self) -> CycleReport:
        """Poll every feed tracked at cycle start; returns once all have settled."""
        feeds = list(self.state.feeds)
        report = CycleReport(cycle=self.cycles + 1, feeds_polled=len(feeds))
        self.status = SchedulerStatus.POLLING
        try:
            await asyncio.gather(*(self._poll_isolated(feed, report) for feed in feeds))
        finally:
            self.status = SchedulerStatus.IDLE
        self.cycles += 1

        if report.new_posts:
            logger.info(f"Cycle {report.cycle}: {report.new_posts} new posts from {len(feeds)} feeds")
        else:
            logger.debug(f"Cycle {report.cycle}: no new posts ({len(report.failures)} failures)")
        return report

    async def run_forever(self) -> None:
        while True:
            await self.run_cycle()
            await self._sleep(self.interval)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Start the polling loop on the running event loop."""
        if not self.running:
            self._task = asyncio.create_task(self.run_forever())
            logger.info(f"Polling every {self.interval}s")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        self.status = SchedulerStatus.IDLE
        logger.info(f"Polling stopped after {self.cycles} cycles")
