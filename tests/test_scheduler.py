"""Tests for the polling scheduler."""

from __future__ import annotations

import asyncio
import logging

import httpx
import pytest

from feedloop.errors import NetworkError
from feedloop.merge import ingest_feed
from feedloop.models import CandidatePost, FeedInfo, ParsedFeed
from feedloop.scheduler import PollingScheduler, SchedulerStatus
from tests.conftest import T0, FakeGateway, make_rss


def _track(state, ids, link, *post_links):
    parsed = ParsedFeed(
        feed=FeedInfo(title=link, link=link),
        posts=[CandidatePost(title=p, link=p, pub_date=T0) for p in post_links],
    )
    return ingest_feed(state, parsed, link, ids)


def _scheduler(state, gateway, ids, sleep=None):
    kwargs = {"sleep": sleep} if sleep is not None else {}
    return PollingScheduler(state, gateway, ids=ids, interval=5.0, **kwargs)


class TestRefreshUrl:
    def test_base_link_without_posts(self, state, ids, fake_gateway):
        feed = _track(state, ids, "http://a/feed")
        assert _scheduler(state, fake_gateway, ids).refresh_url(feed) == "http://a/feed"

    def test_after_last_known_post(self, state, ids, fake_gateway):
        feed = _track(state, ids, "http://a/feed", "http://a/1")
        url = httpx.URL(_scheduler(state, fake_gateway, ids).refresh_url(feed))
        assert url.params["after"] == "2024-01-01T12:00:00.000Z"

    def test_base_link_when_last_post_has_no_date(self, state, ids, fake_gateway):
        parsed = ParsedFeed(feed=FeedInfo(title="A", link="http://a/"), posts=[CandidatePost(title="x", link="x")])
        feed = ingest_feed(state, parsed, "http://a/feed", ids)
        assert _scheduler(state, fake_gateway, ids).refresh_url(feed) == "http://a/feed"


class TestRunCycle:
    @pytest.mark.asyncio
    async def test_merges_new_posts(self, state, ids):
        _track(state, ids, "http://a/feed", "http://a/1")
        gateway = FakeGateway(
            {"http://a/feed": make_rss("A", [{"link": "http://a/1"}, {"link": "http://a/2"}])}
        )
        report = await _scheduler(state, gateway, ids).run_cycle()
        assert report.new_posts == 1
        assert report.ok
        assert [p.link for p in state.posts] == ["http://a/2", "http://a/1"]

    @pytest.mark.asyncio
    async def test_uses_freshness_url(self, state, ids):
        _track(state, ids, "http://a/feed", "http://a/1")
        gateway = FakeGateway({"http://a/feed": make_rss("A", [])})
        await _scheduler(state, gateway, ids).run_cycle()
        assert "after=" in gateway.calls[0]

    @pytest.mark.asyncio
    async def test_scenario_c_failure_is_isolated(self, state, ids, caplog):
        _track(state, ids, "http://a/feed", "http://a/1")
        feed_b = _track(state, ids, "http://b/feed", "http://b/1")
        gateway = FakeGateway(
            {
                "http://a/feed": NetworkError("connection refused", url="http://a/feed"),
                "http://b/feed": make_rss("B", [{"link": "http://b/2"}, {"link": "http://b/1"}]),
            }
        )
        with caplog.at_level(logging.WARNING, logger="feedloop.scheduler"):
            report = await _scheduler(state, gateway, ids).run_cycle()

        assert report.failures == ["http://a/feed"]
        assert report.new_posts == 1
        assert state.posts[0].link == "http://b/2"
        assert state.posts[0].feed_id == feed_b.id
        assert len(state.posts) == 3
        assert "http://a/feed" in caplog.text

    @pytest.mark.asyncio
    async def test_parse_failure_is_isolated(self, state, ids):
        _track(state, ids, "http://a/feed")
        _track(state, ids, "http://b/feed")
        gateway = FakeGateway(
            {"http://a/feed": "<html>gone</html>", "http://b/feed": make_rss("B", [{"link": "http://b/1"}])}
        )
        report = await _scheduler(state, gateway, ids).run_cycle()
        assert report.failures == ["http://a/feed"]
        assert [p.link for p in state.posts] == ["http://b/1"]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_isolated(self, state, ids):
        _track(state, ids, "http://a/feed")
        gateway = FakeGateway({"http://a/feed": RuntimeError("boom")})
        report = await _scheduler(state, gateway, ids).run_cycle()
        assert report.failures == ["http://a/feed"]

    @pytest.mark.asyncio
    async def test_idempotent_repoll(self, state, ids):
        _track(state, ids, "http://a/feed")
        gateway = FakeGateway({"http://a/feed": make_rss("A", [{"link": "http://a/1"}, {"link": "http://a/2"}])})
        scheduler = _scheduler(state, gateway, ids)
        first = await scheduler.run_cycle()
        second = await scheduler.run_cycle()
        assert first.new_posts == 2
        assert second.new_posts == 0
        assert len(state.posts) == 2

    @pytest.mark.asyncio
    async def test_waits_for_every_unit(self, state, ids):
        _track(state, ids, "http://slow/feed")
        _track(state, ids, "http://fast/feed")
        release = asyncio.Event()

        class SlowGateway:
            async def fetch(self, url):
                if url.startswith("http://slow"):
                    await release.wait()
                    return make_rss("slow", [{"link": "http://slow/1"}])
                raise NetworkError("down", url=url)

        scheduler = _scheduler(state, SlowGateway(), ids)
        task = asyncio.create_task(scheduler.run_cycle())
        await asyncio.sleep(0)
        assert scheduler.status == SchedulerStatus.POLLING
        assert not task.done()

        release.set()
        report = await task
        assert report.new_posts == 1
        assert report.failures == ["http://fast/feed"]
        assert scheduler.status == SchedulerStatus.IDLE

    @pytest.mark.asyncio
    async def test_feed_added_mid_cycle_waits_for_next(self, state, ids):
        _track(state, ids, "http://a/feed")
        late = {}

        class AddingGateway:
            async def fetch(self, url):
                if not late:
                    late["feed"] = _track(state, ids, "http://late/feed")
                return make_rss("x", [])

        report = await _scheduler(state, AddingGateway(), ids).run_cycle()
        assert report.feeds_polled == 1

    @pytest.mark.asyncio
    async def test_empty_state(self, state, ids, fake_gateway):
        report = await _scheduler(state, fake_gateway, ids).run_cycle()
        assert report.feeds_polled == 0
        assert fake_gateway.calls == []


class _StopLoop(Exception):
    pass


class TestLoop:
    @pytest.mark.asyncio
    async def test_sleeps_interval_between_cycles(self, state, ids, fake_gateway):
        delays = []
        scheduler = None

        async def fake_sleep(delay):
            delays.append((delay, scheduler.cycles, scheduler.status))
            if len(delays) == 3:
                raise _StopLoop

        scheduler = _scheduler(state, fake_gateway, ids, sleep=fake_sleep)
        with pytest.raises(_StopLoop):
            await scheduler.run_forever()

        # each delay starts after the previous cycle has settled
        assert delays == [
            (5.0, 1, SchedulerStatus.IDLE),
            (5.0, 2, SchedulerStatus.IDLE),
            (5.0, 3, SchedulerStatus.IDLE),
        ]

    @pytest.mark.asyncio
    async def test_keeps_running_through_failures(self, state, ids, recorded_sleeps):
        _track(state, ids, "http://a/feed")
        gateway = FakeGateway({"http://a/feed": NetworkError("down")})
        scheduler = _scheduler(state, gateway, ids, sleep=recorded_sleeps)
        scheduler.start()
        for _ in range(20):
            await asyncio.sleep(0)
        assert scheduler.running
        assert scheduler.cycles > 1
        await scheduler.stop()
        assert not scheduler.running
        assert scheduler.status == SchedulerStatus.IDLE

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, state, ids, fake_gateway):
        scheduler = _scheduler(state, fake_gateway, ids)
        first = scheduler.start()
        assert scheduler.start() is first
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start(self, state, ids, fake_gateway):
        await _scheduler(state, fake_gateway, ids).stop()
