"""Deduplication and merge of parsed posts into shared state."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from feedloop.identity import IdentityAssigner, default_assigner
from feedloop.models import CandidatePost, Feed, ParsedFeed, Post
from feedloop.state import AppState

logger = logging.getLogger("feedloop.merge")


def select_new_posts(candidates: Iterable[CandidatePost], known_links: set[str]) -> list[CandidatePost]:
    """Candidates whose link is not already known, in their original order.

    A link repeated within the batch is taken once, at its first position.
    """
    seen = set(known_links)
    fresh = []
    for candidate in candidates:
        if candidate.link in seen:
            continue
        seen.add(candidate.link)
        fresh.append(candidate)
    return fresh


def ingest_feed(
    state: AppState,
    parsed: ParsedFeed,
    source_link: str,
    ids: IdentityAssigner = default_assigner,
) -> Feed:
    """Add a freshly submitted feed with all of its posts appended to state.

    Links already shown for other feeds are not checked here; only repeats
    inside the document are dropped.
    """
    feed = ids.assign_feed_identity(parsed.feed, source_link)
    posts = ids.assign_post_identities(select_new_posts(parsed.posts, set()), feed.id)
    state.add_feed(feed, posts)
    logger.info(f"Added feed {feed.link} ({len(posts)} posts)")
    return feed


def merge_posts(
    state: AppState,
    feed: Feed,
    candidates: list[CandidatePost],
    ids: IdentityAssigner = default_assigner,
) -> list[Post]:
    """Prepend the posts not yet in state and return them.

    New-ness is decided against the links of the whole post collection, not
    just this feed's posts, so a link already shown for another feed is
    skipped too.
    """
    fresh = select_new_posts(candidates, state.known_links())
    if not fresh:
        return []
    posts = ids.assign_post_identities(fresh, feed.id)
    state.prepend_posts(posts)
    logger.debug(f"Merged {len(posts)} new posts for {feed.link}")
    return posts


def last_known_post(state: AppState, feed: Feed) -> Post | None:
    """First post of the feed in collection order, used as the freshness cursor.

    Because poll results are prepended this is normally the newest post, but it
    is found by position, not by comparing pub dates.
    """
    return next((p for p in state.posts if p.feed_id == feed.id), None)
