"""In-memory shared state with change notifications.

Feeds are kept in submission order. Posts from a poll cycle are prepended as
one block, so the collection reads newest-cycle-first. Nothing is ever
removed: retention is unbounded for the life of the process.

All mutations are synchronous. Under asyncio they run between awaits and are
therefore serialized without a lock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from feedloop.models import Feed, Post

logger = logging.getLogger("feedloop.state")

FEED_ADDED = "feed_added"
POSTS_ADDED = "posts_added"
POST_VIEWED = "post_viewed"


@dataclass
class StateEvent:
    kind: str  # FEED_ADDED, POSTS_ADDED, POST_VIEWED
    feed: Feed | None = None
    posts: list[Post] = field(default_factory=list)
    post: Post | None = None


Observer = Callable[[StateEvent], None]


class AppState:
    def __init__(self):
        self.feeds: list[Feed] = []
        self.posts: list[Post] = []
        self.displayed_post_id: str | None = None
        self.viewed_post_ids: set[str] = set()
        self._observers: list[Observer] = []

    # --- Observers ---

    def subscribe(self, observer: Observer) -> None:
        self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def _emit(self, event: StateEvent) -> None:
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception as e:
                logger.warning(f"State observer failed on {event.kind}: {e}")

    # --- Reads ---

    def get_feed(self, feed_id: str) -> Feed | None:
        return next((f for f in self.feeds if f.id == feed_id), None)

    def find_post(self, post_id: str) -> Post | None:
        return next((p for p in self.posts if p.id == post_id), None)

    def posts_for_feed(self, feed_id: str) -> list[Post]:
        return [p for p in self.posts if p.feed_id == feed_id]

    def known_links(self) -> set[str]:
        """Links of every post in state, across all feeds."""
        return {p.link for p in self.posts}

    def feed_links(self) -> list[str]:
        return [f.link for f in self.feeds]

    # --- Mutations ---

    def add_feed(self, feed: Feed, posts: list[Post]) -> None:
        """Track a new feed and append its initial posts at the end."""
        for post in posts:
            if post.feed_id != feed.id:
                raise ValueError(f"Post {post.id} does not belong to feed {feed.id}")
        self.feeds.append(feed)
        self.posts.extend(posts)
        self._emit(StateEvent(kind=FEED_ADDED, feed=feed, posts=list(posts)))

    def prepend_posts(self, posts: list[Post]) -> None:
        """Insert a block of posts at the front, keeping their order."""
        if not posts:
            return
        feed_ids = {f.id for f in self.feeds}
        for post in posts:
            if post.feed_id not in feed_ids:
                raise ValueError(f"Post {post.id} references unknown feed {post.feed_id}")
        self.posts[:0] = posts
        self._emit(StateEvent(kind=POSTS_ADDED, feed=self.get_feed(posts[0].feed_id), posts=list(posts)))

    def view_post(self, post_id: str) -> Post | None:
        post = self.find_post(post_id)
        if post is None:
            return None
        self.viewed_post_ids.add(post.id)
        self.displayed_post_id = post.id
        self._emit(StateEvent(kind=POST_VIEWED, post=post))
        return post
