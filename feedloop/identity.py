"""Process-unique identities for feeds and posts."""

from __future__ import annotations

import itertools

from feedloop.models import CandidatePost, Feed, FeedInfo, Post


class IdentityAssigner:
    """Stamps entities with ids from a monotonically increasing counter.

    Ids are only guaranteed to be unique for the lifetime of the assigner;
    their order carries no meaning.
    """

    def __init__(self, prefix: str = ""):
        self.prefix = prefix
        self._counter = itertools.count(1)

    def next_id(self) -> str:
        return f"{self.prefix}{next(self._counter)}"

    def assign_feed_identity(self, info: FeedInfo, link: str) -> Feed:
        return Feed(id=self.next_id(), link=link, title=info.title, description=info.description)

    def assign_post_identity(self, candidate: CandidatePost, feed_id: str) -> Post:
        return Post(
            id=self.next_id(),
            feed_id=feed_id,
            link=candidate.link,
            title=candidate.title,
            description=candidate.description,
            pub_date=candidate.pub_date,
        )

    def assign_post_identities(self, candidates: list[CandidatePost], feed_id: str) -> list[Post]:
        return [self.assign_post_identity(c, feed_id) for c in candidates]


# Shared by the whole process unless a caller injects its own.
default_assigner = IdentityAssigner()
