"""RSS/Atom parsing via feedparser."""

from __future__ import annotations

import io
import logging
from datetime import datetime, timezone

import feedparser

from feedloop.errors import ParseError
from feedloop.models import CandidatePost, FeedInfo, ParsedFeed

logger = logging.getLogger("feedloop.parser")


def _entry_date(entry) -> datetime | None:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    return datetime(*parsed[:6], tzinfo=timezone.utc)


def parse_feed(raw: str, source_link: str) -> ParsedFeed:
    """Parse a raw feed document. Raises ParseError if it is not a feed."""
    # Passed as a stream so feedparser never treats the text as a URL or a
    # filename. The charset header matches the re-encoding.
    parsed = feedparser.parse(
        io.BytesIO(raw.encode("utf-8")),
        response_headers={"content-type": "application/xml; charset=utf-8"},
    )
    if not parsed.get("version") and not parsed.entries:
        reason = parsed.get("bozo_exception") or "no RSS/Atom root element"
        raise ParseError(f"{source_link} is not a feed: {reason}")

    meta = parsed.feed
    info = FeedInfo(
        title=meta.get("title") or source_link,
        link=meta.get("link") or source_link,
        description=meta.get("subtitle") or meta.get("description") or "",
    )
    posts = [
        CandidatePost(
            title=entry.get("title", ""),
            link=entry.get("link", ""),
            description=entry.get("summary") or entry.get("description") or "",
            pub_date=_entry_date(entry),
        )
        for entry in parsed.entries
    ]
    if parsed.get("bozo"):
        logger.debug(f"Feed {source_link} parsed with warnings: {parsed.get('bozo_exception')}")
    return ParsedFeed(feed=info, posts=posts)
