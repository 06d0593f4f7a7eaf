"""Pydantic data models - the records passed between fetcher, parser and state."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict

# --- Enums ---


class ErrorKind(str, Enum):
    DUPLICATE_OR_INVALID_URL = "duplicate_or_invalid_url"
    NOT_A_FEED = "not_a_feed"
    NETWORK_ERROR = "network_error"
    UNKNOWN = "unknown"


class FormState(str, Enum):
    ADDED = "added"
    INVALID = "invalid"


# --- Parser output ---


class FeedInfo(BaseModel):
    title: str
    link: str
    description: str = ""


class CandidatePost(BaseModel):
    title: str
    link: str
    description: str = ""
    pub_date: datetime | None = None


class ParsedFeed(BaseModel):
    feed: FeedInfo
    posts: list[CandidatePost]


# --- Tracked entities (immutable once in state) ---


class Feed(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    link: str  # submitted source URL, unique across feeds
    title: str
    description: str = ""


class Post(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    feed_id: str
    link: str  # dedup key
    title: str
    description: str = ""
    pub_date: datetime | None = None


# --- Submission outcome ---


class SubmissionResult(BaseModel):
    status: FormState
    feed: Feed | None = None
    error: ErrorKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status == FormState.ADDED
