"""Failure types and the classifier that maps them to user-facing kinds."""

from __future__ import annotations

import httpx

from feedloop.models import ErrorKind


class FeedloopError(Exception):
    """Base class for feedloop failures."""


class NetworkError(FeedloopError):
    """The feed could not be retrieved (transport failure or bad response)."""

    def __init__(self, message: str, url: str = ""):
        super().__init__(message)
        self.url = url


class ParseError(FeedloopError):
    """The content was fetched but is not an RSS/Atom feed."""

    is_parsing_error = True


class LinkValidationError(FeedloopError):
    """A submitted link was empty, malformed or already tracked."""

    def __init__(self, key: str, value: str = ""):
        super().__init__(key)
        self.key = key
        self.value = value


def classify_error(exc: BaseException) -> ErrorKind:
    """Map a submission failure to an ErrorKind.

    The parse marker is checked before the transport marker, so a parse failure
    raised from inside a fetch wrapper is still reported as NOT_A_FEED.
    """
    if getattr(exc, "is_parsing_error", False):
        return ErrorKind.NOT_A_FEED
    if isinstance(exc, (NetworkError, httpx.HTTPError)):
        return ErrorKind.NETWORK_ERROR
    if isinstance(exc, LinkValidationError):
        return ErrorKind.DUPLICATE_OR_INVALID_URL
    return ErrorKind.UNKNOWN


def error_message(exc: BaseException) -> str:
    """Best-effort human message for a failure (validation key when present)."""
    key = getattr(exc, "key", None)
    if key:
        return key
    text = str(exc)
    return text or classify_error(exc).value
