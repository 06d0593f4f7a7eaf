"""Submission-time checks for feed links."""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import HttpUrl, TypeAdapter, ValidationError

from feedloop.errors import LinkValidationError

REQUIRED = "errors.required"
INVALID_URL = "errors.invalid_url"
DUPLICATE = "errors.duplicate"

_http_url = TypeAdapter(HttpUrl)


def validate_link(value: str, known_links: Iterable[str]) -> str:
    """Return the stripped link, or raise LinkValidationError with a message key."""
    link = (value or "").strip()
    if not link:
        raise LinkValidationError(REQUIRED, value)
    try:
        _http_url.validate_python(link)
    except ValidationError as e:
        raise LinkValidationError(INVALID_URL, link) from e
    if link in set(known_links):
        raise LinkValidationError(DUPLICATE, link)
    return link
