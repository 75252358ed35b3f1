"""Exception types and shared failure classification for logs, protocol and LLM output."""

from __future__ import annotations


class CodeloopError(Exception):
    """Base class for errors raised by codeloop."""


class ConfigError(CodeloopError):
    """Invalid or incomplete configuration."""


class MutationError(CodeloopError):
    """A file or method mutation could not be applied."""


# Case-sensitive on purpose: target logs use "NullReferenceException",
# "Error CS0103", etc. while plain words such as "errors: 0" must not match.
LOG_FAILURE_MARKERS: tuple[str, ...] = ("Error", "Exception")

PROTOCOL_ERROR_MARKER = "Error:"

RATE_LIMIT_PATTERNS: tuple[str, ...] = (
    "rate limit",
    "rate_limit",
    "quota",
    "429",
    "too many requests",
)


def _contains_any(text: str, patterns: tuple[str, ...]) -> bool:
    lower = text.lower()
    return any(pattern in lower for pattern in patterns)


def failure_lines(text: str) -> list[str]:
    """Return the lines of *text* that carry a failure marker, in order."""
    if not text:
        return []
    return [
        line for line in text.splitlines()
        if any(marker in line for marker in LOG_FAILURE_MARKERS)
    ]


def looks_like_protocol_error(text: str) -> bool:
    """Return ``True`` when a protocol response body reports a logical failure."""
    if not text:
        return False
    return PROTOCOL_ERROR_MARKER in text


def looks_like_rate_limit(text: str) -> bool:
    """Return ``True`` when text matches a rate/usage/quota limit."""
    if not text:
        return False
    return _contains_any(text, RATE_LIMIT_PATTERNS)
