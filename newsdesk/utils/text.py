"""Text cleanup helpers for feed items and prompts."""

import html
import math
import re

from newsdesk.constants import CHARS_PER_TOKEN, MAX_DESCRIPTION_LENGTH, READING_WORDS_PER_MINUTE

_CDATA_RE = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")


def strip_html(text: str | None) -> str:
    """Remove CDATA wrappers and tags, decode entities and collapse whitespace.

    Examples:
        >>> strip_html("<![CDATA[<p>Rates &amp; bonds</p>]]>")
        'Rates & bonds'
    """
    if not text:
        return ""
    cleaned = _CDATA_RE.sub(r"\1", text)
    cleaned = _TAG_RE.sub("", cleaned)
    cleaned = html.unescape(cleaned)
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def truncate_description(text: str, max_length: int = MAX_DESCRIPTION_LENGTH) -> str:
    """Cut text longer than max_length to max_length - 3 characters plus "..."."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def calculate_reading_time(text: str, words_per_minute: int = READING_WORDS_PER_MINUTE) -> int:
    """Estimated reading time in whole minutes, never below one."""
    words = len(text.split())
    return max(1, math.ceil(words / words_per_minute))


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def truncate(text: str | None, limit: int) -> str | None:
    if text is None:
        return None
    return text if len(text) <= limit else text[:limit]
