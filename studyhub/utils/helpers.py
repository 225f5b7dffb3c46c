"""
Common utility functions and helpers.
"""
from datetime import datetime, timezone
from typing import Iterable, List
import math
import re


WORDS_PER_MINUTE = 200

_HTML_TAG_RE = re.compile(r"<[^>]+>")


def strip_html(text: str) -> str:
    """
    Remove HTML tags from rich-text content.

    Args:
        text: HTML string (may be empty or None)

    Returns:
        Plain text with tags removed
    """
    if not text:
        return ""
    return _HTML_TAG_RE.sub("", text)


def compute_read_time(content: str) -> int:
    """
    Estimate reading time in minutes for rich-text content.

    Args:
        content: HTML or plain text

    Returns:
        Whole minutes at 200 words per minute, never less than 1
    """
    words = [w for w in re.split(r"\s+", strip_html(content)) if w]
    return max(1, math.ceil(len(words) / WORDS_PER_MINUTE))


def clean_tags(tags: Iterable[str]) -> List[str]:
    """Trim tags and drop empty ones, keeping order."""
    return [t.strip() for t in tags if isinstance(t, str) and t.strip()]


def unique_preserving_order(values: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def start_of_utc_day(now: datetime = None) -> datetime:
    """Midnight (UTC) of the day containing *now*."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
