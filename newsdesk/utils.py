"""Text helpers shared by widgets."""

import re
from datetime import datetime, timezone


def truncate_text(text: str, max_length: int = 100) -> str:
    """Truncate text to max length with ellipsis.

    Args:
        text: Text to truncate.
        max_length: Maximum length before truncation.

    Returns:
        Truncated text with ellipsis if needed.
    """
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def slugify(text: str) -> str:
    """Convert text to a URL slug: lowercase, hyphen separated, no punctuation."""
    slug = re.sub(r"[^\w\s-]", "", text.lower().strip())
    slug = re.sub(r"\s+", "-", slug)
    return re.sub(r"-+", "-", slug)


def format_date(value: datetime | str) -> str:
    """Format a date like "March 05, 2024"."""
    return _to_datetime(value).strftime("%B %d, %Y")


def format_date_relative(value: datetime | str, now: datetime | None = None) -> str:
    """Describe how long ago a date was, falling back to format_date after a week.

    Args:
        value: Datetime or ISO 8601 string. Naive values are taken as UTC.
        now: Reference time, defaults to the current time.
    """
    date = _to_datetime(value)
    now = _to_datetime(now or datetime.now(timezone.utc))
    seconds = int((now - date).total_seconds())

    if seconds < 60:
        return "just now"
    for unit, size, limit in (("minute", 60, 60), ("hour", 3600, 24), ("day", 86400, 7)):
        amount = seconds // size
        if amount < limit:
            return f"{amount} {unit}{'' if amount == 1 else 's'} ago"
    return format_date(date)


def _to_datetime(value: datetime | str) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value
