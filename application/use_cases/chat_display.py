"""Formatting helpers for chat lists."""

from datetime import date, datetime, timezone
from typing import Optional, Union


def format_chat_title(title: str, limit: int = 25) -> str:
    """Truncate long titles to ``limit`` characters plus an ellipsis."""
    return title[:limit] + "..." if len(title) > limit else title


def format_relative_date(
    value: Union[datetime, str], now: Optional[datetime] = None
) -> str:
    """Render a timestamp as Today / Yesterday / N days ago, else an ISO date.

    Days are counted by calendar date in UTC.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    day: date = value.astimezone(timezone.utc).date()
    diff_days = abs((now.astimezone(timezone.utc).date() - day).days)

    if diff_days == 0:
        return "Today"
    if diff_days == 1:
        return "Yesterday"
    if diff_days <= 7:
        return f"{diff_days} days ago"
    return day.isoformat()
