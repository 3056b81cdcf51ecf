"""Timestamp parsing and calendar bucket labels shared by the engines."""

from __future__ import annotations

from datetime import datetime, timezone

# Fixed English names; strftime would follow the process locale.
MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def parse_datetime(value: str | None) -> datetime | None:
    """Parse an ISO-8601 datetime string into aware UTC, None on failure."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError, TypeError):
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def month_label(value: datetime) -> str:
    """``"Mon YYYY"`` bucket label, e.g. ``"Mar 2024"``."""
    return f"{MONTH_ABBR[value.month - 1]} {value.year}"


def trailing_months(now: datetime, n: int = 12) -> list[str]:
    """Labels for the *n* calendar months ending with *now*'s month, oldest first."""
    labels: list[str] = []
    for back in range(n - 1, -1, -1):
        total = now.year * 12 + (now.month - 1) - back
        year, month0 = divmod(total, 12)
        labels.append(f"{MONTH_ABBR[month0]} {year}")
    return labels
