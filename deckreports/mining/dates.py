"""Date helpers shared by the miners.

``parse_relative_date`` resolves phrases such as ``"2 months ago"`` against
the current time.  Month and year offsets move the calendar fields; when the
target month is shorter the day is clamped to its last day.
"""

from __future__ import annotations

import calendar
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Optional, TypeVar

T = TypeVar("T")

_RELATIVE_DATE_RE = re.compile(
    r"(\d+)\s+(second|minute|hour|day|week|month|year)s?\s+ago", re.IGNORECASE
)

_ABSOLUTE_DATE_FORMATS = ("%B %d %Y", "%b %d %Y", "%d %B %Y", "%d %b %Y", "%Y-%m-%d")
_ORDINAL_RE = re.compile(r"(?<=\d)(?:st|nd|rd|th)\b", re.IGNORECASE)
_TRAILING_TIME_RE = re.compile(
    r"\s+(?:at\s+)?(\d{1,2}):(\d{2})(?::(\d{2}))?\s*([ap])?\.?m?\.?$", re.IGNORECASE
)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _shift_months(dt: datetime, months: int) -> datetime:
    total = dt.year * 12 + (dt.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def parse_relative_date(text: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """Return *now* minus the offset described by *text*, or ``None``.

    Args:
        text: A phrase containing ``<N> <unit>[s] ago``.
        now: Reference time.  Defaults to the current UTC time.
    """
    match = _RELATIVE_DATE_RE.search(text or "")
    if not match:
        return None

    amount = int(match.group(1))
    unit = match.group(2).lower()
    now = now or _now_utc()

    if unit == "month":
        return _shift_months(now, amount)
    if unit == "year":
        return _shift_months(now, amount * 12)
    if unit == "week":
        return now - timedelta(weeks=amount)
    return now - timedelta(**{f"{unit}s": amount})


def truncate_to_utc_midnight(dt: datetime) -> datetime:
    """Drop the time of day, keeping the UTC calendar date."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def _split_time(s: str) -> tuple[str, tuple[int, int, int]]:
    match = _TRAILING_TIME_RE.search(s)
    if not match:
        return s, (0, 0, 0)
    hour, minute, second, meridiem = match.groups()
    hour = int(hour)
    if meridiem:
        hour = hour % 12 + (12 if meridiem.lower() == "p" else 0)
    return s[: match.start()], (hour, int(minute), int(second or 0))


def parse_absolute_date(text: str) -> Optional[datetime]:
    """Parse a calendar date such as ``"March 1st, 2024 10:00 am"`` as UTC.

    Commas and ordinal suffixes are ignored.  Without a trailing time the
    result is UTC midnight.
    """
    s = _ORDINAL_RE.sub("", (text or "").strip())
    if not s:
        return None
    s, (hour, minute, second) = _split_time(s)
    s = " ".join(s.replace(",", " ").split())
    for fmt in _ABSOLUTE_DATE_FORMATS:
        try:
            parsed = datetime.strptime(s, fmt)
        except ValueError:
            continue
        try:
            return parsed.replace(hour=hour, minute=minute, second=second, tzinfo=timezone.utc)
        except ValueError:
            return None
    return None


def sort_by_posted_at(
    items: Iterable[T],
    key: Callable[[T], Any] = lambda item: item.posted_at,
) -> list[T]:
    """Sort newest first; undated items go last in their original order.

    ``sorted`` is stable, so ties keep their relative order too.
    """
    items = list(items)
    dated = [i for i in items if key(i) is not None]
    undated = [i for i in items if key(i) is None]
    dated.sort(key=key, reverse=True)
    return dated + undated
