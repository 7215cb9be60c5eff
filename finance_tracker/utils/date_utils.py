"""Date manipulation utilities"""

from datetime import date, datetime, timezone
from typing import Tuple


def utcnow() -> datetime:
    """Timezone-aware current time in UTC"""
    return datetime.now(timezone.utc)


def month_range(year: int, month: int) -> Tuple[datetime, datetime]:
    """Return [start, end) datetimes covering a calendar month"""
    start = datetime(year, month, 1)
    if month == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month + 1, 1)
    return start, end


def months_between(start: date, end: date) -> int:
    """Whole months from start to end, a started month counts as one (minimum 1)"""
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day > start.day:
        months += 1
    return max(months, 1)


def years_between(start: date, end: date) -> int:
    """Whole years from start to end (minimum 1)"""
    years = end.year - start.year
    if (end.month, end.day) < (start.month, start.day):
        years -= 1
    return max(years, 1)


def days_until(target: date, today: date) -> int:
    """Signed day count from today to target (negative when overdue)"""
    return (target - today).days
