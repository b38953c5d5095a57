"""Date manipulation utilities"""

import calendar
from datetime import date


def days_in_month(year: int, month: int) -> int:
    """Number of days in the given calendar month"""
    return calendar.monthrange(year, month)[1]


def add_months(from_date: date, months: int, day: int | None = None) -> date:
    """
    Move a date forward by whole calendar months.

    The day of month defaults to from_date's day and is clamped to the last
    valid day of the target month (Jan 31 + 1 month -> Feb 28/29).
    """
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    target_day = day if day is not None else from_date.day
    return date(year, month, min(target_day, days_in_month(year, month)))


def same_month(a: date, b: date) -> bool:
    return a.year == b.year and a.month == b.month
