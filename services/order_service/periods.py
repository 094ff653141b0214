"""
Calendar periods used by the admin order filter and the sales report.

Weeks start on Sunday. Week ``n`` of a year starts on the Sunday on or before
January 1st plus ``n - 1`` weeks. Every range is half-open and returned as UTC
instants.
"""
from datetime import date, datetime, timedelta

from .lifecycle import as_utc
from .numbering import day_bounds

FILTER_TYPES = ("date", "week", "month", "year")


def _sunday_on_or_before(day: date) -> date:
    return day - timedelta(days=(day.weekday() + 1) % 7)


def _range(first: date, last_exclusive: date, tz):
    start, _ = day_bounds(first, tz)
    end, _ = day_bounds(last_exclusive, tz)
    return start, end


def _month_start(year: int, month: int) -> date:
    return date(year, month, 1)


def _next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


def month_range(year: int, month: int, tz):
    first = _month_start(year, month)
    return _range(first, _next_month(first), tz)


def week_range(year: int, week: int, tz):
    first = _sunday_on_or_before(date(year, 1, 1)) + timedelta(weeks=week - 1)
    return _range(first, first + timedelta(days=7), tz)


def period_range(
    filter_type: str | None,
    now: datetime,
    tz,
    day: date | None = None,
    week: int | None = None,
    month: int | None = None,
    year: int | None = None,
):
    """Resolve an admin filter to ``(start, end)``; ``None`` means no filter.

    Missing values fall back to the period containing ``now``. A date filter
    without a date is no filter at all.
    """
    today = as_utc(now).astimezone(tz).date()

    if filter_type == "date":
        if day is None:
            return None
        return _range(day, day + timedelta(days=1), tz)

    if filter_type == "week":
        if week is not None and year is not None:
            return week_range(year, week, tz)
        first = _sunday_on_or_before(today)
        return _range(first, first + timedelta(days=7), tz)

    if filter_type == "month":
        if month is not None and year is not None:
            return month_range(year, month, tz)
        return month_range(today.year, today.month, tz)

    if filter_type == "year":
        target = year if year is not None else today.year
        return _range(date(target, 1, 1), date(target + 1, 1, 1), tz)

    return None


def last_twelve_months_start(now: datetime, tz) -> datetime:
    """First instant of the same month one year ago."""
    today = as_utc(now).astimezone(tz).date()
    start, _ = day_bounds(date(today.year - 1, today.month, 1), tz)
    return start
