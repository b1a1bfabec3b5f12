"""Calendar-day helpers: DateKey normalization, months and the display window."""

import re
from datetime import date, datetime, timedelta
from typing import List, Union
from zoneinfo import ZoneInfo

from ..config import settings

DateLike = Union[date, datetime, str]

YEAR_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def get_timezone() -> ZoneInfo:
    """Get the configured timezone."""
    return ZoneInfo(settings.timezone)


def get_today() -> date:
    """Get today's date in the configured timezone."""
    return datetime.now(get_timezone()).date()


def to_date(value: DateLike) -> date:
    """
    Normalize a date-like value to a calendar day.

    Datetimes keep their own calendar day; no timezone shift is applied,
    so 2026-02-10T23:30+03:00 is still 2026-02-10.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            raise ValueError(f"Invalid date: {value!r}")
    raise TypeError(f"Cannot convert {type(value).__name__} to a date")


def to_date_key(value: DateLike) -> str:
    """DateKey form of a calendar day: yyyy-MM-dd."""
    return to_date(value).isoformat()


def year_month(value: DateLike) -> str:
    """yyyy-MM key of the month containing the given day."""
    return to_date(value).strftime("%Y-%m")


def is_year_month(value: str) -> bool:
    return bool(YEAR_MONTH_RE.match(value or ""))


def parse_year_month(value: str) -> date:
    """First day of a yyyy-MM month."""
    if not is_year_month(value):
        raise ValueError(f"Invalid month key: {value!r} (expected yyyy-MM)")
    year, month = value.split("-")
    return date(int(year), int(month), 1)


def add_days(value: DateLike, days: int) -> date:
    return to_date(value) + timedelta(days=days)


def add_months(month_start: date, months: int) -> date:
    """First day of the month `months` away from the given month."""
    index = month_start.year * 12 + (month_start.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def end_of_month(value: DateLike) -> date:
    return add_months(to_date(value).replace(day=1), 1) - timedelta(days=1)


def date_span(start: DateLike, end: DateLike) -> List[date]:
    """Every day from start to end, both inclusive, in calendar order."""
    current, last = to_date(start), to_date(end)
    if last < current:
        current, last = last, current
    days = []
    while current <= last:
        days.append(current)
        current += timedelta(days=1)
    return days


def calendar_window(month_start: DateLike) -> List[date]:
    """
    The days shown on one calendar screen: the given month and the next one.
    """
    first = to_date(month_start).replace(day=1)
    return date_span(first, end_of_month(add_months(first, 1)))


def is_weekend(value: DateLike) -> bool:
    return to_date(value).weekday() in settings.weekend_day_numbers
