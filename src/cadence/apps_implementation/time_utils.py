#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
"""A light wrapper around the `datetime` library, containing the calendar arithmetic
needed to expand recurring series: leap years, month lengths, strict ISO date parsing
and the week/month grids used by calendar views.

All helpers operate on naive calendar dates. No time of day or timezone is involved,
so daylight-saving shifts can never move a date."""

import datetime
import re
from enum import StrEnum, auto
from typing import NamedTuple

from dateutil.relativedelta import relativedelta

from cadence.apps_implementation.exceptions import ParseError

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# weekday indices for Sunday-first weeks
SUNDAY_FIRST_OFFSET = 1
THURSDAY = 4


class EventFrequency(StrEnum):
    DAILY = auto()
    WEEKLY = auto()
    MONTHLY = auto()
    YEARLY = auto()


class DateRange(NamedTuple):
    """Represents a duration between two specific dates."""

    start: datetime.date
    end: datetime.date

    def contains(self, d: datetime.date) -> bool:
        return self.start <= d <= self.end


def is_leap_year(year: int) -> bool:
    """Gregorian leap year test: divisible by 4 and either not divisible by 100
    or divisible by 400."""
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def days_in_month(year: int, month: int) -> int:
    if month == 2:
        return 29 if is_leap_year(year) else 28
    if month in (4, 6, 9, 11):
        return 30
    return 31


def last_day_of_month(year: int, month: int) -> datetime.date:
    return datetime.date(year, month, days_in_month(year, month))


def is_last_day_of_month(d: datetime.date) -> bool:
    return d.day == days_in_month(d.year, d.month)


def add_months(d: datetime.date, months: int) -> datetime.date:
    """Offset `d` by a number of months. The day of the month is clipped to the
    length of the target month (eg Jan 31 + 1 month is Feb 28 or Feb 29)."""
    return d + relativedelta(months=months)


def parse_iso_date(date_str: str) -> datetime.date:
    """Parse a `YYYY-MM-DD` string into a date.

    Raises
    ------
    ParseError
        If the string is not in the exact `YYYY-MM-DD` form or does not
        denote a valid calendar date (eg 2025-02-30).
    """
    if not isinstance(date_str, str) or not ISO_DATE_PATTERN.match(date_str):
        raise ParseError(f"Expected a date in YYYY-MM-DD format, got {date_str!r}")
    try:
        return datetime.date.fromisoformat(date_str)
    except ValueError as e:
        raise ParseError(f"Invalid calendar date {date_str!r}: {e}") from e


def as_date(value: str | datetime.date) -> datetime.date:
    """Coerce a `YYYY-MM-DD` string, a date or a datetime to a calendar date."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    return parse_iso_date(value)


def format_date(d: datetime.date) -> str:
    return d.isoformat()


def _sunday_first_weekday(d: datetime.date) -> int:
    return (d.weekday() + SUNDAY_FIRST_OFFSET) % 7


def week_dates(d: datetime.date) -> list[datetime.date]:
    """The seven dates of the week containing `d`. Weeks start on Sunday."""
    sunday = d - datetime.timedelta(days=_sunday_first_weekday(d))
    return [sunday + datetime.timedelta(days=i) for i in range(7)]


def weeks_at_month(year: int, month: int) -> list[list[int | None]]:
    """Lay out the days of a month as a list of Sunday-first weeks. Slots
    falling outside the month are `None`."""
    n_days = days_in_month(year, month)
    first_weekday = _sunday_first_weekday(datetime.date(year, month, 1))
    weeks = []
    week: list[int | None] = [None] * 7
    for day in range(1, n_days + 1):
        day_index = (first_weekday + day - 1) % 7
        week[day_index] = day
        if day_index == 6 or day == n_days:
            weeks.append(week)
            week = [None] * 7
    return weeks


def is_date_in_range(
    d: datetime.date, range_start: datetime.date, range_end: datetime.date
) -> bool:
    return DateRange(start=range_start, end=range_end).contains(d)


def format_month(d: datetime.date) -> str:
    return d.strftime("%B %Y")


def format_week(d: datetime.date) -> str:
    """Describe the week containing `d` as its position within a month.

    Notes
    -----
    A week belongs to the month of its Thursday, and the first week of a
    month is the one containing the month's first Thursday.
    """
    thursday = d + datetime.timedelta(days=THURSDAY - _sunday_first_weekday(d))
    first_of_month = thursday.replace(day=1)
    first_thursday = first_of_month + datetime.timedelta(
        days=(THURSDAY - _sunday_first_weekday(first_of_month)) % 7
    )
    week_number = (thursday - first_thursday).days // 7 + 1
    return f"{format_month(thursday)}, week {week_number}"
