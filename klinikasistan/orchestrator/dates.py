"""Turkish relative date resolution anchored to an injected reference instant.

Every business day in the application is a calendar date in the clinic's
timezone. This module is the one place that turns an instant into such a day;
callers receive ``datetime.date`` values or inclusive ``Period`` ranges.
"""
from __future__ import annotations

import calendar
import datetime as _dt
from dataclasses import dataclass
from typing import Optional
from zoneinfo import ZoneInfo

from klinikasistan.core.formatting import format_day_month, month_label, sunday_weekday

MONTH_MAP = {
    "ocak": 1,
    "subat": 2, "şubat": 2,
    "mart": 3,
    "nisan": 4,
    "mayis": 5, "mayıs": 5,
    "haziran": 6,
    "temmuz": 7,
    "agustos": 8, "ağustos": 8,
    "eylul": 9, "eylül": 9,
    "ekim": 10,
    "kasim": 11, "kasım": 11,
    "aralik": 12, "aralık": 12,
}

# Sunday-based: 0=pazar .. 6=cumartesi
DAY_MAP = {
    "pazar": 0,
    "pazartesi": 1,
    "sali": 2, "salı": 2,
    "carsamba": 3, "çarşamba": 3,
    "persembe": 4, "perşembe": 4,
    "cuma": 5,
    "cumartesi": 6,
}

_TODAY = ("", "bugün", "bugun")
_TOMORROW = ("yarın", "yarin")
_THIS_MONTH = ("", "bu ay")
THIS_WEEK = "bu hafta"


@dataclass(frozen=True)
class Period:
    """Inclusive date range with a display label."""

    start: _dt.date
    end: _dt.date
    label: str

    def __contains__(self, day: _dt.date) -> bool:
        return self.start <= day <= self.end


def normalize(expression: str) -> str:
    """Lower-case and trim; a capital dotted İ becomes a plain i."""
    return expression.replace("İ", "i").lower().strip()


def local_date(moment: _dt.datetime, tz: ZoneInfo) -> _dt.date:
    """Clinic-local calendar day of ``moment``; naive values are taken as local."""
    if moment.tzinfo is None:
        return moment.date()
    return moment.astimezone(tz).date()


def next_weekday(today: _dt.date, target: int) -> _dt.date:
    """Next occurrence of a Sunday-based weekday, never ``today`` itself."""
    offset = (target - sunday_weekday(today) + 7) % 7
    return today + _dt.timedelta(days=offset or 7)


def week_range(today: _dt.date) -> tuple[_dt.date, _dt.date]:
    """Monday..Sunday week containing ``today``."""
    weekday = sunday_weekday(today)
    monday = today + _dt.timedelta(days=-6 if weekday == 0 else 1 - weekday)
    return monday, monday + _dt.timedelta(days=6)


def month_range(year: int, month: int) -> Period:
    last = calendar.monthrange(year, month)[1]
    return Period(_dt.date(year, month, 1), _dt.date(year, month, last), month_label(year, month))


class DateResolver:
    """Resolves ``bugün``, ``yarın``, weekday names, month names and ``bu hafta``."""

    def __init__(self, tz: ZoneInfo) -> None:
        self.tz = tz

    def today(self, now: _dt.datetime) -> _dt.date:
        return local_date(now, self.tz)

    def resolve_single_date(self, expression: str, now: _dt.datetime) -> Optional[_dt.date]:
        """Single day for an expression, or None when unrecognised."""
        expr = normalize(expression)
        today = self.today(now)
        if expr in _TODAY:
            return today
        if expr in _TOMORROW:
            return today + _dt.timedelta(days=1)
        if expr in DAY_MAP:
            return next_weekday(today, DAY_MAP[expr])
        return None

    def resolve_period(self, expression: str, now: _dt.datetime) -> Period:
        """Date range for an expression; unrecognised input means the current month."""
        expr = normalize(expression)
        today = self.today(now)
        if expr in _THIS_MONTH:
            return self.current_month(now)
        if expr in _TODAY[1:]:
            return Period(today, today, format_day_month(today))
        if expr in _TOMORROW:
            tomorrow = today + _dt.timedelta(days=1)
            return Period(tomorrow, tomorrow, format_day_month(tomorrow))
        if expr == THIS_WEEK:
            return self.this_week(now)
        if expr in MONTH_MAP:
            return month_range(today.year, MONTH_MAP[expr])
        return self.current_month(now)

    def current_month(self, now: _dt.datetime) -> Period:
        today = self.today(now)
        return month_range(today.year, today.month)

    def current_year(self, now: _dt.datetime) -> Period:
        year = self.today(now).year
        return Period(_dt.date(year, 1, 1), _dt.date(year, 12, 31), str(year))

    def this_week(self, now: _dt.datetime) -> Period:
        start, end = week_range(self.today(now))
        return Period(start, end, "Bu Hafta")
