"""Tests for Turkish relative date resolution."""
from __future__ import annotations

import datetime as _dt
import unittest
from zoneinfo import ZoneInfo

from klinikasistan.core.formatting import sunday_weekday
from klinikasistan.orchestrator.dates import DAY_MAP, DateResolver, Period, next_weekday, normalize

IST = ZoneInfo("Europe/Istanbul")

# Tuesday 2026-01-06, mid-morning in Istanbul
NOW = _dt.datetime(2026, 1, 6, 7, 30, tzinfo=_dt.timezone.utc)


class TestResolveSingleDate(unittest.TestCase):
    def setUp(self) -> None:
        self.resolver = DateResolver(IST)

    def test_empty_and_today(self):
        for expr in ("", "bugün", "bugun", "  BUGÜN "):
            self.assertEqual(self.resolver.resolve_single_date(expr, NOW), _dt.date(2026, 1, 6), expr)

    def test_tomorrow(self):
        self.assertEqual(self.resolver.resolve_single_date("yarın", NOW), _dt.date(2026, 1, 7))
        self.assertEqual(self.resolver.resolve_single_date("Yarin", NOW), _dt.date(2026, 1, 7))

    def test_every_weekday_name_is_strictly_in_the_future_and_matches(self):
        today = _dt.date(2026, 1, 6)
        for name, weekday in DAY_MAP.items():
            day = self.resolver.resolve_single_date(name, NOW)
            self.assertEqual(sunday_weekday(day), weekday, name)
            self.assertGreater(day, today, name)
            self.assertLessEqual((day - today).days, 7, name)

    def test_same_weekday_rolls_to_next_week(self):
        self.assertEqual(self.resolver.resolve_single_date("salı", NOW), _dt.date(2026, 1, 13))
        self.assertEqual(self.resolver.resolve_single_date("SALI", NOW), _dt.date(2026, 1, 13))

    def test_unknown_is_none(self):
        self.assertIsNone(self.resolver.resolve_single_date("gelecek ay", NOW))

    def test_uses_clinic_local_day(self):
        # 22:30 UTC on Jan 6 is already Jan 7 in Istanbul (UTC+3)
        late = _dt.datetime(2026, 1, 6, 22, 30, tzinfo=_dt.timezone.utc)
        self.assertEqual(self.resolver.resolve_single_date("", late), _dt.date(2026, 1, 7))


class TestResolvePeriod(unittest.TestCase):
    def setUp(self) -> None:
        self.resolver = DateResolver(IST)

    def test_month_name_resolves_within_reference_year(self):
        period = self.resolver.resolve_period("ocak", NOW)
        self.assertEqual(period, Period(_dt.date(2026, 1, 1), _dt.date(2026, 1, 31), "Ocak 2026"))
        feb = self.resolver.resolve_period("Şubat", NOW)
        self.assertEqual((feb.start, feb.end), (_dt.date(2026, 2, 1), _dt.date(2026, 2, 28)))

    def test_this_week_is_monday_to_sunday(self):
        period = self.resolver.resolve_period("bu hafta", NOW)
        self.assertEqual(period.start, _dt.date(2026, 1, 5))
        self.assertEqual(period.end, _dt.date(2026, 1, 11))

    def test_week_containing_a_sunday_starts_previous_monday(self):
        sunday = _dt.datetime(2026, 1, 11, 9, 0, tzinfo=_dt.timezone.utc)
        period = self.resolver.this_week(sunday)
        self.assertEqual((period.start, period.end), (_dt.date(2026, 1, 5), _dt.date(2026, 1, 11)))

    def test_today_and_tomorrow_are_single_days(self):
        today = self.resolver.resolve_period("bugün", NOW)
        self.assertEqual((today.start, today.end, today.label), (_dt.date(2026, 1, 6), _dt.date(2026, 1, 6), "6 Ocak"))
        tomorrow = self.resolver.resolve_period("yarın", NOW)
        self.assertEqual(tomorrow.start, _dt.date(2026, 1, 7))

    def test_unknown_and_empty_fall_back_to_current_month(self):
        for expr in ("", "bu ay", "geçen sene"):
            period = self.resolver.resolve_period(expr, NOW)
            self.assertEqual(period.label, "Ocak 2026", expr)

    def test_period_contains(self):
        period = self.resolver.current_month(NOW)
        self.assertIn(_dt.date(2026, 1, 31), period)
        self.assertNotIn(_dt.date(2026, 2, 1), period)


class TestHelpers(unittest.TestCase):
    def test_next_weekday_never_returns_today(self):
        monday = _dt.date(2026, 1, 5)
        self.assertEqual(next_weekday(monday, 1), _dt.date(2026, 1, 12))
        self.assertEqual(next_weekday(monday, 0), _dt.date(2026, 1, 11))

    def test_normalize_dotted_capital_i(self):
        self.assertEqual(normalize("  İPTAL "), "iptal")
        self.assertEqual(normalize("PAZARTESİ"), "pazartesi")
