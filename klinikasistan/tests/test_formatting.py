"""Tests for money and date rendering."""
from __future__ import annotations

import datetime as _dt
import unittest

from klinikasistan.core.formatting import (
    format_amount,
    format_date_short,
    format_date_tr,
    format_day_short_month,
    format_long_weekday_date,
    format_tl,
    format_tl_detailed,
    medal,
    sunday_weekday,
)


class TestMoney(unittest.TestCase):
    def test_format_tl_rounds_to_whole_lira(self):
        self.assertEqual(format_tl(123450), "1.235 TL")
        self.assertEqual(format_tl(0), "0 TL")
        self.assertEqual(format_tl(-150), "-2 TL")

    def test_format_tl_detailed(self):
        self.assertEqual(format_tl_detailed(900000), "9.000,00 TL")
        self.assertEqual(format_tl_detailed(12345678), "123.456,78 TL")
        self.assertEqual(format_tl_detailed(-5), "-0,05 TL")

    def test_format_amount(self):
        self.assertEqual(format_amount(500000), "5.000")
        self.assertEqual(format_amount(123450), "1.234,5")
        self.assertEqual(format_amount(2500000), "25.000")


class TestDates(unittest.TestCase):
    def test_renderings(self):
        day = _dt.date(2026, 1, 5)
        self.assertEqual(format_date_tr(day), "5 Ocak 2026")
        self.assertEqual(format_day_short_month(day), "5 Oca")
        self.assertEqual(format_date_short(day), "05.01.2026")

    def test_long_weekday_date_uses_accented_names(self):
        self.assertEqual(format_long_weekday_date(_dt.date(2025, 10, 20)), "20 Ekim Pazartesi")
        self.assertEqual(format_long_weekday_date(_dt.date(2026, 2, 4)), "4 Şubat Çarşamba")

    def test_sunday_weekday(self):
        self.assertEqual(sunday_weekday(_dt.date(2026, 1, 4)), 0)
        self.assertEqual(sunday_weekday(_dt.date(2026, 1, 10)), 6)

    def test_medal(self):
        self.assertEqual([medal(i) for i in range(4)], ["🥇", "🥈", "🥉", "4."])
