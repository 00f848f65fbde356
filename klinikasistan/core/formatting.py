"""Turkish money and date rendering for confirmations and reports.

Amounts are integer kuruş everywhere; rendering uses integer arithmetic only.
Report texts use the ASCII month and day names the command replies have
always used; confirmations use the accented forms.
"""
from __future__ import annotations

import datetime as _dt

TURKISH_MONTHS = [
    "Ocak", "Subat", "Mart", "Nisan", "Mayis", "Haziran",
    "Temmuz", "Agustos", "Eylul", "Ekim", "Kasim", "Aralik",
]
# Indexed by Sunday-based weekday (0=Pazar)
TURKISH_DAYS = ["Pazar", "Pazartesi", "Sali", "Carsamba", "Persembe", "Cuma", "Cumartesi"]

TURKISH_MONTHS_ACCENTED = [
    "Ocak", "Şubat", "Mart", "Nisan", "Mayıs", "Haziran",
    "Temmuz", "Ağustos", "Eylül", "Ekim", "Kasım", "Aralık",
]
TURKISH_DAYS_ACCENTED = ["Pazar", "Pazartesi", "Salı", "Çarşamba", "Perşembe", "Cuma", "Cumartesi"]


def sunday_weekday(day: _dt.date) -> int:
    """Weekday index with 0=Sunday .. 6=Saturday (schedule rows use this)."""
    return (day.weekday() + 1) % 7


def _group(n: int) -> str:
    return f"{n:,}".replace(",", ".")


def format_tl(kurus: int) -> str:
    """Whole-lira amount, half away from zero: 123450 -> '1.235 TL'."""
    sign = "-" if kurus < 0 else ""
    whole = (abs(kurus) + 50) // 100
    return f"{sign}{_group(whole)} TL"


def format_tl_detailed(kurus: int) -> str:
    """Two-decimal amount: 900000 -> '9.000,00 TL'."""
    sign = "-" if kurus < 0 else ""
    whole, frac = divmod(abs(kurus), 100)
    return f"{sign}{_group(whole)},{frac:02d} TL"


def format_amount(kurus: int) -> str:
    """Amount without currency, decimals only when present: 500000 -> '5.000', 123450 -> '1.234,5'."""
    sign = "-" if kurus < 0 else ""
    whole, frac = divmod(abs(kurus), 100)
    if not frac:
        return f"{sign}{_group(whole)}"
    return f"{sign}{_group(whole)},{f'{frac:02d}'.rstrip('0')}"


def format_date_tr(day: _dt.date) -> str:
    """'5 Ocak 2026'"""
    return f"{day.day} {TURKISH_MONTHS[day.month - 1]} {day.year}"


def format_day_month(day: _dt.date) -> str:
    """'5 Ocak'"""
    return f"{day.day} {TURKISH_MONTHS[day.month - 1]}"


def format_day_short_month(day: _dt.date) -> str:
    """'5 Oca'"""
    return f"{day.day} {TURKISH_MONTHS[day.month - 1][:3]}"


def format_date_short(day: _dt.date) -> str:
    """'05.01.2026'"""
    return f"{day.day:02d}.{day.month:02d}.{day.year}"


def format_long_weekday_date(day: _dt.date) -> str:
    """'20 Ekim Pazartesi' (confirmation style)."""
    return (
        f"{day.day} {TURKISH_MONTHS_ACCENTED[day.month - 1]} "
        f"{TURKISH_DAYS_ACCENTED[sunday_weekday(day)]}"
    )


def month_label(year: int, month: int) -> str:
    """'Ocak 2026'"""
    return f"{TURKISH_MONTHS[month - 1]} {year}"


def medal(index: int) -> str:
    """Leaderboard prefix for a 0-based rank."""
    return {0: "🥇", 1: "🥈", 2: "🥉"}.get(index, f"{index + 1}.")
