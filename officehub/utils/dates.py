"""
Date helpers for Turkish-locale email text.

Matches what the frontend shows for ``toLocaleDateString('tr-TR')``.
"""

from __future__ import annotations

from datetime import date, datetime

TR_MONTHS = (
    "Ocak",
    "Şubat",
    "Mart",
    "Nisan",
    "Mayıs",
    "Haziran",
    "Temmuz",
    "Ağustos",
    "Eylül",
    "Ekim",
    "Kasım",
    "Aralık",
)


def parse_date(value: str | date | datetime) -> date:
    """Accept ``date``/``datetime`` objects or ISO strings (``Z`` suffix allowed)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).date()


def format_long_date(value: str | date | datetime) -> str:
    """``19 Ekim 2026``"""
    day = parse_date(value)
    return f"{day.day} {TR_MONTHS[day.month - 1]} {day.year}"


def format_short_date(value: str | date | datetime) -> str:
    """``19.10.2026``"""
    day = parse_date(value)
    return f"{day.day:02d}.{day.month:02d}.{day.year}"


def local_midnight(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)
