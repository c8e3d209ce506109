"""Helpers for ``YYYY-MM`` accounting periods."""

import calendar
import re
from datetime import date
from typing import Tuple

from django.utils import timezone

from .exceptions import InvalidPeriodError

_PERIOD_RE = re.compile(r'^(\d{4})-(\d{2})$')


def parse_period(period: str) -> Tuple[date, date]:
    """
    Return the first and last day of a ``YYYY-MM`` period.

    Raises:
        InvalidPeriodError: If the value is malformed or the month is out of range
    """
    match = _PERIOD_RE.match((period or '').strip())
    if not match:
        raise InvalidPeriodError(f"Неверный период: {period!r}, ожидается ГГГГ-ММ")

    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise InvalidPeriodError(f"Неверный месяц в периоде {period!r}")

    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def period_of(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def current_period() -> str:
    return period_of(timezone.localdate())


def shift_period(period: str, months: int) -> str:
    """Move a period by ``months`` (negative goes back)."""
    first_day, _ = parse_period(period)
    index = first_day.year * 12 + (first_day.month - 1) + months
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def iter_periods(start: str, end: str):
    """Yield every period from ``start`` to ``end`` inclusive."""
    period = start
    while period <= end:
        yield period
        period = shift_period(period, 1)
