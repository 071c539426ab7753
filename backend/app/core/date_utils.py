# backend/app/core/date_utils.py
"""Calendar arithmetic for billing periods and dashboards."""

import calendar
from datetime import datetime
from typing import List, Tuple


def add_months(value: datetime, months: int) -> datetime:
    """Shift by whole months, clamping the day (Jan 31 + 1 month = Feb 28/29)."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def start_of_month(value: datetime) -> datetime:
    return value.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def month_windows(now: datetime, months: int) -> List[Tuple[str, datetime, datetime]]:
    """(``YYYY-MM``, start, end) for the last ``months`` months, oldest first, current included."""
    current = start_of_month(now)
    windows = []
    for offset in range(months - 1, -1, -1):
        start = add_months(current, -offset)
        windows.append((start.strftime("%Y-%m"), start, add_months(start, 1)))
    return windows
