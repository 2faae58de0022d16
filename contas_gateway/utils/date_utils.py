"""Date manipulation utilities"""

import calendar
from datetime import date
from typing import List, Tuple


def add_months(start: date, months: int) -> date:
    """Shift by calendar months, clamping the day to the target month's end"""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last day of a month (inclusive)"""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def next_month(year: int, month: int) -> Tuple[int, int]:
    shifted = add_months(date(year, month, 1), 1)
    return shifted.year, shifted.month


def trailing_months(year: int, month: int, count: int) -> List[Tuple[int, int]]:
    """The ``count`` months ending at (year, month), oldest first"""
    anchor = date(year, month, 1)
    months = []
    for offset in range(count - 1, -1, -1):
        shifted = add_months(anchor, -offset)
        months.append((shifted.year, shifted.month))
    return months
