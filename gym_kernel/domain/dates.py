"""Calendar helpers for contract periods."""

import calendar
from datetime import date


def add_months(start: date, months: int) -> date:
    """
    ``start`` moved forward by whole months.

    The day is clamped to the last day of the target month, so
    31 January + 1 month is 28 (or 29) February.
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)
