"""Calendar-month helpers for rent and reporting periods."""

import calendar
from datetime import date, datetime

from loanbook.accrual import as_calendar_date


def month_start(value: date | datetime | str) -> date:
    """First day of the month containing ``value``."""
    return as_calendar_date(value).replace(day=1)


def next_month(reference_month: date) -> date:
    """First day of the following month."""
    if reference_month.month == 12:
        return date(reference_month.year + 1, 1, 1)
    return date(reference_month.year, reference_month.month + 1, 1)


def previous_month(reference_month: date) -> date:
    """First day of the preceding month."""
    if reference_month.month == 1:
        return date(reference_month.year - 1, 12, 1)
    return date(reference_month.year, reference_month.month - 1, 1)


def due_date_in_month(payment_day: int, reference_month: date) -> date:
    """Due date within a month, clamping the day to the month's length."""
    last_day = calendar.monthrange(reference_month.year, reference_month.month)[1]
    return reference_month.replace(day=min(payment_day, last_day))
