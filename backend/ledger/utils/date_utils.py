"""
Calendar helpers for the ledger engine.

Series step arithmetic (recurring frequencies and installment units) and the
month/day clamping used to build credit-card invoice dates.
"""

import calendar
from datetime import date, timedelta
from typing import Optional, Tuple

from dateutil.relativedelta import relativedelta

# Step added per occurrence, keyed by frequency/installment unit
FREQUENCY_STEPS = {
    "day": relativedelta(days=1),
    "week": relativedelta(weeks=1),
    "biweekly": relativedelta(days=15),
    "month": relativedelta(months=1),
    "bimonthly": relativedelta(months=2),
    "quarter": relativedelta(months=3),
    "year": relativedelta(years=1),
}


def add_frequency(current: date, frequency: str) -> Optional[date]:
    """
    Return the next occurrence date after ``current`` for ``frequency``.

    Month-based steps clamp to the last day of the target month
    (Jan 31 + 1 month = Feb 28/29). Unknown frequencies return None.
    """
    step = FREQUENCY_STEPS.get(frequency)
    if step is None:
        return None
    return current + step


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def clamp_day(year: int, month: int, day: int) -> date:
    """Date for ``day`` in the given month, clamped to the month's last day."""
    return date(year, month, min(day, days_in_month(year, month)))


def shift_month(year: int, month: int, months: int) -> Tuple[int, int]:
    """(year, month) moved by ``months`` calendar months (negative goes back)."""
    shifted = date(year, month, 1) + relativedelta(months=months)
    return shifted.year, shifted.month


def effective_closing_day(closing_day: int, on_date: date) -> int:
    # A card closing on the 31st closes on the last day of shorter months
    return min(closing_day, days_in_month(on_date.year, on_date.month))


def closing_period(closing_day: int, year: int, month: int) -> Tuple[date, date]:
    """
    Covering dates of the invoice for (year, month).

    The period ends on that month's closing date and starts one day after the
    previous month's closing date.
    """
    period_end = clamp_day(year, month, closing_day)
    prev_year, prev_month = shift_month(year, month, -1)
    period_start = clamp_day(prev_year, prev_month, closing_day) + timedelta(days=1)
    return period_start, period_end
