"""
Billing Cycle Calculator

A billing cycle is the user's monthly window, anchored on a chosen
day of the month instead of the calendar month.

This is DETERMINISTIC - pure date arithmetic, no I/O.

DESIGN DECISION: Dates are built with lenient calendar arithmetic.
A day past the end of a month overflows into the next month
(start day 31 in February lands on 2 or 3 March) and day 0 is the last
day of the previous month. We never clamp. Clamping would silently move
cycle boundaries for users whose start day is 29-31.
"""

from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from wallet.models.finance import BillingCycle, Transaction

DEFAULT_BILLING_START_DAY = 1

END_OF_DAY = time(23, 59, 59, 999000)


def _calendar_date(year: int, month_index: int, day: int) -> date:
    """
    Build a date from a zero-based month index and a day that may overflow.

    `month_index` may be negative or above 11; `day` may be 0 or larger
    than the month. Both roll over into neighbouring months.
    """
    year += month_index // 12
    month = month_index % 12 + 1
    return date(year, month, 1) + timedelta(days=day - 1)


def shift_months(moment: datetime, months: int) -> datetime:
    """
    Move `moment` by whole months, keeping the time of day.

    Uses the same overflow rule as the billing cycle: 31 March minus
    one month is 2 March (or 3 March outside leap years), not 29 February.
    """
    shifted = _calendar_date(moment.year, moment.month - 1 + months, moment.day)
    return datetime.combine(shifted, moment.timetz())


def get_billing_cycle(
    now: datetime,
    billing_start_day: Optional[int] = None,
) -> BillingCycle:
    """
    Compute the billing cycle containing `now`.

    Args:
        now: The current date-time
        billing_start_day: Configured start day (1-31). Unset means 1.

    Returns:
        BillingCycle with start at 00:00:00.000 and end at 23:59:59.999

    Values outside 1-31 are not checked here; the profile model rejects
    them before they reach the calculator.
    """
    start_day = billing_start_day or DEFAULT_BILLING_START_DAY
    month_index = now.month - 1

    if now.day >= start_day:
        start = _calendar_date(now.year, month_index, start_day)
        end = _calendar_date(now.year, month_index + 1, start_day - 1)
    else:
        start = _calendar_date(now.year, month_index - 1, start_day)
        end = _calendar_date(now.year, month_index, start_day - 1)

    return BillingCycle(
        start=datetime.combine(start, time.min, tzinfo=now.tzinfo),
        end=datetime.combine(end, END_OF_DAY, tzinfo=now.tzinfo),
    )


def is_in_cycle(moment: datetime, cycle: BillingCycle) -> bool:
    """Closed interval check: both boundaries belong to the cycle."""
    return cycle.start <= moment <= cycle.end


def filter_cycle_transactions(
    transactions: Iterable[Transaction],
    cycle: BillingCycle,
) -> list[Transaction]:
    """Keep the transactions whose economic date falls inside `cycle`."""
    return [tx for tx in transactions if is_in_cycle(tx.date, cycle)]
