"""Next occurrence calculation for recurring rules"""

from datetime import datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from recurring_cron.domain.exceptions import InvalidScheduleError, UnsupportedFrequencyError
from recurring_cron.domain.models import FrequencyType, RecurringRule
from recurring_cron.utils.date_utils import last_day_of_month


def calculate_next_due_date(
    current: datetime,
    frequency_type: str,
    frequency_interval: int = 1,
    day_of_month: Optional[int] = None,
) -> datetime:
    """
    Compute the occurrence that follows ``current`` on a rule's schedule.

    Requirements:
    - DAILY / WEEKLY add whole days / weeks times the interval
    - MONTHLY adds calendar months without spilling into the next month;
      a day_of_month above 28 is clamped to the target month's last day,
      a day_of_month up to 28 is applied as-is (undoes short-month drift)
    - YEARLY adds years keeping month and day (Feb 29 -> Feb 28)
    - Time of day is preserved

    Args:
        current: The rule's current next_due_date (not the processing time)
        frequency_type: DAILY, WEEKLY, MONTHLY or YEARLY
        frequency_interval: Positive multiplier (every N periods)
        day_of_month: Preferred day for MONTHLY rules

    Returns:
        Next due date, strictly after ``current``

    Raises:
        UnsupportedFrequencyError: Unknown frequency type
        InvalidScheduleError: Interval below 1

    Example:
        2024-01-31, MONTHLY, 1, day_of_month=31 -> 2024-02-29
    """
    try:
        frequency = FrequencyType(frequency_type)
    except ValueError:
        raise UnsupportedFrequencyError(frequency_type) from None

    if frequency_interval is None or frequency_interval < 1:
        raise InvalidScheduleError(f"Frequency interval must be a positive integer, got {frequency_interval}")

    if frequency is FrequencyType.DAILY:
        return current + timedelta(days=frequency_interval)

    if frequency is FrequencyType.WEEKLY:
        return current + timedelta(weeks=frequency_interval)

    if frequency is FrequencyType.MONTHLY:
        next_date = current + relativedelta(months=frequency_interval)
        if day_of_month and day_of_month > 28:
            last_day = last_day_of_month(next_date.year, next_date.month)
            next_date = next_date.replace(day=min(day_of_month, last_day))
        elif day_of_month:
            next_date = next_date.replace(day=day_of_month)
        return next_date

    return current + relativedelta(years=frequency_interval)


def next_due_date_for(rule: RecurringRule) -> datetime:
    """Next due date of a rule, based on its current schedule position"""
    return calculate_next_due_date(
        rule.next_due_date,
        rule.frequency_type,
        rule.frequency_interval,
        rule.day_of_month,
    )
