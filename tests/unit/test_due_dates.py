"""Unit tests for next due date calculation"""

import pytest
from datetime import datetime
from recurring_cron.domain.due_dates import calculate_next_due_date, next_due_date_for
from recurring_cron.domain.exceptions import InvalidScheduleError, UnsupportedFrequencyError
from recurring_cron.domain.models import FrequencyType


def test_daily_adds_interval_days():
    assert calculate_next_due_date(datetime(2024, 2, 28, 9, 30), "DAILY", 1) == datetime(2024, 2, 29, 9, 30)
    assert calculate_next_due_date(datetime(2024, 12, 30), "DAILY", 3) == datetime(2025, 1, 2)


def test_weekly_every_two_weeks():
    """WEEKLY, interval 2, 2024-03-01 -> 2024-03-15"""
    assert calculate_next_due_date(datetime(2024, 3, 1), "WEEKLY", 2) == datetime(2024, 3, 15)


def test_monthly_day_31_clamps_to_leap_february():
    """MONTHLY, day 31, 2024-01-31 -> 2024-02-29"""
    result = calculate_next_due_date(datetime(2024, 1, 31), "MONTHLY", 1, day_of_month=31)
    assert result == datetime(2024, 2, 29)


def test_monthly_day_31_clamps_to_non_leap_february():
    result = calculate_next_due_date(datetime(2023, 1, 31), "MONTHLY", 1, day_of_month=31)
    assert result == datetime(2023, 2, 28)


def test_monthly_day_31_recovers_after_short_month():
    """Clamped in February, back to the 31st in March"""
    result = calculate_next_due_date(datetime(2024, 2, 29), "MONTHLY", 1, day_of_month=31)
    assert result == datetime(2024, 3, 31)


def test_monthly_day_30_in_thirty_day_month():
    result = calculate_next_due_date(datetime(2024, 3, 30), "MONTHLY", 1, day_of_month=30)
    assert result == datetime(2024, 4, 30)


def test_monthly_small_day_of_month_is_set_explicitly():
    """A rule for the 15th that drifted to the 14th is pulled back to the 15th"""
    result = calculate_next_due_date(datetime(2024, 5, 14), "MONTHLY", 1, day_of_month=15)
    assert result == datetime(2024, 6, 15)


def test_monthly_without_day_of_month_keeps_day_and_clamps():
    assert calculate_next_due_date(datetime(2024, 3, 10), "MONTHLY", 1) == datetime(2024, 4, 10)
    assert calculate_next_due_date(datetime(2024, 1, 31), "MONTHLY", 1) == datetime(2024, 2, 29)


def test_monthly_interval_crosses_year():
    result = calculate_next_due_date(datetime(2024, 11, 5), "MONTHLY", 3, day_of_month=5)
    assert result == datetime(2025, 2, 5)


def test_yearly_keeps_month_and_day():
    assert calculate_next_due_date(datetime(2024, 6, 1, 8, 0), "YEARLY", 1) == datetime(2025, 6, 1, 8, 0)


def test_yearly_from_leap_day():
    assert calculate_next_due_date(datetime(2024, 2, 29), "YEARLY", 1) == datetime(2025, 2, 28)


def test_preserves_time_of_day():
    result = calculate_next_due_date(datetime(2024, 1, 31, 23, 15), "MONTHLY", 1, day_of_month=31)
    assert result == datetime(2024, 2, 29, 23, 15)


def test_accepts_enum_members():
    assert calculate_next_due_date(datetime(2024, 3, 1), FrequencyType.WEEKLY, 1) == datetime(2024, 3, 8)


@pytest.mark.parametrize("frequency", ["DAILY", "WEEKLY", "MONTHLY", "YEARLY"])
@pytest.mark.parametrize("interval", [1, 2, 7, 12])
@pytest.mark.parametrize("day_of_month", [None, 1, 15, 28, 29, 30, 31])
def test_next_due_date_is_strictly_later(frequency, interval, day_of_month):
    """Monotonic advance for every supported frequency"""
    for current in (datetime(2024, 1, 31), datetime(2024, 2, 29), datetime(2023, 12, 31), datetime(2024, 6, 1)):
        assert calculate_next_due_date(current, frequency, interval, day_of_month) > current


def test_unsupported_frequency():
    with pytest.raises(UnsupportedFrequencyError, match="HOURLY"):
        calculate_next_due_date(datetime(2024, 3, 1), "HOURLY", 1)


@pytest.mark.parametrize("interval", [0, -1])
def test_non_positive_interval_rejected(interval):
    with pytest.raises(InvalidScheduleError):
        calculate_next_due_date(datetime(2024, 3, 1), "DAILY", interval)


def test_next_due_date_for_rule(make_rule):
    rule = make_rule(frequency_type="MONTHLY", day_of_month=31, next_due_date=datetime(2024, 1, 31))
    assert next_due_date_for(rule) == datetime(2024, 2, 29)
