# backend/tests/test_recurrence_dates.py
from __future__ import annotations

from datetime import date, datetime

import pytest

from app.domain.recurrence import (
    DAILY,
    MONTHLY,
    QUARTERLY,
    WEEKLY,
    YEARLY,
    RecurrenceRule,
    add_months,
    js_weekday,
    next_due_date,
    upcoming_occurrences,
)


def test_monthly_clamps_to_short_month():
    assert next_due_date(MONTHLY, 1, date(2024, 1, 31), day_of_month=31) == date(2024, 2, 29)
    assert next_due_date(MONTHLY, 1, date(2023, 1, 31), day_of_month=31) == date(2023, 2, 28)


def test_monthly_without_day_of_month_never_overflows():
    assert next_due_date(MONTHLY, 1, date(2024, 1, 31)) == date(2024, 2, 29)
    assert next_due_date(MONTHLY, 2, date(2024, 12, 31)) == date(2025, 2, 28)


def test_monthly_day_of_month_moves_day():
    assert next_due_date(MONTHLY, 1, date(2024, 3, 5), day_of_month=20) == date(2024, 4, 20)


def test_weekly_shifts_forward_to_day_of_week():
    # 2024-03-04 is a Monday; +7 -> Monday 03-11; Friday (5) -> 03-15
    assert js_weekday(date(2024, 3, 4)) == 1
    assert next_due_date(WEEKLY, 1, date(2024, 3, 4), day_of_week=5) == date(2024, 3, 15)


def test_weekly_never_shifts_backward():
    # Monday + 7 -> Monday; Sunday (0) is 6 days ahead, not 1 day back
    assert next_due_date(WEEKLY, 1, date(2024, 3, 4), day_of_week=0) == date(2024, 3, 17)
    assert next_due_date(WEEKLY, 2, date(2024, 3, 4), day_of_week=1) == date(2024, 3, 18)


def test_daily_quarterly_yearly():
    assert next_due_date(DAILY, 3, date(2024, 12, 30)) == date(2025, 1, 2)
    assert next_due_date(QUARTERLY, 1, date(2024, 11, 30)) == date(2025, 2, 28)
    assert next_due_date(YEARLY, 1, date(2024, 2, 29)) == date(2025, 2, 28)
    assert next_due_date(YEARLY, 4, date(2024, 2, 29)) == date(2028, 2, 29)


def test_time_of_day_preserved():
    start = datetime(2024, 1, 31, 9, 30)
    assert next_due_date(MONTHLY, 1, start) == datetime(2024, 2, 29, 9, 30)
    assert next_due_date(DAILY, 1, start) == datetime(2024, 2, 1, 9, 30)


def test_frequency_is_case_insensitive():
    assert next_due_date("daily", 1, date(2024, 1, 1)) == date(2024, 1, 2)


@pytest.mark.parametrize("interval", [0, -1])
def test_interval_must_be_positive(interval):
    with pytest.raises(ValueError):
        next_due_date(DAILY, interval, date(2024, 1, 1))


def test_unknown_frequency_rejected():
    with pytest.raises(ValueError):
        next_due_date("HOURLY", 1, date(2024, 1, 1))


def test_add_months_handles_year_boundaries():
    assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)
    assert add_months(date(2024, 3, 31), -1) == date(2024, 2, 29)


def test_upcoming_occurrences_stops_at_end_date():
    rule = RecurrenceRule(frequency=WEEKLY, interval=1)
    out = upcoming_occurrences(rule, date(2024, 1, 1), end_date=date(2024, 1, 22), count=10)
    assert out == [date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15), date(2024, 1, 22)]


def test_upcoming_occurrences_is_deterministic():
    rule = RecurrenceRule(frequency=MONTHLY, interval=1, day_of_month=31)
    first = upcoming_occurrences(rule, date(2024, 1, 31), count=4)
    assert first == upcoming_occurrences(rule, date(2024, 1, 31), count=4)
    assert first == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)]
