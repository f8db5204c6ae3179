# backend/app/domain/recurrence.py
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, TypeVar

DAILY = "DAILY"
WEEKLY = "WEEKLY"
MONTHLY = "MONTHLY"
QUARTERLY = "QUARTERLY"
YEARLY = "YEARLY"

FREQUENCIES = [DAILY, WEEKLY, MONTHLY, QUARTERLY, YEARLY]

D = TypeVar("D", date, datetime)


def _last_day(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months(d: D, months: int) -> D:
    """
    Calendar month arithmetic that clamps to the target month's length
    (Jan 31 + 1 month -> Feb 28/29, never Mar 2/3).
    """
    total = d.year * 12 + (d.month - 1) + int(months)
    year, month = divmod(total, 12)
    month += 1
    return d.replace(year=year, month=month, day=min(d.day, _last_day(year, month)))


def js_weekday(d: date) -> int:
    """0=Sunday .. 6=Saturday (the convention day_of_week is stored in)."""
    return (d.weekday() + 1) % 7


def next_due_date(
    frequency: str,
    interval: int,
    from_date: D,
    day_of_month: Optional[int] = None,
    day_of_week: Optional[int] = None,
) -> D:
    """
    Advance `from_date` by one recurrence step. Pure; time-of-day is preserved.

    - DAILY: +interval days
    - WEEKLY: +interval weeks, then forward (never back) to day_of_week if set
    - MONTHLY: +interval months, day set to min(day_of_month, month length) if set
    - QUARTERLY: +3*interval months
    - YEARLY: +interval years
    """
    freq = (frequency or "").strip().upper()
    step = int(interval)
    if step < 1:
        raise ValueError(f"interval must be >= 1 (got {interval!r})")

    if freq == DAILY:
        return from_date + timedelta(days=step)

    if freq == WEEKLY:
        out = from_date + timedelta(days=step * 7)
        if day_of_week is not None:
            shift = (int(day_of_week) - js_weekday(out) + 7) % 7
            out = out + timedelta(days=shift)
        return out

    if freq == MONTHLY:
        out = add_months(from_date, step)
        if day_of_month:
            out = out.replace(day=min(int(day_of_month), _last_day(out.year, out.month)))
        return out

    if freq == QUARTERLY:
        return add_months(from_date, step * 3)

    if freq == YEARLY:
        return add_months(from_date, step * 12)

    raise ValueError(f"unknown frequency {frequency!r}")


@dataclass(frozen=True)
class RecurrenceRule:
    frequency: str
    interval: int = 1
    day_of_month: Optional[int] = None
    day_of_week: Optional[int] = None

    def advance(self, from_date: D) -> D:
        return next_due_date(
            self.frequency,
            self.interval,
            from_date,
            day_of_month=self.day_of_month,
            day_of_week=self.day_of_week,
        )


def upcoming_occurrences(
    rule: RecurrenceRule,
    next_due: D,
    *,
    end_date: Optional[D] = None,
    count: int = 5,
) -> list[D]:
    """
    The next `count` occurrences starting at `next_due` (inclusive), stopping once
    an occurrence falls after `end_date`.
    """
    out: list[D] = []
    current = next_due
    for _ in range(max(0, int(count))):
        if end_date is not None and current > end_date:
            break
        out.append(current)
        current = rule.advance(current)
    return out
