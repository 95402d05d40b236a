# src/linkflow/tasks/recurrence.py

from __future__ import annotations

import calendar
from datetime import date, timedelta

from .task_models import RepeatRule, RepeatType


def _month_last_day(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _add_days(previous: date, days: int) -> date | None:
    try:
        return previous + timedelta(days=days)
    except OverflowError:
        return None


def _next_weekly(previous: date, days: tuple[int, ...]) -> date | None:
    current = previous.weekday()
    for day in days:
        if day > current:
            return _add_days(previous, day - current)
    # Wrap into next week.
    return _add_days(previous, 7 - current + days[0])


def _next_monthly(previous: date, days: tuple[int, ...]) -> date | None:
    last = _month_last_day(previous.year, previous.month)
    for day in days:
        clamped = min(day, last)
        if clamped > previous.day:
            return previous.replace(day=clamped)

    year, month = (previous.year + 1, 1) if previous.month == 12 else (previous.year, previous.month + 1)
    if year > date.max.year:
        return None
    return date(year, month, min(days[0], _month_last_day(year, month)))


def next_occurrence(previous: date, rule: RepeatRule) -> date | None:
    """
    Date of the occurrence that follows `previous` under `rule`.

    Pure: depends only on its arguments. Weekly/monthly rules with an empty day
    set fall back to daily; build_repeat_rule() never produces such rules.
    Returns None when the next occurrence would fall after date.max.
    """
    days = tuple(sorted(set(rule.days)))

    if rule.type == RepeatType.WEEKLY:
        days = tuple(d for d in days if 0 <= d <= 6)
        if days:
            return _next_weekly(previous, days)

    elif rule.type == RepeatType.MONTHLY:
        days = tuple(d for d in days if 1 <= d <= 31)
        if days:
            return _next_monthly(previous, days)

    return _add_days(previous, 1)
