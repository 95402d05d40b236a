# src/linkflow/tasks/schedule.py

from __future__ import annotations

"""
Schedule normalization.

Every edit to (due_date, time, reminder) goes through normalize() so that a
persisted task never violates:
- time set      => due_date set
- reminder set  => due_date and time set

Invalid input is repaired, never raised: malformed values are dropped together
with everything that depends on them.
"""

import math
import re
from datetime import date, datetime, timedelta
from typing import Any, NamedTuple

from .task_models import Reminder, RepeatRule, RepeatType, Task

DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)
TIME_PATTERN = re.compile(r"\d{2}:\d{2}", re.ASCII)

# Internal stand-in used when a recurring task has no concrete date yet.
_PLACEHOLDER_DATE = "2000-01-01"


class ScheduleFields(NamedTuple):
    due_date: str | None
    time: str | None
    reminder: Reminder | None


EMPTY_SCHEDULE = ScheduleFields(None, None, None)


def _normalize_due_date(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed if DATE_PATTERN.fullmatch(trimmed) else None


def _normalize_time(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed if TIME_PATTERN.fullmatch(trimmed) else None


def _normalize_reminder(reminder: Any) -> Reminder | None:
    # Accept either a Reminder or a plain mapping ({"type": "relative", "offsetMinutes": 10}).
    if reminder is None:
        return None
    if isinstance(reminder, Reminder):
        kind, offset = reminder.kind, reminder.offset_minutes
    elif isinstance(reminder, dict):
        kind = reminder.get("type", reminder.get("kind"))
        offset = reminder.get("offset_minutes", reminder.get("offsetMinutes"))
    else:
        return None

    if kind != "relative":
        return None
    try:
        minutes = math.floor(float(offset))
    except (TypeError, ValueError, OverflowError):
        return None
    return Reminder(offset_minutes=max(0, minutes))


def normalize(due_date: Any, time: Any, reminder: Any) -> ScheduleFields:
    """Return schedule fields that satisfy the date/time/reminder invariants."""
    d = _normalize_due_date(due_date)
    if d is None:
        return EMPTY_SCHEDULE

    t = _normalize_time(time)
    if t is None:
        return ScheduleFields(d, None, None)

    return ScheduleFields(d, t, _normalize_reminder(reminder))


def _is_active_rule(repeat: RepeatRule | None) -> bool:
    if repeat is None:
        return False
    return repeat.type == RepeatType.DAILY or bool(repeat.days)


def normalize_for_recurring_task(
    due_date: Any,
    time: Any,
    reminder: Any,
    repeat: RepeatRule | None,
) -> ScheduleFields:
    """
    Like normalize(), but a task with an active repeat rule may keep its time and
    reminder without a concrete date (rollover assigns the date on completion).
    A weekly/monthly rule with no days is not active.
    """
    if not _is_active_rule(repeat) or _normalize_due_date(due_date) is not None:
        return normalize(due_date, time, reminder)

    fields = normalize(_PLACEHOLDER_DATE, time, reminder)
    return ScheduleFields(None, fields.time, fields.reminder)


def set_due_date(fields: ScheduleFields, value: str | None) -> ScheduleFields:
    d = _normalize_due_date(value)
    if d is None:
        return EMPTY_SCHEDULE
    return normalize(d, fields.time, fields.reminder)


def set_time(fields: ScheduleFields, value: str | None, today: date) -> ScheduleFields:
    """Setting a time on an undated schedule anchors it to `today`."""
    t = _normalize_time(value)
    if t is None:
        return normalize(fields.due_date, None, None)
    return normalize(fields.due_date or today.isoformat(), t, fields.reminder)


def set_reminder(fields: ScheduleFields, reminder: Reminder | None) -> ScheduleFields:
    # A reminder needs both a date and a time; otherwise the request is dropped.
    if not fields.due_date or not fields.time:
        return fields._replace(reminder=None)
    return fields._replace(reminder=_normalize_reminder(reminder))


def to_relative_reminder(offset_minutes: float = 10) -> Reminder:
    return Reminder(offset_minutes=max(0, math.floor(offset_minutes)))


def combine_due_at(due_date: str | None, time: str | None) -> datetime | None:
    """Local (naive) due datetime, or None if either part is missing/unparsable."""
    if not due_date or not time:
        return None
    try:
        return datetime.strptime(f"{due_date} {time}", "%Y-%m-%d %H:%M")
    except ValueError:
        return None


def compute_remind_at(task: Task) -> datetime | None:
    if task.reminder is None or task.reminder.kind != "relative":
        return None
    due_at = combine_due_at(task.due_date, task.time)
    if due_at is None:
        return None
    return due_at - timedelta(minutes=max(0, task.reminder.offset_minutes))
