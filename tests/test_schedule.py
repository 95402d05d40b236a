# tests/test_schedule.py

from __future__ import annotations

from datetime import date, datetime

import pytest

from linkflow.tasks.schedule import (
    EMPTY_SCHEDULE,
    ScheduleFields,
    combine_due_at,
    compute_remind_at,
    normalize,
    normalize_for_recurring_task,
    set_due_date,
    set_reminder,
    set_time,
    to_relative_reminder,
)
from linkflow.tasks.task_models import Reminder, RepeatRule, RepeatType, Task

SAMPLES = [
    (None, None, None),
    ("2024-05-01", None, None),
    ("2024-05-01", "09:30", None),
    ("2024-05-01", "09:30", Reminder(offset_minutes=10)),
    ("2024-05-01", "09:30", Reminder(offset_minutes=-5)),
    ("2024-05-01", "9:30", Reminder(offset_minutes=10)),
    ("not-a-date", "09:30", Reminder(offset_minutes=10)),
    (None, "09:30", Reminder(offset_minutes=10)),
    ("  2024-05-01 ", " 09:30 ", {"type": "relative", "offsetMinutes": 7.9}),
    ("2024-05-01", "09:30", {"type": "absolute", "offsetMinutes": 7}),
    ("2024-05-01", "09:30", {"type": "relative", "offsetMinutes": "soon"}),
    (20240501, 930, Reminder(offset_minutes=1)),
]


@pytest.mark.parametrize("due_date,time,reminder", SAMPLES)
def test_normalize_never_violates_invariants(due_date, time, reminder) -> None:
    out = normalize(due_date, time, reminder)
    if out.time is not None:
        assert out.due_date is not None
    if out.reminder is not None:
        assert out.due_date is not None and out.time is not None
        assert out.reminder.offset_minutes >= 0


@pytest.mark.parametrize("due_date,time,reminder", SAMPLES)
def test_normalize_is_idempotent(due_date, time, reminder) -> None:
    once = normalize(due_date, time, reminder)
    assert normalize(*once) == once


def test_invalid_date_clears_everything() -> None:
    assert normalize("2024/05/01", "09:30", Reminder(10)) == EMPTY_SCHEDULE
    assert normalize(None, "09:30", Reminder(10)) == EMPTY_SCHEDULE


def test_invalid_time_keeps_date_only() -> None:
    assert normalize("2024-05-01", "930", Reminder(10)) == ScheduleFields("2024-05-01", None, None)


def test_reminder_offset_is_floored_and_clamped() -> None:
    assert normalize("2024-05-01", "09:30", {"type": "relative", "offsetMinutes": 7.9}).reminder == Reminder(7)
    assert normalize("2024-05-01", "09:30", Reminder(-5)).reminder == Reminder(0)
    assert normalize(" 2024-05-01 ", " 09:30 ", None) == ScheduleFields("2024-05-01", "09:30", None)


def test_recurring_task_keeps_time_without_date() -> None:
    rule = RepeatRule(type=RepeatType.DAILY)
    out = normalize_for_recurring_task(None, "08:00", Reminder(15), rule)
    assert out == ScheduleFields(None, "08:00", Reminder(15))

    # Still validated: a bad time is dropped together with the reminder.
    assert normalize_for_recurring_task(None, "8am", Reminder(15), rule) == ScheduleFields(None, None, None)


def test_recurring_variant_without_rule_is_plain_normalize() -> None:
    assert normalize_for_recurring_task(None, "08:00", Reminder(15), None) == EMPTY_SCHEDULE
    assert normalize_for_recurring_task("2024-05-01", "08:00", None, None) == ScheduleFields("2024-05-01", "08:00", None)


def test_set_reminder_without_schedule_is_rejected() -> None:
    fields = ScheduleFields("2024-05-01", None, None)
    assert set_reminder(fields, Reminder(10)) == fields


def test_set_time_anchors_undated_schedule_to_today() -> None:
    out = set_time(EMPTY_SCHEDULE, "18:00", date(2024, 5, 3))
    assert out == ScheduleFields("2024-05-03", "18:00", None)


def test_clearing_time_or_date_drops_dependants() -> None:
    full = ScheduleFields("2024-05-01", "09:30", Reminder(10))
    assert set_time(full, None, date(2024, 5, 3)) == ScheduleFields("2024-05-01", None, None)
    assert set_due_date(full, None) == EMPTY_SCHEDULE
    assert set_due_date(full, "2024-06-01") == ScheduleFields("2024-06-01", "09:30", Reminder(10))


def test_due_and_remind_at() -> None:
    assert combine_due_at("2024-05-01", "09:30") == datetime(2024, 5, 1, 9, 30)
    assert combine_due_at("2024-02-30", "09:30") is None
    assert combine_due_at("2024-05-01", None) is None

    task = Task(id="t", title="x", due_date="2024-05-01", time="09:30", reminder=to_relative_reminder(15))
    assert compute_remind_at(task) == datetime(2024, 5, 1, 9, 15)


def test_empty_weekly_or_monthly_rule_is_not_active() -> None:
    for rtype in (RepeatType.WEEKLY, RepeatType.MONTHLY):
        assert normalize_for_recurring_task(None, "08:00", Reminder(5), RepeatRule(type=rtype)) == EMPTY_SCHEDULE


def test_only_ascii_digits_are_accepted() -> None:
    assert normalize("٢٠٢٤-٠٥-٠١", None, None) == EMPTY_SCHEDULE
    assert normalize("2024-05-01", "٠٩:٣٠", None) == ScheduleFields("2024-05-01", None, None)
