# src/linkflow/tasks/task_api.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from ..core.ports import TaskRepo, TemplateRegistry
from .actions import ActionDispatcher, DispatchError, ExecutableTarget, describe_dispatch_error
from .recurrence import next_occurrence
from .schedule import normalize_for_recurring_task
from .task_models import NewTaskInput, RepeatRule, Task, build_repeat_rule

logger = logging.getLogger(__name__)

_UNSET: Any = object()


@dataclass(slots=True, frozen=True)
class CompletionResult:
    task: Task
    spawned: Task | None = None


def _reference_date(task: Task, today: date) -> date:
    if task.due_date:
        try:
            return date.fromisoformat(task.due_date)
        except ValueError:
            logger.warning("Task %s has unparsable due_date=%r; rolling over from today", task.id, task.due_date)
    return today


def on_task_completion_changed(
    task_store: TaskRepo,
    task_id: str,
    completed: bool,
    *,
    today: date,
) -> CompletionResult | None:
    """
    Single entry point for "task completion changed".

    On a false -> true transition of a task with a repeat rule, the next
    occurrence is created as a new task; the completed one stays as history.
    A recurring task without a date rolls over from `today`.
    Returns None if the task does not exist.
    """
    task = task_store.get_task(task_id)
    if task is None:
        return None

    was_completed = task.completed
    if was_completed == completed:
        return CompletionResult(task=task)

    next_date = None
    if completed and task.repeat is not None:
        next_date = next_occurrence(_reference_date(task, today), task.repeat)
        if next_date is None:
            logger.warning("Task %s has no next occurrence after %s; not rolling over", task.id, task.due_date)

    task.completed = completed
    saved = task_store.save_task(task)

    if next_date is None:
        return CompletionResult(task=saved)

    spawned = task_store.create_task(
        NewTaskInput(
            title=saved.title,
            detail=saved.detail,
            list_id=saved.list_id,
            due_date=next_date.isoformat(),
            time=saved.time,
            reminder=saved.reminder,
            repeat=saved.repeat,
            actions=list(saved.actions),
        )
    )
    logger.info("Rollover task_id=%s -> next_id=%s due=%s", saved.id, spawned.id, spawned.due_date)
    return CompletionResult(task=saved, spawned=spawned)


def toggle_task_completed(task_store: TaskRepo, task_id: str, *, today: date) -> CompletionResult | None:
    task = task_store.get_task(task_id)
    if task is None:
        return None
    return on_task_completion_changed(task_store, task_id, not task.completed, today=today)


def on_schedule_fields_changed(
    task_store: TaskRepo,
    task_id: str,
    *,
    due_date: str | None = _UNSET,
    time: str | None = _UNSET,
    reminder: Any = _UNSET,
    repeat: RepeatRule | None = _UNSET,
) -> Task | None:
    """
    Single entry point for "schedule fields changed".

    Only the provided fields change (pass None to clear one). The merged result
    is normalized before it is saved, so a stored task never carries a time
    without a date or a reminder without a date and time (recurring tasks may
    keep time/reminder without a date).
    """
    task = task_store.get_task(task_id)
    if task is None:
        return None

    new_repeat = task.repeat if repeat is _UNSET else repeat
    if new_repeat is not None:
        # Weekly/monthly rules without a valid day degrade to "no repeat".
        new_repeat = build_repeat_rule(new_repeat.type, new_repeat.days)
    fields = normalize_for_recurring_task(
        task.due_date if due_date is _UNSET else due_date,
        task.time if time is _UNSET else time,
        task.reminder if reminder is _UNSET else reminder,
        new_repeat,
    )

    task.due_date, task.time, task.reminder = fields
    task.repeat = new_repeat
    return task_store.save_task(task)


def remove_template(templates: TemplateRegistry, template_id: str) -> bool:
    """Delete an action template; bindings referencing it are removed by the registry."""
    return templates.delete_template(template_id)


async def run_task_action(
    templates: TemplateRegistry,
    dispatcher: ActionDispatcher,
    task: Task,
    index: int = 0,
) -> tuple[bool, str]:
    """
    Manually run one of a task's bound actions.

    Returns (ok, message). Failures come back as a readable message that tells
    a missing/misconfigured scheme apart from the host refusing to run it.
    """
    if not task.actions:
        return False, "This task has no actions."
    if not 0 <= index < len(task.actions):
        return False, f"No action #{index + 1} on this task (it has {len(task.actions)})."

    binding = task.actions[index]
    try:
        target: ExecutableTarget = await dispatcher.run_binding(binding, templates.get_template)
    except DispatchError as err:
        logger.info("Manual action failed task_id=%s scheme=%s reason=%s", task.id, binding.template_id, err.reason)
        return False, describe_dispatch_error(err)

    return True, f"Started: {target.value}"
