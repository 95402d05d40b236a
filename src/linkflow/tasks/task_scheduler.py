# src/linkflow/tasks/task_scheduler.py

from __future__ import annotations

"""
Due-action poller.

A small polling loop that, on every pass:
- reads the task working set,
- finds incomplete tasks whose due time has passed,
- launches their script-kind actions via the dispatcher (at most once per
  task occurrence and scheme),
- optionally shows reminders whose remind time has just passed.

URL-kind actions are never fired automatically; opening them needs the user.
"""

import asyncio
import logging
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import NamedTuple

from ..core.ports import Notifier, TaskRepo, TemplateRegistry
from .actions import ActionDispatcher, ActionError, resolve
from .schedule import combine_due_at, compute_remind_at
from .task_models import ActionKind, Task

logger = logging.getLogger(__name__)


class PollerState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"


class FireKey(NamedTuple):
    """One due action of one occurrence: recurring tasks get a new key per occurrence."""

    task_id: str
    due_date: str
    time: str
    template_id: str


class ReminderKey(NamedTuple):
    task_id: str
    remind_at: datetime


class FiredKeyStore:
    """
    In-memory set of keys that were already fired in this process.

    Grows for the lifetime of the process; keys are per occurrence, so a
    completed occurrence's keys simply stop matching anything.
    """

    def __init__(self) -> None:
        self._seen: set[Hashable] = set()

    def seen(self, key: Hashable) -> bool:
        return key in self._seen

    def mark(self, key: Hashable) -> None:
        self._seen.add(key)

    def __len__(self) -> int:
        return len(self._seen)


@dataclass(slots=True)
class PassReport:
    now: datetime
    dispatched: list[FireKey] = field(default_factory=list)
    failed: list[FireKey] = field(default_factory=list)
    reminded: list[ReminderKey] = field(default_factory=list)


class DueActionPoller:
    def __init__(
            self,
            task_store: TaskRepo,
            templates: TemplateRegistry,
            dispatcher: ActionDispatcher,
            *,
            fired: FiredKeyStore | None = None,
            notifier: Notifier | None = None,
            interval_seconds: float = 30.0,
            reminder_grace_seconds: float = 600.0,
            auto_actions: bool = True,
            now_func: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._task_store = task_store
        self._templates = templates
        self._dispatcher = dispatcher
        self._fired = fired if fired is not None else FiredKeyStore()
        self._reminded = FiredKeyStore()
        self._notifier = notifier
        self._interval_s = max(0.5, float(interval_seconds))
        self._grace = timedelta(seconds=max(0.0, float(reminder_grace_seconds)))
        self._auto_actions = auto_actions
        self._now = now_func
        self.state = PollerState.IDLE

    @property
    def fired(self) -> FiredKeyStore:
        return self._fired

    async def run(self) -> None:
        """
        Poll forever: one pass, then sleep interval_seconds.

        Passes never overlap. To stop the poller, cancel the coroutine/task;
        a dispatch already in flight is not retried.
        """
        logger.info("Due-action poller started (interval=%ss)", self._interval_s)
        try:
            while True:
                try:
                    await self.run_pass()
                except Exception:
                    logger.exception("Poller pass crashed")
                await asyncio.sleep(self._interval_s)
        finally:
            self.state = PollerState.IDLE
            logger.info("Due-action poller stopped")

    async def run_pass(self, now: datetime | None = None) -> PassReport:
        # "now" is fixed for the whole pass so every task is judged against the same instant.
        report = PassReport(now=now if now is not None else self._now())
        self.state = PollerState.SCANNING
        try:
            try:
                tasks = self._task_store.load_tasks()
            except Exception:
                logger.exception("load_tasks failed")
                return report

            for task in tasks:
                if task.completed:
                    continue
                try:
                    if self._auto_actions:
                        await self._fire_due_actions(task, report)
                    if self._notifier is not None:
                        await self._fire_reminder(task, report)
                except Exception:
                    logger.exception("Poller pass failed for task_id=%s", task.id)
            return report
        finally:
            self.state = PollerState.IDLE

    async def _fire_due_actions(self, task: Task, report: PassReport) -> None:
        if not task.actions or not task.due_date or not task.time:
            return
        due_at = combine_due_at(task.due_date, task.time)
        if due_at is None or due_at > report.now:
            return

        for binding in task.actions:
            try:
                template = self._templates.get_template(binding.template_id)
            except Exception:
                logger.exception("get_template failed task_id=%s scheme=%s", task.id, binding.template_id)
                continue
            if template is None or template.kind != ActionKind.SCRIPT:
                continue

            key = FireKey(task.id, task.due_date, task.time, template.id)
            if self._fired.seen(key):
                continue
            # Marked before dispatch: a failure is not retried for this occurrence.
            self._fired.mark(key)

            try:
                await self._dispatcher.dispatch(resolve(template, binding))
            except ActionError as exc:
                logger.warning(
                    "Due action failed task_id=%s scheme=%s due=%s %s: %s",
                    task.id,
                    template.id,
                    task.due_date,
                    task.time,
                    exc,
                )
                report.failed.append(key)
                continue

            logger.info("Due action fired task_id=%s scheme=%s", task.id, template.id)
            report.dispatched.append(key)

    async def _fire_reminder(self, task: Task, report: PassReport) -> None:
        remind_at = compute_remind_at(task)
        if remind_at is None or remind_at > report.now:
            return
        if remind_at < report.now - self._grace:
            return

        key = ReminderKey(task.id, remind_at)
        if self._reminded.seen(key):
            return
        self._reminded.mark(key)

        detail = (task.detail or "").strip()
        body = detail or f"{task.due_date} {task.time}"
        try:
            await self._notifier.notify(title=f"Reminder: {task.title}", body=body)
        except Exception:
            logger.exception("Reminder notification failed task_id=%s", task.id)
            return
        report.reminded.append(key)
