# src/linkflow/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (store, executors, poller).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import Notifier, ScriptRunner, UrlOpener
from ..core.state import AppState
from ..tasks.actions import ActionDispatcher
from ..tasks.executors import BrowserUrlOpener, SubprocessScriptRunner
from ..tasks.task_scheduler import DueActionPoller
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(
    *,
    settings=None,
    url_opener: UrlOpener | None = None,
    script_runner: ScriptRunner | None = None,
    notifier: Notifier | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings and executors injectable makes the app easier to test and
    avoids hidden global config reads. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    task_store = TaskStore(settings.tasks_db_path)
    dispatcher = ActionDispatcher(
        url_opener=url_opener or BrowserUrlOpener(),
        script_runner=script_runner or SubprocessScriptRunner(),
    )
    poller = DueActionPoller(
        task_store,
        task_store,
        dispatcher,
        notifier=notifier if settings.reminders_enabled else None,
        interval_seconds=settings.poll_interval_seconds,
        reminder_grace_seconds=settings.reminder_grace_seconds,
        auto_actions=settings.auto_actions_enabled,
    )
    logger.debug(
        "State wired: db=%s auto_actions=%s reminders=%s",
        settings.tasks_db_path,
        settings.auto_actions_enabled,
        notifier is not None and settings.reminders_enabled,
    )

    return AppState(
        settings=settings,
        task_store=task_store,
        dispatcher=dispatcher,
        poller=poller,
    )
