# src/linkflow/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..tasks.actions import ActionDispatcher
from ..tasks.task_scheduler import DueActionPoller
from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    # Settings object (Settings in the app, SimpleNamespace in tests).
    settings: Any

    task_store: TaskStore
    dispatcher: ActionDispatcher
    poller: DueActionPoller
