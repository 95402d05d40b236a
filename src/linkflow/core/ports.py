# src/linkflow/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage and host executors (browser, subprocess, notifications)
swappable and makes testing easier: a test double can record calls instead of
opening a URL or spawning a process.
"""

from typing import TYPE_CHECKING, Awaitable, Protocol

if TYPE_CHECKING:
    from ..tasks.task_models import ActionTemplate, NewTaskInput, Task


class UrlOpener(Protocol):
    """Opens a URL via the host's URL handling. Raises on refusal."""

    def open(self, url: str) -> Awaitable[None]: ...


class ScriptRunner(Protocol):
    """
    Launches an executable at an absolute path.

    Completes once the launch succeeded; does not wait for the script to finish.
    Raises if the host refused to start it.
    """

    def run(self, path: str) -> Awaitable[None]: ...


class Notifier(Protocol):
    """Shows a reminder to the user (console line, desktop notification, ...)."""

    def notify(self, *, title: str, body: str) -> Awaitable[None]: ...


class TaskRepo(Protocol):
    # Working set
    def load_tasks(self) -> list[Task]: ...
    def get_task(self, task_id: str) -> Task | None: ...

    # Writes (last-write-wins)
    def save_task(self, task: Task) -> Task: ...
    def create_task(self, new: NewTaskInput) -> Task: ...
    def delete_task(self, task_id: str) -> bool: ...


class TemplateRegistry(Protocol):
    def get_template(self, template_id: str) -> ActionTemplate | None: ...
    def list_templates(self) -> list[ActionTemplate]: ...

    def create_template(
            self,
            *,
            name: str,
            template: str,
            kind: str = "url",
            param_type: str = "string",
            icon: str = "",
            template_id: str | None = None,
    ) -> ActionTemplate: ...

    def update_template(
            self,
            template_id: str,
            *,
            name: str | None = None,
            template: str | None = None,
            icon: str | None = None,
            param_type: str | None = None,
    ) -> ActionTemplate | None: ...

    # Must also drop every binding that references the template.
    def delete_template(self, template_id: str) -> bool: ...
