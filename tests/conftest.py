# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from linkflow.cli.bootstrap import create_initial_state
from linkflow.core.state import AppState
from linkflow.tasks.task_store import TaskStore

from .fakes import FakeNotifier, FakeScriptRunner, FakeUrlOpener


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="linkflow-test",
        log_level="DEBUG",
        console_enabled=False,
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        poll_interval_seconds=30.0,
        auto_actions_enabled=True,
        reminders_enabled=True,
        reminder_grace_seconds=600.0,
    )


@pytest.fixture()
def store(tmp_path: Path) -> TaskStore:
    return TaskStore(tmp_path / "store.sqlite3")


@pytest.fixture()
def url_opener() -> FakeUrlOpener:
    return FakeUrlOpener()


@pytest.fixture()
def script_runner() -> FakeScriptRunner:
    return FakeScriptRunner()


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    url_opener: FakeUrlOpener,
    script_runner: FakeScriptRunner,
    notifier: FakeNotifier,
) -> AppState:
    """
    AppState wired with recording executors.

    NOTE: We keep the real SQLite TaskStore here because its correctness
    (bindings, cascades) is part of what we want to test.
    """
    return create_initial_state(
        settings=settings,
        url_opener=url_opener,
        script_runner=script_runner,
        notifier=notifier,
    )
