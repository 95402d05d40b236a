# tests/test_config.py

from __future__ import annotations

from pathlib import Path

from linkflow.config import Settings


def test_settings_defaults(monkeypatch) -> None:
    for name in (
        "LINKFLOW_DATA_DIR",
        "LINKFLOW_TASKS_DB_PATH",
        "LINKFLOW_POLL_INTERVAL_SECONDS",
        "LINKFLOW_REMINDER_GRACE_SECONDS",
        "LINKFLOW_AUTO_ACTIONS_ENABLED",
    ):
        monkeypatch.delenv(name, raising=False)

    s = Settings.from_env()

    assert s.tasks_db_path == Path(".local/linkflow") / "tasks.sqlite3"
    assert s.poll_interval_seconds == 30.0
    assert s.reminder_grace_seconds == 600.0
    assert s.auto_actions_enabled is True


def test_settings_from_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LINKFLOW_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("LINKFLOW_TASKS_DB_PATH", raising=False)
    monkeypatch.setenv("LINKFLOW_POLL_INTERVAL_SECONDS", "5")
    monkeypatch.setenv("LINKFLOW_AUTO_ACTIONS_ENABLED", "off")
    monkeypatch.setenv("LINKFLOW_REMINDER_GRACE_SECONDS", "not-a-number")

    s = Settings.from_env()

    assert s.tasks_db_path == tmp_path / "tasks.sqlite3"
    assert s.poll_interval_seconds == 5.0
    assert s.auto_actions_enabled is False
    assert s.reminder_grace_seconds == 600.0
