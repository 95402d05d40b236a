# tests/test_task_store.py

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from linkflow.tasks.task_models import (
    ActionBinding,
    ActionKind,
    NewTaskInput,
    ParamType,
    Reminder,
    RepeatRule,
    RepeatType,
)
from linkflow.tasks.task_store import DEFAULT_TEMPLATES, TaskStore


def test_default_templates_are_seeded_once(tmp_path: Path) -> None:
    db = tmp_path / "t.sqlite3"
    store = TaskStore(db)
    ids = [t.id for t in store.list_templates()]
    assert ids == [t.id for t in DEFAULT_TEMPLATES]

    store.delete_template("scheme_mail")
    reopened = TaskStore(db)
    assert "scheme_mail" not in {t.id for t in reopened.list_templates()}

    tel = reopened.get_template("scheme_tel")
    assert tel is not None and tel.param_type == ParamType.NUMBER
    assert reopened.get_template("scheme_script_local").kind == ActionKind.SCRIPT


def test_task_round_trip(store: TaskStore) -> None:
    created = store.create_task(
        NewTaskInput(
            title="  Pay rent ",
            detail="landlord",
            due_date="2024-05-31",
            time="09:00",
            reminder=Reminder(30),
            repeat=RepeatRule(type=RepeatType.MONTHLY, days=(31,)),
            actions=[ActionBinding("scheme_tel", ("5551234",)), ActionBinding("scheme_mail", ("a@b.com", "Rent"))],
        )
    )
    assert created.id.startswith("task_")

    loaded = store.get_task(created.id)
    assert loaded is not None
    assert loaded.title == "Pay rent"
    assert loaded.reminder == Reminder(30)
    assert loaded.repeat == RepeatRule(type=RepeatType.MONTHLY, days=(31,))
    assert [b.template_id for b in loaded.actions] == ["scheme_tel", "scheme_mail"]
    assert loaded.actions[1].params == ("a@b.com", "Rent")

    loaded.completed = True
    loaded.actions = loaded.actions[:1]
    store.save_task(loaded)
    again = store.get_task(created.id)
    assert again.completed is True
    assert len(again.actions) == 1


def test_load_tasks_orders_open_tasks_by_schedule(store: TaskStore) -> None:
    late = store.create_task(NewTaskInput(title="late", due_date="2024-05-02", time="08:00"))
    early = store.create_task(NewTaskInput(title="early", due_date="2024-05-01", time="18:00"))
    undated = store.create_task(NewTaskInput(title="someday"))
    done = store.create_task(NewTaskInput(title="done", due_date="2024-04-01"))
    done.completed = True
    store.save_task(done)

    assert [t.id for t in store.load_tasks()] == [early.id, late.id, undated.id, done.id]


def test_empty_title_is_rejected(store: TaskStore) -> None:
    with pytest.raises(ValueError):
        store.create_task(NewTaskInput(title="   "))


def test_deleting_template_removes_bindings(store: TaskStore) -> None:
    tpl = store.create_template(name="Runbook", template="/opt/runbook.sh", kind="script")
    task = store.create_task(
        NewTaskInput(
            title="deploy",
            actions=[ActionBinding(tpl.id, ("/opt/runbook.sh",)), ActionBinding("scheme_tel", ("1",))],
        )
    )

    assert store.delete_template(tpl.id) is True
    assert store.get_template(tpl.id) is None
    assert [b.template_id for b in store.get_task(task.id).actions] == ["scheme_tel"]
    assert store.delete_template(tpl.id) is False


def test_deleting_task_cascades_to_bindings(store: TaskStore, tmp_path: Path) -> None:
    task = store.create_task(NewTaskInput(title="x", actions=[ActionBinding("scheme_tel", ("1",))]))
    assert store.delete_task(task.id) is True
    assert store.get_task(task.id) is None

    conn = sqlite3.connect(str(tmp_path / "store.sqlite3"))
    try:
        (n,) = conn.execute("SELECT COUNT(*) FROM task_actions").fetchone()
    finally:
        conn.close()
    assert n == 0


def test_invalid_repeat_days_in_db_degrade_to_no_repeat(store: TaskStore, tmp_path: Path) -> None:
    task = store.create_task(NewTaskInput(title="x", repeat=RepeatRule(type=RepeatType.WEEKLY, days=(1,))))

    conn = sqlite3.connect(str(tmp_path / "store.sqlite3"))
    try:
        conn.execute("UPDATE tasks SET repeat_days = ? WHERE id = ?", ("[42]", task.id))
        conn.commit()
    finally:
        conn.close()

    assert store.get_task(task.id).repeat is None


def test_update_template_edits_in_place(store: TaskStore) -> None:
    task = store.create_task(NewTaskInput(title="look up", actions=[ActionBinding("scheme_web_search", ("linkflow",))]))

    updated = store.update_template("scheme_web_search", template=" https://example.org/?q={param} ", name="Example")

    assert updated.template == "https://example.org/?q={param}"
    assert store.get_template("scheme_web_search") == updated
    assert updated.kind == ActionKind.URL and updated.icon == "🔎"
    assert store.get_task(task.id).actions == [ActionBinding("scheme_web_search", ("linkflow",))]

    assert store.update_template("scheme_missing", name="x") is None
    with pytest.raises(ValueError):
        store.update_template("scheme_web_search", template="  ")
