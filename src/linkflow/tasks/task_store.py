# src/linkflow/tasks/task_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
import uuid
from pathlib import Path
from typing import Any

from .task_models import (
    ActionBinding,
    ActionKind,
    ActionTemplate,
    NewTaskInput,
    ParamType,
    Reminder,
    RepeatRule,
    Task,
    build_repeat_rule,
)

logger = logging.getLogger(__name__)


DEFAULT_TEMPLATES: tuple[ActionTemplate, ...] = (
    ActionTemplate(
        id="scheme_mail",
        name="Mail",
        icon="✉️",
        template="mailto:{param}?subject={param}",
    ),
    ActionTemplate(
        id="scheme_tel",
        name="Phone",
        icon="📞",
        template="tel://{param}",
        param_type=ParamType.NUMBER,
    ),
    ActionTemplate(
        id="scheme_web_search",
        name="Web search",
        icon="🔎",
        template="https://duckduckgo.com/?q={param}",
    ),
    ActionTemplate(
        id="scheme_script_local",
        name="Local script",
        icon="📜",
        template="/absolute/path/to/your-script.sh",
        kind=ActionKind.SCRIPT,
    ),
)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


class TaskStore:
    """
    SQLite store for tasks, their action bindings and action templates.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3", *, seed_templates: bool = True) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        if seed_templates:
            self._seed_default_templates()
        try:
            total = self.count_tasks()
        except Exception:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    list_id TEXT,
                    title TEXT NOT NULL,
                    detail TEXT,
                    completed INTEGER NOT NULL DEFAULT 0,
                    due_date TEXT,
                    time TEXT,
                    reminder_offset_minutes INTEGER,
                    repeat_type TEXT,
                    repeat_days TEXT,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS action_templates (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    icon TEXT NOT NULL DEFAULT '',
                    template TEXT NOT NULL,
                    param_type TEXT NOT NULL DEFAULT 'string',
                    kind TEXT NOT NULL DEFAULT 'url'
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS task_actions (
                    task_id TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
                    position INTEGER NOT NULL,
                    template_id TEXT NOT NULL,
                    params TEXT NOT NULL DEFAULT '[]',
                    PRIMARY KEY (task_id, position)
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("list_id", "TEXT")
            add_col("detail", "TEXT")
            add_col("reminder_offset_minutes", "INTEGER")
            add_col("repeat_type", "TEXT")
            add_col("repeat_days", "TEXT")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_due ON tasks(completed, due_date, time)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_task_actions_template ON task_actions(template_id)")

            conn.commit()
        finally:
            conn.close()

    def _seed_default_templates(self) -> None:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM action_templates").fetchone()
            if int(n) > 0:
                return
            conn.executemany(
                "INSERT INTO action_templates(id, name, icon, template, param_type, kind) VALUES (?, ?, ?, ?, ?, ?)",
                [
                    (t.id, t.name, t.icon, t.template, t.param_type.value, t.kind.value)
                    for t in DEFAULT_TEMPLATES
                ],
            )
            conn.commit()
            logger.info("TaskStore seeded %d default action templates", len(DEFAULT_TEMPLATES))
        finally:
            conn.close()

    @staticmethod
    def _days_to_str(rule: RepeatRule | None) -> str | None:
        if rule is None or not rule.days:
            return None
        return json.dumps(list(rule.days))

    @staticmethod
    def _str_to_days(s: str | None) -> list[Any]:
        if not s:
            return []
        try:
            val = json.loads(s)
            return val if isinstance(val, list) else []
        except Exception:
            return []

    @staticmethod
    def _str_to_params(s: str | None) -> tuple[str, ...]:
        if not s:
            return ()
        try:
            val = json.loads(s)
        except Exception:
            return ()
        if not isinstance(val, list):
            return ()
        return tuple(str(v) for v in val)

    def _row_to_task(self, row: sqlite3.Row, actions: list[ActionBinding]) -> Task:
        offset = row["reminder_offset_minutes"]
        return Task(
            id=str(row["id"]),
            title=str(row["title"] or ""),
            completed=bool(row["completed"]),
            detail=row["detail"],
            list_id=row["list_id"],
            due_date=row["due_date"],
            time=row["time"],
            reminder=Reminder(offset_minutes=max(0, int(offset))) if offset is not None else None,
            repeat=build_repeat_rule(row["repeat_type"], self._str_to_days(row["repeat_days"])),
            actions=actions,
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    @staticmethod
    def _row_to_template(row: sqlite3.Row) -> ActionTemplate:
        return ActionTemplate(
            id=str(row["id"]),
            name=str(row["name"] or ""),
            icon=str(row["icon"] or ""),
            template=str(row["template"] or ""),
            param_type=ParamType.from_db(row["param_type"]),
            kind=ActionKind.from_db(row["kind"]),
        )

    def _load_actions(self, conn: sqlite3.Connection, task_id: str | None = None) -> dict[str, list[ActionBinding]]:
        if task_id is None:
            rows = conn.execute("SELECT * FROM task_actions ORDER BY task_id, position").fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM task_actions WHERE task_id = ? ORDER BY position",
                (task_id,),
            ).fetchall()

        out: dict[str, list[ActionBinding]] = {}
        for r in rows:
            out.setdefault(str(r["task_id"]), []).append(
                ActionBinding(template_id=str(r["template_id"]), params=self._str_to_params(r["params"]))
            )
        return out

    @staticmethod
    def _write_actions(conn: sqlite3.Connection, task_id: str, actions: list[ActionBinding]) -> None:
        conn.execute("DELETE FROM task_actions WHERE task_id = ?", (task_id,))
        conn.executemany(
            "INSERT INTO task_actions(task_id, position, template_id, params) VALUES (?, ?, ?, ?)",
            [
                (task_id, i, b.template_id, json.dumps(list(b.params), ensure_ascii=False))
                for i, b in enumerate(actions)
            ],
        )

    # ---- tasks ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def load_tasks(self) -> list[Task]:
        """All tasks, open ones first, ordered by due date/time then creation."""
        conn = self._get_conn()
        try:
            rows = conn.execute(
                """
                SELECT *
                FROM tasks
                ORDER BY completed ASC,
                         due_date IS NULL, due_date ASC,
                         time IS NULL, time ASC,
                         created_at ASC
                """
            ).fetchall()
            actions = self._load_actions(conn)
            return [self._row_to_task(r, actions.get(str(r["id"]), [])) for r in rows]
        finally:
            conn.close()

    def get_task(self, task_id: str) -> Task | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            if row is None:
                return None
            actions = self._load_actions(conn, task_id)
            return self._row_to_task(row, actions.get(task_id, []))
        finally:
            conn.close()

    def create_task(self, new: NewTaskInput) -> Task:
        if not new.title or not new.title.strip():
            raise ValueError("title is required")

        now = time.time()
        task = Task(
            id=_new_id("task"),
            title=new.title.strip(),
            completed=False,
            detail=(new.detail or "").strip() or None,
            list_id=new.list_id,
            due_date=new.due_date,
            time=new.time,
            reminder=new.reminder,
            repeat=new.repeat,
            actions=list(new.actions),
            created_at=now,
            updated_at=now,
        )
        self._upsert(task)
        logger.debug("Task added id=%s due=%s %s repeat=%s", task.id, task.due_date, task.time, task.repeat)
        return task

    def save_task(self, task: Task) -> Task:
        if not task.title or not task.title.strip():
            raise ValueError("title is required")
        task.updated_at = time.time()
        if not task.created_at:
            task.created_at = task.updated_at
        self._upsert(task)
        return task

    def _upsert(self, task: Task) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO tasks(
                    id, list_id, title, detail, completed,
                    due_date, time, reminder_offset_minutes,
                    repeat_type, repeat_days,
                    created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    list_id = excluded.list_id,
                    title = excluded.title,
                    detail = excluded.detail,
                    completed = excluded.completed,
                    due_date = excluded.due_date,
                    time = excluded.time,
                    reminder_offset_minutes = excluded.reminder_offset_minutes,
                    repeat_type = excluded.repeat_type,
                    repeat_days = excluded.repeat_days,
                    updated_at = excluded.updated_at
                """,
                (
                    task.id,
                    task.list_id,
                    task.title.strip(),
                    task.detail,
                    1 if task.completed else 0,
                    task.due_date,
                    task.time,
                    task.reminder.offset_minutes if task.reminder is not None else None,
                    task.repeat.type.value if task.repeat is not None else None,
                    self._days_to_str(task.repeat),
                    task.created_at,
                    task.updated_at,
                ),
            )
            self._write_actions(conn, task.id, task.actions)
            conn.commit()
        finally:
            conn.close()

    def delete_task(self, task_id: str) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    # ---- action templates ----

    def list_templates(self) -> list[ActionTemplate]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM action_templates ORDER BY rowid ASC").fetchall()
            return [self._row_to_template(r) for r in rows]
        finally:
            conn.close()

    def get_template(self, template_id: str) -> ActionTemplate | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM action_templates WHERE id = ?", (template_id,)).fetchone()
            return self._row_to_template(row) if row else None
        finally:
            conn.close()

    def create_template(
        self,
        *,
        name: str,
        template: str,
        kind: str = "url",
        param_type: str = "string",
        icon: str = "",
        template_id: str | None = None,
    ) -> ActionTemplate:
        if not name or not name.strip():
            raise ValueError("name is required")
        if not template or not template.strip():
            raise ValueError("template is required")

        tpl = ActionTemplate(
            id=template_id or _new_id("scheme"),
            name=name.strip(),
            icon=icon,
            template=template.strip(),
            param_type=ParamType.from_db(param_type),
            kind=ActionKind.from_db(kind),
        )
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO action_templates(id, name, icon, template, param_type, kind) VALUES (?, ?, ?, ?, ?, ?)",
                (tpl.id, tpl.name, tpl.icon, tpl.template, tpl.param_type.value, tpl.kind.value),
            )
            conn.commit()
        finally:
            conn.close()
        logger.debug("Action template added id=%s kind=%s", tpl.id, tpl.kind.value)
        return tpl

    def update_template(
        self,
        template_id: str,
        *,
        name: str | None = None,
        template: str | None = None,
        icon: str | None = None,
        param_type: str | None = None,
    ) -> ActionTemplate | None:
        """
        Edit a template in place. Only the given fields change; the kind is fixed.

        Existing bindings are kept even if the placeholder count changed; they
        fail with a parameter arity error when run.
        """
        current = self.get_template(template_id)
        if current is None:
            return None
        if name is not None and not name.strip():
            raise ValueError("name is required")
        if template is not None and not template.strip():
            raise ValueError("template is required")

        tpl = ActionTemplate(
            id=current.id,
            name=current.name if name is None else name.strip(),
            icon=current.icon if icon is None else icon,
            template=current.template if template is None else template.strip(),
            param_type=current.param_type if param_type is None else ParamType.from_db(param_type),
            kind=current.kind,
        )
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE action_templates SET name = ?, icon = ?, template = ?, param_type = ? WHERE id = ?",
                (tpl.name, tpl.icon, tpl.template, tpl.param_type.value, tpl.id),
            )
            conn.commit()
        finally:
            conn.close()
        logger.debug("Action template updated id=%s", tpl.id)
        return tpl

    def delete_template(self, template_id: str) -> bool:
        """Delete a template and every task binding that references it (one transaction)."""
        conn = self._get_conn()
        try:
            removed = conn.execute(
                "DELETE FROM task_actions WHERE template_id = ?", (template_id,)
            ).rowcount
            cur = conn.execute("DELETE FROM action_templates WHERE id = ?", (template_id,))
            conn.commit()
            deleted = cur.rowcount == 1
        finally:
            conn.close()

        if deleted or removed:
            logger.info("Action template deleted id=%s (bindings removed=%s)", template_id, removed)
        return deleted
