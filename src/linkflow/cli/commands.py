# src/linkflow/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import date, timedelta

from ..core.state import AppState
from ..tasks.actions import required_arity
from ..tasks.schedule import ScheduleFields, set_reminder, set_time, to_relative_reminder
from ..tasks.task_api import (
    on_schedule_fields_changed,
    on_task_completion_changed,
    remove_template,
    run_task_action,
)
from ..tasks.task_models import ActionBinding, ActionKind, NewTaskInput, Task, build_repeat_rule

CommandHandler = Callable[[AppState, list[str]], "str | Awaitable[str]"]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, /done, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        reply = handler(state, args)
        if inspect.isawaitable(reply):
            reply = await reply
        return reply

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _short_id(task: Task) -> str:
    return task.id.removeprefix("task_")[:8]


def _find_task(state: AppState, ref: str) -> Task | None:
    """Find a task by full id or by a unique prefix of its short id."""
    ref = ref.strip()
    if not ref:
        return None
    exact = state.task_store.get_task(ref)
    if exact is not None:
        return exact
    matches = [t for t in state.task_store.load_tasks() if _short_id(t).startswith(ref)]
    return matches[0] if len(matches) == 1 else None


def _format_task(task: Task) -> str:
    mark = "x" if task.completed else " "
    parts = [f"{_short_id(task)} [{mark}] {task.title}"]
    if task.due_date or task.time:
        parts.append(" ".join(p for p in (task.due_date, task.time) if p))
    if task.reminder is not None:
        parts.append(f"⏰-{task.reminder.offset_minutes}m")
    if task.repeat is not None:
        days = ",".join(str(d) for d in task.repeat.days)
        parts.append(f"↻{task.repeat.type.value}" + (f" {days}" if days else ""))
    if task.actions:
        parts.append(f"⚡{len(task.actions)}")
    return "  ".join(parts)


def _parse_date_arg(raw: str, today: date) -> str | None:
    low = raw.lower()
    if low == "today":
        return today.isoformat()
    if low == "tomorrow":
        return (today + timedelta(days=1)).isoformat()
    if low in ("none", "off", "-"):
        return None
    return raw


def _parse_days(raw: list[str]) -> list[str]:
    return [p.strip() for p in ",".join(raw).split(",") if p.strip()]


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    tasks = state.task_store.load_tasks()
    open_count = sum(1 for t in tasks if not t.completed)
    return (
        "Status:\n"
        f"  Database: {state.settings.tasks_db_path}\n"
        f"  Tasks: {open_count} open / {len(tasks)} total\n"
        f"  Schemes: {len(state.task_store.list_templates())}\n"
        f"  Poller: {state.poller.state.value}, every {state.settings.poll_interval_seconds:g}s, "
        f"fired this session: {len(state.poller.fired)}"
    )


def cmd_add(state: AppState, args: list[str]) -> str:
    title = " ".join(args).strip()
    if not title:
        return "Usage: /add <title>"
    task = state.task_store.create_task(NewTaskInput(title=title))
    return f"Added {_short_id(task)}: {task.title}"


def cmd_list(state: AppState, args: list[str]) -> str:
    show_all = bool(args) and args[0].lower() == "all"
    tasks = [t for t in state.task_store.load_tasks() if show_all or not t.completed]
    if not tasks:
        return "No tasks."
    return "\n".join(_format_task(t) for t in tasks)


def _set_completed(state: AppState, args: list[str], completed: bool) -> str:
    if not args:
        return f"Usage: /{'done' if completed else 'undo'} <task>"
    task = _find_task(state, args[0])
    if task is None:
        return f"No task matches {args[0]!r}."
    result = on_task_completion_changed(state.task_store, task.id, completed, today=date.today())
    if result is None:
        return f"No task matches {args[0]!r}."
    reply = _format_task(result.task)
    if result.spawned is not None:
        reply += f"\nNext occurrence: {_format_task(result.spawned)}"
    return reply


def cmd_done(state: AppState, args: list[str]) -> str:
    return _set_completed(state, args, True)


def cmd_undo(state: AppState, args: list[str]) -> str:
    return _set_completed(state, args, False)


def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <task>"
    task = _find_task(state, args[0])
    if task is None or not state.task_store.delete_task(task.id):
        return f"No task matches {args[0]!r}."
    return f"Deleted {_short_id(task)}: {task.title}"


def cmd_due(state: AppState, args: list[str]) -> str:
    """
    /due <task> <YYYY-MM-DD|today|tomorrow>  -> set the due date
    /due <task> none                          -> clear date (and time/reminder)
    """
    if len(args) < 2:
        return "Usage: /due <task> <YYYY-MM-DD|today|tomorrow|none>"
    task = _find_task(state, args[0])
    if task is None:
        return f"No task matches {args[0]!r}."
    saved = on_schedule_fields_changed(
        state.task_store,
        task.id,
        due_date=_parse_date_arg(args[1], date.today()),
    )
    return _format_task(saved) if saved else f"No task matches {args[0]!r}."


def cmd_time(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /time <task> <HH:MM|none>"
    task = _find_task(state, args[0])
    if task is None:
        return f"No task matches {args[0]!r}."

    value = None if args[1].lower() in ("none", "off", "-") else args[1]
    if task.repeat is not None and not task.due_date:
        # Recurring tasks may keep a time without a concrete date.
        saved = on_schedule_fields_changed(state.task_store, task.id, time=value)
    else:
        fields = set_time(ScheduleFields(task.due_date, task.time, task.reminder), value, date.today())
        saved = on_schedule_fields_changed(
            state.task_store,
            task.id,
            due_date=fields.due_date,
            time=fields.time,
            reminder=fields.reminder,
        )
    return _format_task(saved) if saved else f"No task matches {args[0]!r}."


def cmd_remind(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /remind <task> <minutes-before|off>"
    task = _find_task(state, args[0])
    if task is None:
        return f"No task matches {args[0]!r}."

    if args[1].lower() in ("off", "none", "-"):
        reminder = None
    else:
        try:
            reminder = to_relative_reminder(float(args[1]))
        except ValueError:
            return "Reminder offset must be a number of minutes."

    if task.repeat is None:
        fields = set_reminder(ScheduleFields(task.due_date, task.time, task.reminder), reminder)
        if reminder is not None and fields.reminder is None:
            return "A reminder needs a due date and a time. Use /due and /time first."
        reminder = fields.reminder

    saved = on_schedule_fields_changed(state.task_store, task.id, reminder=reminder)
    if saved is None:
        return f"No task matches {args[0]!r}."
    if reminder is not None and saved.reminder is None:
        return "A reminder needs a time. Use /time first."
    return _format_task(saved)


def cmd_repeat(state: AppState, args: list[str]) -> str:
    """
    /repeat <task> none
    /repeat <task> daily
    /repeat <task> weekly 0,2,4     (Monday=0 .. Sunday=6)
    /repeat <task> monthly 1,15,31
    """
    if len(args) < 2:
        return "Usage: /repeat <task> none|daily|weekly <days>|monthly <days>"
    task = _find_task(state, args[0])
    if task is None:
        return f"No task matches {args[0]!r}."

    kind = args[1].lower()
    if kind not in ("none", "off", "daily", "weekly", "monthly"):
        return "Repeat must be one of: none, daily, weekly, monthly."
    rule = build_repeat_rule(kind, _parse_days(args[2:]))

    saved = on_schedule_fields_changed(state.task_store, task.id, repeat=rule)
    if saved is None:
        return f"No task matches {args[0]!r}."
    if rule is None and kind in ("weekly", "monthly"):
        return f"No valid days given; repeat turned off.\n{_format_task(saved)}"
    return _format_task(saved)


def cmd_schemes(state: AppState, args: list[str]) -> str:
    templates = state.task_store.list_templates()
    if not templates:
        return "No schemes."
    lines = ["Schemes:"]
    for t in templates:
        lines.append(f"  {t.icon} {t.id} ({t.kind.value}, {required_arity(t)} param) {t.name}: {t.template}")
    return "\n".join(lines)


def cmd_scheme(state: AppState, args: list[str]) -> str:
    """
    /scheme add url <name> <template>    e.g. /scheme add url Call tel://{param}
    /scheme add script <name>            the script path is given per task in /bind
    /scheme edit <scheme_id> <template>  replace a url scheme's template
    /scheme rm <scheme_id>               also removes it from every task
    """
    if not args:
        return "Usage: /scheme add url|script <name> [template] | /scheme edit <scheme_id> <template> | /scheme rm <scheme_id>"

    sub = args[0].lower()
    if sub == "rm":
        if len(args) < 2:
            return "Usage: /scheme rm <scheme_id>"
        if not remove_template(state.task_store, args[1]):
            return f"No scheme {args[1]!r}."
        return f"Deleted scheme {args[1]} and its task bindings."

    if sub == "edit":
        if len(args) < 3:
            return "Usage: /scheme edit <scheme_id> <template>"
        current = state.task_store.get_template(args[1])
        if current is None:
            return f"No scheme {args[1]!r}."
        if current.kind != ActionKind.URL:
            return "Script schemes take their path per task in /bind; nothing to edit."
        tpl = state.task_store.update_template(current.id, template=" ".join(args[2:]))
        return f"Updated scheme {tpl.id}: {tpl.template} ({required_arity(tpl)} param)"

    if sub == "add":
        if len(args) < 3 or args[1].lower() not in ("url", "script"):
            return "Usage: /scheme add url <name> <template> | /scheme add script <name>"
        kind = args[1].lower()
        if kind == "url":
            if len(args) < 4:
                return "A url scheme needs a template, e.g. tel://{param}"
            name, template = " ".join(args[2:-1]), args[-1]
        else:
            name, template = " ".join(args[2:]), "{script}"
        tpl = state.task_store.create_template(name=name, template=template, kind=kind)
        return f"Added scheme {tpl.id} ({tpl.kind.value})."

    return "Usage: /scheme add url|script <name> [template] | /scheme edit <scheme_id> <template> | /scheme rm <scheme_id>"


def cmd_bind(state: AppState, args: list[str]) -> str:
    """
    /bind <task> <scheme_id> [p1 | p2 | ...]   parameters are separated by "|"
    """
    if len(args) < 2:
        return "Usage: /bind <task> <scheme_id> [param | param ...]"
    task = _find_task(state, args[0])
    if task is None:
        return f"No task matches {args[0]!r}."
    template = state.task_store.get_template(args[1])
    if template is None:
        return f"No scheme {args[1]!r}. See /schemes."

    raw = " ".join(args[2:]).strip()
    params = tuple(p.strip() for p in raw.split("|")) if raw else ()
    expected = required_arity(template)
    if len(params) != expected:
        return f"Scheme {template.id} needs {expected} parameter(s), got {len(params)}."

    task.actions.append(ActionBinding(template_id=template.id, params=params))
    state.task_store.save_task(task)
    return _format_task(task)


def cmd_unbind(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /unbind <task> <action-number>"
    task = _find_task(state, args[0])
    if task is None:
        return f"No task matches {args[0]!r}."
    try:
        index = int(args[1]) - 1
    except ValueError:
        return "Action number must be an integer."
    if not 0 <= index < len(task.actions):
        return f"No action #{args[1]} on this task."
    del task.actions[index]
    state.task_store.save_task(task)
    return _format_task(task)


async def cmd_run(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /run <task> [action-number]"
    task = _find_task(state, args[0])
    if task is None:
        return f"No task matches {args[0]!r}."
    index = 0
    if len(args) > 1:
        try:
            index = int(args[1]) - 1
        except ValueError:
            return "Action number must be an integer."

    ok, message = await run_task_action(state.task_store, state.dispatcher, task, index)
    return message if ok else f"⚠ {message}"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show database, task counts and poller state.")
registry.register("add", cmd_add, help_text="Add a task: /add <title>.")
registry.register("list", cmd_list, help_text="List open tasks (/list all includes completed).", aliases=["ls"])
registry.register("done", cmd_done, help_text="Complete a task (recurring tasks roll over).")
registry.register("undo", cmd_undo, help_text="Mark a completed task as open again.")
registry.register("rm", cmd_rm, help_text="Delete a task.")
registry.register("due", cmd_due, help_text="Set due date: /due <task> <YYYY-MM-DD|today|tomorrow|none>.")
registry.register("time", cmd_time, help_text="Set time: /time <task> <HH:MM|none>.")
registry.register("remind", cmd_remind, help_text="Set reminder: /remind <task> <minutes|off>.")
registry.register("repeat", cmd_repeat, help_text="Set repeat: /repeat <task> none|daily|weekly 0,2|monthly 1,15.")
registry.register("schemes", cmd_schemes, help_text="List action schemes.")
registry.register("scheme", cmd_scheme, help_text="Manage schemes: /scheme add ... | edit <id> <template> | rm <id>.")
registry.register("bind", cmd_bind, help_text="Bind an action: /bind <task> <scheme_id> [p1 | p2].")
registry.register("unbind", cmd_unbind, help_text="Remove an action: /unbind <task> <n>.")
registry.register("run", cmd_run, help_text="Run a task's action now: /run <task> [n].")
