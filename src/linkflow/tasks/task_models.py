# src/linkflow/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class RepeatType(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def from_db(cls, raw: str | None) -> RepeatType | None:
        if not raw:
            return None
        try:
            return cls(raw)
        except ValueError:
            return None


class ActionKind(StrEnum):
    URL = "url"
    SCRIPT = "script"

    @classmethod
    def from_db(cls, raw: str | None) -> ActionKind:
        if not raw:
            return cls.URL
        try:
            return cls(raw)
        except ValueError:
            return cls.URL


class ParamType(StrEnum):
    STRING = "string"
    NUMBER = "number"

    @classmethod
    def from_db(cls, raw: str | None) -> ParamType:
        if not raw:
            return cls.STRING
        try:
            return cls(raw)
        except ValueError:
            return cls.STRING


@dataclass(slots=True, frozen=True)
class Reminder:
    """Relative reminder: fire `offset_minutes` before the task's due time."""

    offset_minutes: int
    kind: str = "relative"


@dataclass(slots=True, frozen=True)
class RepeatRule:
    """
    Recurrence rule.

    Weekdays use Python's convention (Monday=0 .. Sunday=6).
    Use build_repeat_rule() to construct rules from user input: it degrades
    weekly/monthly rules with an empty day set to "no repeat".
    """

    type: RepeatType
    days: tuple[int, ...] = ()


@dataclass(slots=True, frozen=True)
class ActionBinding:
    template_id: str
    params: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class ActionTemplate:
    """A reusable external action (a.k.a. scheme): URL template or local script."""

    id: str
    name: str
    icon: str
    template: str
    param_type: ParamType = ParamType.STRING
    kind: ActionKind = ActionKind.URL


@dataclass(slots=True)
class Task:
    id: str
    title: str
    completed: bool = False

    detail: str | None = None
    list_id: str | None = None

    due_date: str | None = None
    time: str | None = None
    reminder: Reminder | None = None
    repeat: RepeatRule | None = None

    actions: list[ActionBinding] = field(default_factory=list)

    created_at: float = 0.0
    updated_at: float = 0.0


@dataclass(slots=True)
class NewTaskInput:
    title: str
    detail: str | None = None
    list_id: str | None = None
    due_date: str | None = None
    time: str | None = None
    reminder: Reminder | None = None
    repeat: RepeatRule | None = None
    actions: list[ActionBinding] = field(default_factory=list)


def build_repeat_rule(kind: str | RepeatType | None, days=None) -> RepeatRule | None:
    """
    Build a RepeatRule from loosely typed input.

    - unknown/empty kind -> None
    - daily ignores days
    - weekly keeps days in 0..6, monthly keeps days in 1..31 (sorted, unique)
    - weekly/monthly with no valid day left -> None ("no repeat")
    """
    rtype = kind if isinstance(kind, RepeatType) else RepeatType.from_db(kind)
    if rtype is None:
        return None
    if rtype == RepeatType.DAILY:
        return RepeatRule(type=RepeatType.DAILY)

    lo, hi = (0, 6) if rtype == RepeatType.WEEKLY else (1, 31)
    clean: set[int] = set()
    for d in days or ():
        try:
            n = int(d)
        except (TypeError, ValueError):
            continue
        if lo <= n <= hi:
            clean.add(n)

    if not clean:
        return None
    return RepeatRule(type=rtype, days=tuple(sorted(clean)))
