# src/linkflow/tasks/actions.py

from __future__ import annotations

"""
Action templates and dispatch.

- resolve() turns (ActionTemplate, ActionBinding) into an ExecutableTarget.
- ActionDispatcher hands the target to an injected executor port
  (UrlOpener for url schemes, ScriptRunner for local scripts).

Resolution is pure. Dispatch has exactly one external side effect per call and
reports every failure as DispatchError; there are no retries here.
"""

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from ..core.ports import ScriptRunner, UrlOpener
from .task_models import ActionBinding, ActionKind, ActionTemplate

logger = logging.getLogger(__name__)

PARAM_PLACEHOLDER = "{param}"


class ActionError(Exception):
    """Base class for action resolution/dispatch failures."""


class ParameterArityError(ActionError):
    def __init__(self, template_id: str, expected: int, got: int) -> None:
        super().__init__(f"Scheme {template_id} expects {expected} parameter(s), got {got}")
        self.template_id = template_id
        self.expected = expected
        self.got = got


class EmptyTargetError(ActionError):
    def __init__(self, template_id: str) -> None:
        super().__init__(f"Scheme {template_id} resolved to an empty target")
        self.template_id = template_id


class DispatchFailure(StrEnum):
    TEMPLATE_NOT_FOUND = "template_not_found"
    MISCONFIGURED = "misconfigured"
    EMPTY_TARGET = "empty_target"
    EXECUTOR_REJECTED = "executor_rejected"


class DispatchError(ActionError):
    def __init__(self, reason: DispatchFailure, message: str) -> None:
        super().__init__(message)
        self.reason = reason


@dataclass(slots=True, frozen=True)
class ExecutableTarget:
    kind: ActionKind
    value: str
    template_id: str


def required_arity(template: ActionTemplate) -> int:
    if template.kind == ActionKind.SCRIPT:
        return 1
    return template.template.count(PARAM_PLACEHOLDER)


def build_action_url(template: str, params: list[str] | tuple[str, ...]) -> str:
    """Substitute `{param}` placeholders left-to-right. Values are not escaped."""
    pieces = template.split(PARAM_PLACEHOLDER)
    out = [pieces[0]]
    for i, piece in enumerate(pieces[1:]):
        # Missing values leave the placeholder in place.
        out.append(str(params[i]) if i < len(params) else PARAM_PLACEHOLDER)
        out.append(piece)
    return "".join(out)


def resolve(template: ActionTemplate, binding: ActionBinding) -> ExecutableTarget:
    expected = required_arity(template)
    if len(binding.params) != expected:
        raise ParameterArityError(template.id, expected, len(binding.params))

    if template.kind == ActionKind.SCRIPT:
        value = str(binding.params[0]).strip()
    else:
        value = build_action_url(template.template, binding.params)

    if not value.strip():
        raise EmptyTargetError(template.id)

    return ExecutableTarget(kind=template.kind, value=value, template_id=template.id)


TemplateLookup = Callable[[str], ActionTemplate | None]


class ActionDispatcher:
    """Routes resolved targets to the executor capability for their kind."""

    def __init__(self, url_opener: UrlOpener, script_runner: ScriptRunner) -> None:
        self._url_opener = url_opener
        self._script_runner = script_runner

    async def dispatch(self, target: ExecutableTarget) -> None:
        if not target.value.strip():
            raise DispatchError(DispatchFailure.EMPTY_TARGET, f"Empty target for scheme {target.template_id}")

        if target.kind == ActionKind.SCRIPT:
            if not os.path.isabs(target.value):
                raise DispatchError(
                    DispatchFailure.MISCONFIGURED,
                    f"Script path must be absolute: {target.value}",
                )
            try:
                await self._script_runner.run(target.value)
            except Exception as exc:
                raise DispatchError(
                    DispatchFailure.EXECUTOR_REJECTED,
                    f"Failed to launch script {target.value}: {exc}",
                ) from exc
            logger.info("Launched script scheme=%s path=%s", target.template_id, target.value)
            return

        try:
            await self._url_opener.open(target.value)
        except Exception as exc:
            raise DispatchError(
                DispatchFailure.EXECUTOR_REJECTED,
                f"Failed to open {target.value}: {exc}",
            ) from exc
        logger.info("Opened url scheme=%s", target.template_id)

    async def run_binding(self, binding: ActionBinding, get_template: TemplateLookup) -> ExecutableTarget:
        """Resolve a binding against the template registry and dispatch it."""
        template = get_template(binding.template_id)
        if template is None:
            raise DispatchError(
                DispatchFailure.TEMPLATE_NOT_FOUND,
                f"Action scheme not found: {binding.template_id}",
            )

        try:
            target = resolve(template, binding)
        except ParameterArityError as exc:
            raise DispatchError(DispatchFailure.MISCONFIGURED, str(exc)) from exc
        except EmptyTargetError as exc:
            raise DispatchError(DispatchFailure.EMPTY_TARGET, str(exc)) from exc

        await self.dispatch(target)
        return target


def describe_dispatch_error(err: DispatchError) -> str:
    """User-facing message for a failed manual action."""
    if err.reason == DispatchFailure.EXECUTOR_REJECTED:
        return f"The system refused to run this action. {err}"
    return f"This action's scheme is missing or misconfigured. {err}"
