# tests/test_actions.py

from __future__ import annotations

import pytest

from linkflow.tasks.actions import (
    ActionDispatcher,
    DispatchError,
    DispatchFailure,
    EmptyTargetError,
    ExecutableTarget,
    ParameterArityError,
    describe_dispatch_error,
    required_arity,
    resolve,
)
from linkflow.tasks.executors import build_script_argv
from linkflow.tasks.task_models import ActionBinding, ActionKind, ActionTemplate

from .fakes import FakeScriptRunner, FakeUrlOpener

TEL = ActionTemplate(id="tel", name="Phone", icon="", template="tel://{param}")
MAIL = ActionTemplate(id="mail", name="Mail", icon="", template="mailto:{param}?subject={param}")
INBOX = ActionTemplate(id="inbox", name="Inbox", icon="", template="message://")
SCRIPT = ActionTemplate(id="script", name="Script", icon="", template="", kind=ActionKind.SCRIPT)


def test_resolve_single_and_multiple_placeholders() -> None:
    assert resolve(TEL, ActionBinding("tel", ("12345",))).value == "tel://12345"
    assert resolve(MAIL, ActionBinding("mail", ("a@b.com", "Hi"))).value == "mailto:a@b.com?subject=Hi"
    assert resolve(INBOX, ActionBinding("inbox")).value == "message://"


def test_resolve_does_not_substitute_inside_values() -> None:
    target = resolve(MAIL, ActionBinding("mail", ("{param}", "x")))
    assert target.value == "mailto:{param}?subject=x"


def test_resolve_arity_mismatch() -> None:
    with pytest.raises(ParameterArityError) as exc:
        resolve(MAIL, ActionBinding("mail", ("a@b.com",)))
    assert exc.value.expected == 2
    assert exc.value.got == 1

    with pytest.raises(ParameterArityError):
        resolve(SCRIPT, ActionBinding("script", ()))


def test_resolve_empty_targets() -> None:
    blank = ActionTemplate(id="blank", name="Blank", icon="", template="{param}")
    with pytest.raises(EmptyTargetError):
        resolve(blank, ActionBinding("blank", ("",)))
    with pytest.raises(EmptyTargetError):
        resolve(SCRIPT, ActionBinding("script", ("   ",)))


def test_script_target_is_trimmed_path() -> None:
    target = resolve(SCRIPT, ActionBinding("script", ("  /opt/jobs/backup.sh ",)))
    assert target == ExecutableTarget(kind=ActionKind.SCRIPT, value="/opt/jobs/backup.sh", template_id="script")
    assert required_arity(SCRIPT) == 1
    assert required_arity(MAIL) == 2


@pytest.mark.asyncio
async def test_dispatch_routes_by_kind() -> None:
    opener, runner = FakeUrlOpener(), FakeScriptRunner()
    dispatcher = ActionDispatcher(opener, runner)

    await dispatcher.dispatch(ExecutableTarget(ActionKind.URL, "tel://1", "tel"))
    await dispatcher.dispatch(ExecutableTarget(ActionKind.SCRIPT, "/opt/a.py", "script"))

    assert opener.opened == ["tel://1"]
    assert runner.ran == ["/opt/a.py"]


@pytest.mark.asyncio
async def test_dispatch_rejects_relative_script_path() -> None:
    runner = FakeScriptRunner()
    dispatcher = ActionDispatcher(FakeUrlOpener(), runner)

    with pytest.raises(DispatchError) as exc:
        await dispatcher.dispatch(ExecutableTarget(ActionKind.SCRIPT, "scripts/a.sh", "script"))
    assert exc.value.reason == DispatchFailure.MISCONFIGURED
    assert runner.ran == []


@pytest.mark.asyncio
async def test_executor_failure_is_reported() -> None:
    dispatcher = ActionDispatcher(FakeUrlOpener(fail=True), FakeScriptRunner(fail=True))

    with pytest.raises(DispatchError) as exc:
        await dispatcher.dispatch(ExecutableTarget(ActionKind.URL, "tel://1", "tel"))
    assert exc.value.reason == DispatchFailure.EXECUTOR_REJECTED
    assert isinstance(exc.value.__cause__, RuntimeError)

    with pytest.raises(DispatchError) as exc2:
        await dispatcher.dispatch(ExecutableTarget(ActionKind.SCRIPT, "/opt/a.sh", "script"))
    assert exc2.value.reason == DispatchFailure.EXECUTOR_REJECTED
    assert "refused" in describe_dispatch_error(exc2.value)


@pytest.mark.asyncio
async def test_run_binding_maps_resolution_errors() -> None:
    dispatcher = ActionDispatcher(FakeUrlOpener(), FakeScriptRunner())
    registry = {t.id: t for t in (TEL, MAIL)}

    with pytest.raises(DispatchError) as missing:
        await dispatcher.run_binding(ActionBinding("gone", ("1",)), registry.get)
    assert missing.value.reason == DispatchFailure.TEMPLATE_NOT_FOUND
    assert "missing or misconfigured" in describe_dispatch_error(missing.value)

    with pytest.raises(DispatchError) as arity:
        await dispatcher.run_binding(ActionBinding("mail", ("a@b.com",)), registry.get)
    assert arity.value.reason == DispatchFailure.MISCONFIGURED

    target = await dispatcher.run_binding(ActionBinding("tel", ("555",)), registry.get)
    assert target.value == "tel://555"


def test_script_interpreter_by_extension() -> None:
    assert build_script_argv("/x/run.sh") == ["sh", "/x/run.sh"]
    assert build_script_argv("/x/tool.JS") == ["node", "/x/tool.JS"]
    assert build_script_argv("/x/job.py")[-1] == "/x/job.py"
    assert build_script_argv("/usr/local/bin/thing") == ["/usr/local/bin/thing"]
