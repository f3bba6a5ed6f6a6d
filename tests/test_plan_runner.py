"""Plan runner behaviour: cascade, retries, timeouts, fallback mode."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import pytest

from executor.command_executor import CommandResult
from executor.plan_runner import EXECUTION_ERROR_PREFIX, SKIP_REASON, PlanRunner, load_plan
from executor.errors import PlanFormatError, PlanValidationError
from executor.report import truncate_output
from governance.audit_logger import AuditLogger
from planner.execution_plan import PlanStatus, StepStatus


class ScriptedRunner:
    """Returns queued results per command, defaulting to success."""

    def __init__(self, script: dict[str, list[CommandResult]] | None = None) -> None:
        self.script = script or {}
        self.commands: list[str] = []

    async def __call__(self, command: str) -> CommandResult:
        self.commands.append(command)
        queued = self.script.get(command)
        if queued:
            return queued.pop(0)
        return CommandResult(command=command, success=True, stdout=f"out:{command}")


class FakeSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class StaticExtractor:
    def __init__(self, commands: list[str]) -> None:
        self.commands = commands
        self.seen: list[str] = []

    async def extract_commands(self, plan_text: str) -> list[str]:
        self.seen.append(plan_text)
        return list(self.commands)


def fail(command: str) -> CommandResult:
    return CommandResult(command=command, success=False, error="Command failed with exit code 1", exit_code=1)


def terminal_step(step_id: int, cmd: str, **on_failure: Any) -> dict[str, Any]:
    step: dict[str, Any] = {
        "step_id": step_id,
        "name": f"step {step_id}",
        "type": "TERMINAL_COMMAND",
        "tool": "TERMINAL",
        "parameters": {"cmd": cmd},
    }
    if on_failure:
        step["on_failure"] = on_failure
    return step


def build_runner(runner: ScriptedRunner, **kwargs: Any) -> PlanRunner:
    kwargs.setdefault("sleep", FakeSleep())
    return PlanRunner(command_runner=runner, **kwargs)


@pytest.mark.asyncio
async def test_scenario_single_echo_step_succeeds() -> None:
    plan = {"goal": "say hello", "steps": [terminal_step(1, "echo hello")]}
    text = await PlanRunner().run(json.dumps(plan))
    assert "Status: SUCCESS" in text
    assert "Steps: 1/1 succeeded" in text
    assert "hello" in text


@pytest.mark.asyncio
async def test_scenario_stop_failure_skips_remaining_steps() -> None:
    runner = ScriptedRunner({"bad": [fail("bad")]})
    plan = load_plan(
        {
            "strategy": {"stop_on_error": True},
            "steps": [terminal_step(1, "bad", action="STOP"), terminal_step(2, "good"), terminal_step(3, "also")],
        }
    )
    report = await build_runner(runner).execute(plan)

    assert [r.status for r in report.results] == [StepStatus.FAILED, StepStatus.SKIPPED, StepStatus.SKIPPED]
    assert report.results[1].reason == SKIP_REASON
    assert runner.commands == ["bad"]
    assert plan.status == PlanStatus.FAILED
    assert not report.success
    assert "Status: FAILED" in report.render()


@pytest.mark.asyncio
async def test_scenario_user_input_placeholder_without_input() -> None:
    plan = {
        "steps": [{"step_id": 1, "type": "NOTIFICATION", "tool": "NONE", "parameters": {"message": "Hi {{user_input}}"}}]
    }
    report = await build_runner(ScriptedRunner()).execute(load_plan(plan))
    assert report.results[0].status == StepStatus.SUCCESS
    assert report.results[0].output == "Hi "


@pytest.mark.asyncio
async def test_scenario_missing_steps_uses_command_fallback() -> None:
    runner = ScriptedRunner()
    extractor = StaticExtractor(["pwd"])
    raw_plan = json.dumps({"goal": "where am I", "actions": ["pwd"]})

    text = await build_runner(runner, command_extractor=extractor).run(raw_plan)

    assert runner.commands == ["pwd"]
    assert extractor.seen == [raw_plan]
    assert text.startswith("Command: pwd\nResult: ")
    assert '"stdout": "out:pwd"' in text
    assert "Execution Report" not in text


@pytest.mark.asyncio
async def test_non_json_plan_text_also_falls_back() -> None:
    runner = ScriptedRunner()
    text = await build_runner(runner, command_extractor=StaticExtractor(["ls"])).run("First, run ls.")
    assert runner.commands == ["ls"]
    assert "Command: ls" in text


@pytest.mark.asyncio
async def test_missing_steps_without_extractor_is_execution_error() -> None:
    text = await build_runner(ScriptedRunner()).run("{}")
    assert text.startswith(EXECUTION_ERROR_PREFIX)


@pytest.mark.asyncio
async def test_invalid_steps_are_fatal_even_with_extractor() -> None:
    runner = ScriptedRunner()
    plan = {"steps": [{"name": "no id", "type": "TERMINAL_COMMAND"}]}
    text = await build_runner(runner, command_extractor=StaticExtractor(["pwd"])).run(plan)
    assert text.startswith(EXECUTION_ERROR_PREFIX)
    assert runner.commands == []
    with pytest.raises(PlanValidationError):
        load_plan(plan)


def test_load_plan_strips_code_fences() -> None:
    plan = load_plan('```json\n{"steps": []}\n```')
    assert plan.steps == []
    with pytest.raises(PlanFormatError) as excinfo:
        load_plan("not json")
    assert excinfo.value.raw_plan == "not json"


@pytest.mark.asyncio
async def test_empty_plan_reports_zero_steps_success() -> None:
    text = await build_runner(ScriptedRunner()).run({"goal": "nothing", "steps": []})
    assert "Status: SUCCESS" in text
    assert "Steps: 0/0 succeeded, 0/0 failed, 0/0 skipped" in text


@pytest.mark.asyncio
async def test_retry_attempts_are_bounded_and_spaced() -> None:
    runner = ScriptedRunner({"flaky": [fail("flaky")] * 5})
    sleep = FakeSleep()
    plan = load_plan({"steps": [terminal_step(1, "flaky", action="RETRY", retry_count=2), terminal_step(2, "next")]})

    report = await build_runner(runner, sleep=sleep, retry_delay=1.0).execute(plan)

    assert runner.commands == ["flaky", "flaky", "flaky", "next"]
    assert sleep.delays == [1.0, 1.0]
    assert report.results[0].status == StepStatus.FAILED
    assert report.results[0].attempts == 3
    # exhausted RETRY continues like SKIP
    assert report.results[1].status == StepStatus.SUCCESS


@pytest.mark.asyncio
async def test_retry_stops_after_first_success() -> None:
    runner = ScriptedRunner({"flaky": [fail("flaky")]})
    plan = load_plan({"steps": [terminal_step(1, "flaky", action="RETRY", retry_count=3)]})
    report = await build_runner(runner).execute(plan)
    assert runner.commands == ["flaky", "flaky"]
    assert report.results[0].status == StepStatus.SUCCESS
    assert report.results[0].attempts == 2


@pytest.mark.asyncio
async def test_stop_with_stop_on_error_false_continues() -> None:
    runner = ScriptedRunner({"bad": [fail("bad")]})
    plan = load_plan(
        {
            "strategy": {"stop_on_error": False},
            "steps": [terminal_step(1, "bad", action="STOP", fallback_message="try again later"), terminal_step(2, "ok")],
        }
    )
    report = await build_runner(runner).execute(plan)
    assert [r.status for r in report.results] == [StepStatus.FAILED, StepStatus.SUCCESS]
    assert "Fallback: try again later" in report.render()


@pytest.mark.asyncio
async def test_outputs_flow_between_steps() -> None:
    runner = ScriptedRunner({"pwd": [CommandResult(command="pwd", success=True, stdout="/srv")]})
    plan = load_plan({"steps": [terminal_step(1, "pwd"), terminal_step(2, "ls {{output_of_step_1}}")]})
    await build_runner(runner).execute(plan)
    assert runner.commands == ["pwd", "ls /srv"]


@pytest.mark.asyncio
async def test_user_input_default_feeds_later_steps() -> None:
    runner = ScriptedRunner()
    plan = load_plan(
        {
            "steps": [
                {"step_id": 1, "type": "USER_INPUT", "parameters": {"prompt": "Name?", "default_value": "demo"}},
                terminal_step(2, "mkdir {{user_input}}"),
            ]
        }
    )
    await build_runner(runner).execute(plan)
    assert runner.commands == ["mkdir demo"]


@pytest.mark.asyncio
async def test_step_timeout_counts_as_failure() -> None:
    async def slow_runner(command: str) -> CommandResult:
        await asyncio.sleep(5)
        return CommandResult(command=command, success=True)

    runner = PlanRunner(command_runner=slow_runner, sleep=FakeSleep())
    step = terminal_step(1, "sleep 5")
    step["timeout_ms"] = 50
    report = await runner.execute(load_plan({"steps": [step, terminal_step(2, "after")]}))

    assert report.results[0].status == StepStatus.FAILED
    assert report.results[0].error == "Step timed out after 50 ms"
    assert report.results[1].status == StepStatus.SKIPPED


@pytest.mark.asyncio
async def test_long_output_is_truncated_in_report_only() -> None:
    long_output = "x" * 1000
    runner = ScriptedRunner({"big": [CommandResult(command="big", success=True, stdout=long_output)]})
    plan = load_plan({"steps": [terminal_step(1, "big"), terminal_step(2, "echo {{output_of_step_1}}")]})
    plan_runner = build_runner(runner, output_preview_chars=100)

    report = await plan_runner.execute(plan)

    assert runner.commands[1] == f"echo {long_output}"
    assert "... (900 more characters)" in report.render(100)
    assert truncate_output("short", 100) == "short"


@pytest.mark.asyncio
async def test_every_step_is_audited(tmp_path: Path) -> None:
    audit = AuditLogger(tmp_path / "audit.jsonl")
    runner = ScriptedRunner({"bad": [fail("bad")]})
    plan = load_plan({"steps": [terminal_step(1, "bad"), terminal_step(2, "skipped")]})

    await build_runner(runner, audit_logger=audit).execute(plan)

    events = audit.read_events()
    assert [(e["step_id"], e["outcome"]) for e in events] == [(1, "FAILED"), (2, "SKIPPED")]
    assert all(e["plan_id"] == plan.plan_id for e in events)


@pytest.mark.asyncio
async def test_user_input_without_default_keeps_earlier_value() -> None:
    runner = ScriptedRunner()
    plan = load_plan(
        {
            "steps": [
                {"step_id": 1, "type": "USER_INPUT", "parameters": {"prompt": "Name?", "default_value": "alice"}},
                {"step_id": 2, "type": "USER_INPUT", "parameters": {"prompt": "Nickname?"}},
                terminal_step(3, "echo Hi {{user_input}}"),
            ]
        }
    )
    await build_runner(runner).execute(plan)
    assert runner.commands == ["echo Hi alice"]


@pytest.mark.asyncio
async def test_timed_out_step_reports_its_command() -> None:
    async def slow_runner(command: str) -> CommandResult:
        await asyncio.sleep(5)
        return CommandResult(command=command, success=True)

    step = terminal_step(2, "ls {{output_of_step_1}}")
    step["timeout_ms"] = 50
    plan = load_plan({"steps": [{"step_id": 1, "type": "NOTIFICATION", "parameters": {"message": "/srv"}}, step]})
    report = await PlanRunner(command_runner=slow_runner, sleep=FakeSleep()).execute(plan)

    assert report.results[1].status == StepStatus.FAILED
    assert report.results[1].command == "ls /srv"
    assert "Command: ls /srv" in report.render()


@pytest.mark.asyncio
async def test_timeout_kills_shell_children() -> None:
    step = terminal_step(1, "sleep 5; echo done")
    step["timeout_ms"] = 200
    loop = asyncio.get_running_loop()
    started = loop.time()

    report = await PlanRunner(sleep=FakeSleep()).execute(load_plan({"steps": [step]}))

    assert report.results[0].status == StepStatus.FAILED
    assert report.results[0].error == "Step timed out after 200 ms"
    assert loop.time() - started < 3


@pytest.mark.asyncio
async def test_skip_action_continues() -> None:
    runner = ScriptedRunner({"bad": [fail("bad")]})
    plan = load_plan({"steps": [terminal_step(1, "bad", action="SKIP"), terminal_step(2, "good")]})

    report = await build_runner(runner).execute(plan)

    assert [r.status for r in report.results] == [StepStatus.FAILED, StepStatus.SUCCESS]
    assert runner.commands == ["bad", "good"]
    assert plan.status == PlanStatus.FAILED


@pytest.mark.asyncio
async def test_fallback_action_records_message_and_continues() -> None:
    runner = ScriptedRunner({"bad": [fail("bad")]})
    plan = load_plan(
        {
            "steps": [
                terminal_step(1, "bad", action="FALLBACK", fallback_message="use the cached copy"),
                terminal_step(2, "good"),
            ]
        }
    )

    report = await build_runner(runner).execute(plan)

    assert [r.status for r in report.results] == [StepStatus.FAILED, StepStatus.SUCCESS]
    assert report.results[0].fallback_message == "use the cached copy"
    assert "Fallback: use the cached copy" in report.render()


@pytest.mark.asyncio
async def test_parallel_mode_keeps_declared_order() -> None:
    runner = ScriptedRunner()
    plan = load_plan(
        {
            "strategy": {"mode": "PARALLEL"},
            "steps": [terminal_step(1, "first"), terminal_step(2, "second"), terminal_step(3, "third")],
        }
    )

    report = await build_runner(runner).execute(plan)

    assert [r.step_id for r in report.results] == [1, 2, 3]
    assert runner.commands == ["first", "second", "third"]
    assert report.success


@pytest.mark.asyncio
async def test_fallback_commands_are_audited(tmp_path: Path) -> None:
    audit = AuditLogger(tmp_path / "audit.jsonl")
    runner = ScriptedRunner({"bad": [fail("bad")]})
    extractor = StaticExtractor(["pwd", "bad"])

    await build_runner(runner, command_extractor=extractor, audit_logger=audit).run("no json here")

    events = audit.read_events()
    assert [(e["command"], e["outcome"]) for e in events] == [("pwd", "SUCCESS"), ("bad", "FAILED")]
    assert all(e["plan_id"] == "fallback" for e in events)
