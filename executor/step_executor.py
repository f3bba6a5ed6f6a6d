"""Executes a single plan step against its declared tool.

Every textual parameter goes through placeholder resolution once per call,
so a retried step sees the registries as they are at retry time. Failures
never escape as exceptions, with one exception: task cancellation (the
runner's step timeout) propagates so the runner can classify it.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from executor.command_executor import CommandResult, CommandRunner, run_command
from executor.errors import StepExecutionError
from executor.placeholders import (
    Clock,
    OutputRegistry,
    UserInputRegistry,
    resolve_placeholders,
    utc_now,
)
from planner.execution_plan import (
    FileOperationParams,
    NotificationParams,
    Step,
    TerminalCommandParams,
    UserInputParams,
    ValidationParams,
)

logger = logging.getLogger("na.step_executor")

DEFAULT_SUCCESS_MESSAGE = "Command executed successfully"


@dataclass
class StepOutcome:
    """Uniform result of one step attempt."""

    success: bool
    output: str | None = None
    error: str | None = None
    command: str | None = None
    requires_input: bool = False
    input_value: str | None = None
    validation: str | None = None


Resolver = Callable[[Any], Any]
CommandListener = Callable[[str], None]


class StepExecutor:
    """Dispatches a step by (type, tool) and normalises the tool output."""

    def __init__(
        self,
        command_runner: CommandRunner = run_command,
        now: Clock = utc_now,
    ) -> None:
        self.command_runner = command_runner
        self.now = now

    async def execute(
        self,
        step: Step,
        outputs: OutputRegistry | dict[int, str],
        user_inputs: UserInputRegistry,
        previous_step_id: int | None = None,
        on_command: CommandListener | None = None,
    ) -> StepOutcome:
        """Run one attempt of ``step``.

        ``on_command`` receives the resolved command before it is awaited, so a
        caller that times the attempt out still knows what was running.
        """
        announced: list[str] = []

        def announce(command: str) -> None:
            announced.append(command)
            if on_command is not None:
                on_command(command)

        def resolve(value: Any) -> Any:
            return resolve_placeholders(
                value,
                outputs,
                user_inputs,
                previous_step_id=previous_step_id,
                now=self.now,
            )

        try:
            params = step.typed_parameters()
            if isinstance(params, UserInputParams):
                return self._user_input(params, resolve)
            if isinstance(params, TerminalCommandParams):
                return await self._terminal(params, resolve, announce)
            if isinstance(params, FileOperationParams):
                return await self._file_operation(params, resolve, announce)
            if isinstance(params, ValidationParams):
                return await self._validation(params, resolve, announce)
            if isinstance(params, NotificationParams):
                return StepOutcome(success=True, output=resolve(params.message))
            raise StepExecutionError(
                f"Unsupported step type/tool combination: {step.type}/{step.tool}"
            )
        except Exception as exc:
            logger.warning("Step %s (%s) failed: %s", step.step_id, step.name, exc)
            return StepOutcome(
                success=False,
                error=str(exc) or exc.__class__.__name__,
                command=announced[-1] if announced else None,
            )

    @staticmethod
    def _user_input(params: UserInputParams, resolve: Resolver) -> StepOutcome:
        prompt = resolve(params.prompt or params.message or "User input required")
        default = resolve(params.default_value) if params.default_value is not None else None
        return StepOutcome(
            success=True,
            output=prompt,
            requires_input=True,
            input_value=default,
        )

    async def _terminal(
        self, params: TerminalCommandParams, resolve: Resolver, announce: CommandListener
    ) -> StepOutcome:
        command = resolve(params.cmd)
        announce(command)
        result = await self.command_runner(command)
        return self._from_command(command, result)

    async def _validation(
        self, params: ValidationParams, resolve: Resolver, announce: CommandListener
    ) -> StepOutcome:
        command = resolve(params.cmd)
        announce(command)
        validation = resolve(params.validation) if params.validation is not None else None
        result = await self.command_runner(command)
        outcome = self._from_command(command, result)
        outcome.validation = validation
        return outcome

    @staticmethod
    def _from_command(command: str, result: CommandResult) -> StepOutcome:
        if result.success:
            output = result.stdout or result.stderr or DEFAULT_SUCCESS_MESSAGE
            return StepOutcome(success=True, output=output, command=command)
        error = result.error or result.stderr or f"Command exited with code {result.exit_code}"
        if result.stderr and result.stderr not in error:
            error = f"{error}: {result.stderr}"
        return StepOutcome(
            success=False,
            output=result.stdout or None,
            error=error,
            command=command,
        )

    async def _file_operation(
        self, params: FileOperationParams, resolve: Resolver, announce: CommandListener
    ) -> StepOutcome:
        raw_path = resolve(params.path)
        content = resolve(params.content) if params.content is not None else ""
        action = params.action
        description = f"{action} {raw_path}"
        announce(description)
        target = Path(raw_path).expanduser()

        if action in {"create", "write"}:
            written = await asyncio.to_thread(_write_file, target, content)
            return StepOutcome(
                success=True,
                output=f"Wrote {written} characters to {target}",
                command=description,
            )
        if action == "read":
            text = await asyncio.to_thread(target.read_text, encoding="utf-8")
            return StepOutcome(success=True, output=text, command=description)
        if action == "delete":
            await asyncio.to_thread(_delete_path, target)
            return StepOutcome(success=True, output=f"Deleted {target}", command=description)
        raise StepExecutionError(f"Unsupported file operation: {action}")


def _write_file(target: Path, content: str) -> int:
    target.parent.mkdir(parents=True, exist_ok=True)
    return target.write_text(content, encoding="utf-8")


def _delete_path(target: Path) -> None:
    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target)
    elif target.exists() or target.is_symlink():
        target.unlink()
    else:
        raise FileNotFoundError(f"Path not found: {target}")
