"""Plan runner: drives an execution plan to completion and reports on it.

Normal mode walks ``plan.steps`` in array order. Each step gets one attempt
plus ``on_failure.retry_count`` retries separated by a fixed delay, and each
attempt is bounded by the step's ``timeout_ms``. A failed step whose action
is STOP triggers the skip-cascade (unless ``strategy.stop_on_error`` is
explicitly false): every remaining step is recorded as SKIPPED without being
executed. SKIP, FALLBACK and exhausted RETRY failures let the plan continue.

When the plan has no ``steps`` array the runner degrades to fallback mode:
the raw plan text goes to a command extractor, and the returned commands are
run unconditionally.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from pydantic import ValidationError

from executor.command_executor import CommandRunner, run_command
from executor.errors import PlanFormatError, PlanValidationError
from executor.placeholders import OutputRegistry, UserInputRegistry
from executor.report import (
    DEFAULT_PREVIEW_CHARS,
    FallbackTranscript,
    PlanReport,
    StepResult,
    TranscriptEntry,
)
from executor.step_executor import StepExecutor, StepOutcome
from governance.audit_logger import AuditLogger
from planner.execution_plan import (
    ExecutionMode,
    ExecutionPlan,
    FailureAction,
    PlanResult,
    PlanStatus,
    Step,
    StepStatus,
)

logger = logging.getLogger("na.plan_runner")

SKIP_REASON = "previous step failed and stop_on_error is true"
EXECUTION_ERROR_PREFIX = "Execution error: "

Sleep = Callable[[float], Awaitable[None]]


class CommandExtractor(Protocol):
    """Turns free-form plan text into a list of shell commands."""

    async def extract_commands(self, plan_text: str) -> list[str]: ...


def load_plan(raw: str | dict[str, Any] | ExecutionPlan) -> ExecutionPlan:
    """Parse ``raw`` into an ``ExecutionPlan``.

    Raises ``PlanFormatError`` when there is no usable ``steps`` array and
    ``PlanValidationError`` when the steps do not match the plan schema.
    """
    if isinstance(raw, ExecutionPlan):
        return raw
    if isinstance(raw, str):
        text = re.sub(r"```(?:json)?\s*|```\s*", "", raw).strip()
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise PlanFormatError(f"Plan is not valid JSON: {exc}", raw_plan=raw) from exc
        raw_text = raw
    else:
        data = raw
        raw_text = json.dumps(raw, ensure_ascii=False, default=str)

    if not isinstance(data, dict) or not isinstance(data.get("steps"), list):
        raise PlanFormatError("Plan has no steps array", raw_plan=raw_text)
    try:
        return ExecutionPlan.model_validate(data)
    except ValidationError as exc:
        raise PlanValidationError(f"Plan does not match the plan schema: {exc}") from exc


class PlanRunner:
    """Executes plans step by step with retry, timeout and failure policy."""

    def __init__(
        self,
        command_runner: CommandRunner = run_command,
        step_executor: StepExecutor | None = None,
        command_extractor: CommandExtractor | None = None,
        audit_logger: AuditLogger | None = None,
        retry_delay: float = 1.0,
        default_timeout_ms: int = 30_000,
        output_preview_chars: int = DEFAULT_PREVIEW_CHARS,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.command_runner = command_runner
        self.step_executor = step_executor or StepExecutor(command_runner=command_runner)
        self.command_extractor = command_extractor
        self.audit_logger = audit_logger
        self.retry_delay = retry_delay
        self.default_timeout_ms = default_timeout_ms
        self.output_preview_chars = output_preview_chars
        self.sleep = sleep

    # ── Boundary entry point ─────────────────────────────────────────

    async def run(self, raw_plan: str | dict[str, Any] | ExecutionPlan) -> str:
        """Run a plan and return text for the end user.

        Returns the rendered report, the fallback transcript when the plan
        has no steps, or a single ``Execution error: ...`` line when the
        call fails as a whole.
        """
        try:
            try:
                plan = load_plan(raw_plan)
            except PlanFormatError as exc:
                if self.command_extractor is None:
                    raise
                logger.warning("%s; falling back to command extraction", exc)
                transcript = await self.run_fallback(exc.raw_plan)
                return transcript.render()
            report = await self.execute(plan)
            return report.render(self.output_preview_chars)
        except Exception as exc:
            logger.exception("Plan execution aborted")
            return f"{EXECUTION_ERROR_PREFIX}{exc}"

    # ── Normal mode ──────────────────────────────────────────────────

    async def execute(self, plan: ExecutionPlan) -> PlanReport:
        """Execute every step of ``plan`` and return the structured report."""
        if plan.strategy.mode == ExecutionMode.PARALLEL:
            logger.info("Plan %s requests PARALLEL mode; running steps in declared order", plan.plan_id)
        logger.info("Executing plan %s (%d steps): %s", plan.plan_id, len(plan.steps), plan.goal)

        plan.status = PlanStatus.EXECUTING
        outputs = OutputRegistry()
        user_inputs = UserInputRegistry()
        report = PlanReport(plan_id=plan.plan_id, goal=plan.goal)
        execution_stopped = False
        previous_step_id: int | None = None

        for step in plan.steps:
            if execution_stopped:
                logger.info("Skipping step %s: %s", step.step_id, SKIP_REASON)
                result = StepResult(
                    step_id=step.step_id,
                    name=step.name,
                    type=step.type,
                    status=StepStatus.SKIPPED,
                    reason=SKIP_REASON,
                )
                report.results.append(result)
                await self._audit(plan, step, result)
                previous_step_id = step.step_id
                continue

            outcome, attempts = await self._run_with_retries(step, outputs, user_inputs, previous_step_id)
            result = StepResult(
                step_id=step.step_id,
                name=step.name,
                type=step.type,
                status=StepStatus.SUCCESS if outcome.success else StepStatus.FAILED,
                output=outcome.output,
                error=outcome.error,
                command=outcome.command,
                validation=outcome.validation,
                attempts=attempts,
            )

            if outcome.success:
                if outcome.output is not None:
                    outputs[step.step_id] = outcome.output
                if outcome.requires_input and outcome.input_value is not None:
                    user_inputs.record(step.step_id, outcome.input_value)
            else:
                execution_stopped = self._apply_failure_policy(plan, step, result)

            report.results.append(result)
            await self._audit(plan, step, result)
            previous_step_id = step.step_id

        plan.status = PlanStatus.COMPLETED if report.success else PlanStatus.FAILED
        plan.result = PlanResult(
            success=report.success,
            outputs=[r.output for r in report.results if r.output is not None],
            error=next((r.error for r in report.results if r.status == StepStatus.FAILED), None),
        )
        logger.info(
            "Plan %s finished: %d succeeded, %d failed, %d skipped",
            plan.plan_id,
            report.succeeded,
            report.failed,
            report.skipped,
        )
        return report

    async def _run_with_retries(
        self,
        step: Step,
        outputs: OutputRegistry,
        user_inputs: UserInputRegistry,
        previous_step_id: int | None,
    ) -> tuple[StepOutcome, int]:
        max_attempts = 1 + step.on_failure.retry_count
        outcome = StepOutcome(success=False, error="Step was not attempted")
        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                logger.info(
                    "Retrying step %s (attempt %d/%d) after %.1fs",
                    step.step_id,
                    attempt,
                    max_attempts,
                    self.retry_delay,
                )
                await self.sleep(self.retry_delay)
            outcome = await self._attempt(step, outputs, user_inputs, previous_step_id)
            if outcome.success:
                return outcome, attempt
        return outcome, max_attempts

    async def _attempt(
        self,
        step: Step,
        outputs: OutputRegistry,
        user_inputs: UserInputRegistry,
        previous_step_id: int | None,
    ) -> StepOutcome:
        timeout_ms = step.timeout_ms if step.timeout_ms and step.timeout_ms > 0 else self.default_timeout_ms
        seen: list[str] = []
        try:
            return await asyncio.wait_for(
                self.step_executor.execute(
                    step, outputs, user_inputs, previous_step_id, on_command=seen.append
                ),
                timeout=timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            logger.warning("Step %s timed out after %d ms", step.step_id, timeout_ms)
            return StepOutcome(
                success=False,
                error=f"Step timed out after {timeout_ms} ms",
                command=seen[-1] if seen else None,
            )

    @staticmethod
    def _apply_failure_policy(plan: ExecutionPlan, step: Step, result: StepResult) -> bool:
        """Record the failure per ``on_failure.action``; return True to stop the plan."""
        policy = step.on_failure
        if policy.fallback_message:
            result.fallback_message = policy.fallback_message

        if policy.action == FailureAction.STOP:
            if plan.strategy.stop_on_error is False:
                logger.warning("Step %s failed (STOP) but stop_on_error is false; continuing", step.step_id)
                return False
            logger.error("Step %s failed with STOP policy; skipping remaining steps", step.step_id)
            return True
        if policy.action == FailureAction.SKIP:
            logger.warning("Step %s failed; SKIP policy, continuing", step.step_id)
        elif policy.action == FailureAction.FALLBACK:
            logger.warning("Step %s failed; fallback: %s", step.step_id, policy.fallback_message)
        else:
            logger.warning("Step %s failed after %d retries; continuing", step.step_id, policy.retry_count)
        return False

    async def _audit(self, plan: ExecutionPlan, step: Step, result: StepResult) -> None:
        if self.audit_logger is None:
            return
        # the audit file write stays off the event loop
        await asyncio.to_thread(
            self.audit_logger.log,
            plan_id=plan.plan_id,
            step_id=step.step_id,
            action=step.type,
            command=result.command,
            outcome=result.status.value,
            reason=result.error or result.reason or "",
        )

    # ── Fallback mode ────────────────────────────────────────────────

    async def run_fallback(self, plan_text: str) -> FallbackTranscript:
        """Ask the extractor for commands and run each one unconditionally."""
        if self.command_extractor is None:
            raise PlanFormatError("No command extractor configured for fallback mode", raw_plan=plan_text)
        commands = await self.command_extractor.extract_commands(plan_text)
        logger.info("Fallback mode: %d commands extracted", len(commands))
        transcript = FallbackTranscript()
        for command in commands:
            logger.info("Executing fallback command: %s", command)
            result = await self.command_runner(command)
            transcript.entries.append(TranscriptEntry(command=command, result=result.as_dict()))
            if self.audit_logger is not None:
                await asyncio.to_thread(
                    self.audit_logger.log,
                    plan_id="fallback",
                    action="FALLBACK_COMMAND",
                    command=command,
                    outcome="SUCCESS" if result.success else "FAILED",
                    reason=result.error or "",
                )
        return transcript
