"""Execution report structures and their plain-text rendering."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from planner.execution_plan import StepStatus

DEFAULT_PREVIEW_CHARS = 800


@dataclass
class StepResult:
    """Recorded result of one plan step (exactly one per step, in step order)."""

    step_id: int
    name: str
    type: str
    status: StepStatus
    output: str | None = None
    error: str | None = None
    command: str | None = None
    fallback_message: str | None = None
    reason: str | None = None
    validation: str | None = None
    attempts: int = 0


@dataclass
class PlanReport:
    """Aggregated outcome of one plan run."""

    plan_id: str
    goal: str
    results: list[StepResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return self._count(StepStatus.SUCCESS)

    @property
    def failed(self) -> int:
        return self._count(StepStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(StepStatus.SKIPPED)

    @property
    def success(self) -> bool:
        return self.failed == 0

    def _count(self, status: StepStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    def render(self, preview_chars: int = DEFAULT_PREVIEW_CHARS) -> str:
        total = len(self.results)
        lines = [
            "Execution Report",
            f"Goal: {self.goal or '(no goal given)'}",
            f"Plan ID: {self.plan_id}",
            f"Status: {'SUCCESS' if self.success else 'FAILED'}",
            (
                f"Steps: {self.succeeded}/{total} succeeded, "
                f"{self.failed}/{total} failed, {self.skipped}/{total} skipped"
            ),
        ]
        for result in self.results:
            lines.append("")
            lines.extend(_render_step(result, preview_chars))
        return "\n".join(lines)


def truncate_output(text: str, limit: int = DEFAULT_PREVIEW_CHARS) -> str:
    """Cap ``text`` at ``limit`` characters and note how many were dropped."""
    if len(text) <= limit:
        return text
    return f"{text[:limit]}\n... ({len(text) - limit} more characters)"


def _render_step(result: StepResult, preview_chars: int) -> list[str]:
    title = f"[{result.status.value}] Step {result.step_id}: {result.name or result.type}"
    if result.attempts > 1:
        title += f" ({result.attempts} attempts)"
    lines = [title]
    if result.command:
        lines.append(f"  Command: {result.command}")
    if result.output:
        lines.append("  Output:")
        lines.extend(f"    {line}" for line in truncate_output(result.output, preview_chars).splitlines())
    if result.validation:
        lines.append(f"  Expected: {result.validation}")
    if result.error:
        lines.append(f"  Error: {result.error}")
    if result.reason:
        lines.append(f"  Reason: {result.reason}")
    if result.fallback_message and result.status == StepStatus.FAILED:
        lines.append(f"  Fallback: {result.fallback_message}")
    return lines


@dataclass
class TranscriptEntry:
    command: str
    result: dict[str, Any]


@dataclass
class FallbackTranscript:
    """Commands run in degraded mode, with their raw results."""

    entries: list[TranscriptEntry] = field(default_factory=list)

    def render(self) -> str:
        if not self.entries:
            return "No commands were produced for this request."
        blocks = [
            f"Command: {entry.command}\nResult: {json.dumps(entry.result, ensure_ascii=False)}"
            for entry in self.entries
        ]
        return "\n\n".join(blocks)
