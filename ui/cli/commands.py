"""Typer command handlers."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import typer

from core.orchestrator import Orchestrator, RuntimeBundle
from core.system_inspector import describe_system, inspect_system, write_system_document
from planner.execution_plan import AnalysisResult

_PROGRESS = {
    "analysis_started": "Analyzing your message...",
    "planning_completed": "Plan ready.",
    "approval_requested": "This action needs your approval.",
}


def _confirm(plan: dict[str, Any], analysis: AnalysisResult) -> bool:
    goal = plan.get("goal") or analysis.summary
    typer.echo(f"Goal: {goal}")
    typer.echo(f"Risk level: {plan.get('risk_level') or analysis.risk_level.value}")
    approval = plan.get("approval")
    reason = approval.get("reason") if isinstance(approval, dict) else ""
    if reason:
        typer.echo(f"Reason: {reason}")
    return typer.confirm("Approve this action?", default=False)


def _runtime(root: Path | None = None, verbose: bool = False) -> RuntimeBundle:
    bundle = Orchestrator(root=root, approver=_confirm).build()
    if verbose:
        for event_name, text in _PROGRESS.items():
            bundle.event_bus.subscribe(event_name, lambda _payload, text=text: typer.echo(text))
        bundle.event_bus.subscribe("analysis_completed", _echo_analysis)
    return bundle


def _echo_analysis(payload: dict[str, Any]) -> None:
    analysis = payload["analysis"]
    typer.echo(
        f"Analysis: type={analysis['type']} intent={analysis['intent']} "
        f"confidence={analysis['confidence'] * 100:.0f}% risk={analysis['risk_level']}"
    )


def ask(message: str, verbose: bool = False) -> None:
    """Run one message through the pipeline."""
    with _runtime(verbose=verbose) as bundle:
        response = asyncio.run(bundle.control_loop.handle_message(message))
        typer.echo(response)


def chat(verbose: bool = False) -> None:
    """Run interactive chat loop."""
    with _runtime(verbose=verbose) as bundle:
        typer.echo("Chat mode. Type 'exit' to quit.")
        while True:
            user_text = typer.prompt("you")
            if user_text.strip().lower() in {"exit", "quit"}:
                typer.echo("bye")
                break
            response = asyncio.run(bundle.control_loop.handle_message(user_text))
            typer.echo(f"assistant: {response}")


def run_plan(plan_file: Path) -> None:
    """Execute a plan JSON file directly and print the report."""
    raw_plan = plan_file.read_text(encoding="utf-8")
    with _runtime() as bundle:
        typer.echo(asyncio.run(bundle.plan_runner.run(raw_plan)))


def system_info(write: bool = False) -> None:
    """Print the host inspection, optionally persisting it."""
    info = inspect_system()
    if write:
        with _runtime() as bundle:
            path = bundle.paths["system_info_path"]
            write_system_document(path, info)
            typer.echo(f"Wrote {path}")
    typer.echo(describe_system(info))


def config_show() -> None:
    """Show effective runtime config."""
    with _runtime() as bundle:
        typer.echo(json.dumps(_json_safe(bundle.config), indent=2))


def memory_stats() -> None:
    with _runtime() as bundle:
        typer.echo(json.dumps(bundle.memory.get_stats(), indent=2))


def memory_history(limit: int = 10) -> None:
    with _runtime() as bundle:
        typer.echo(json.dumps(_json_safe(bundle.memory.get_recent_conversations(limit)), indent=2))


def memory_facts(fact_type: str | None = None) -> None:
    with _runtime() as bundle:
        typer.echo(json.dumps(_json_safe(bundle.memory.get_user_facts(fact_type)), indent=2))


def memory_clear(yes: bool = False) -> None:
    """Delete every stored conversation, fact and preference."""
    if not yes and not typer.confirm("Clear all memory?", default=False):
        typer.echo("Aborted.")
        return
    with _runtime() as bundle:
        bundle.memory.clear_all()
        typer.echo("Memory cleared.")


def _json_safe(payload: object) -> object:
    """Convert datetimes to strings for JSON output."""
    if isinstance(payload, dict):
        return {k: _json_safe(v) for k, v in payload.items()}
    if isinstance(payload, list):
        return [_json_safe(v) for v in payload]
    if hasattr(payload, "isoformat"):
        return payload.isoformat()
    return payload
