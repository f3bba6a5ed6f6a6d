"""CLI entrypoint for native-assistant."""

from __future__ import annotations

from pathlib import Path

import typer

from ui.cli import commands

app = typer.Typer(help="Native Assistant: turn requests into terminal and file actions")
memory_app = typer.Typer(help="Memory commands")
config_app = typer.Typer(help="Configuration commands")


@app.command("ask")
def ask_cmd(
    message: str = typer.Argument(..., help="Request for the assistant"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show pipeline progress"),
) -> None:
    """Handle a single request."""
    commands.ask(message=message, verbose=verbose)


@app.command("chat")
def chat_cmd(verbose: bool = typer.Option(False, "--verbose", "-v", help="Show pipeline progress")) -> None:
    """Interactive chat session."""
    commands.chat(verbose=verbose)


@app.command("run-plan")
def run_plan_cmd(
    plan_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Plan JSON file"),
) -> None:
    """Execute a plan file and print the execution report."""
    commands.run_plan(plan_file=plan_file)


@app.command("system-info")
def system_info_cmd(
    write: bool = typer.Option(False, "--write", help="Persist the system document"),
) -> None:
    """Show what the assistant knows about this machine."""
    commands.system_info(write=write)


@config_app.command("show")
def config_show_cmd() -> None:
    """Show effective configuration."""
    commands.config_show()


@memory_app.command("stats")
def memory_stats_cmd() -> None:
    """Show memory record counts."""
    commands.memory_stats()


@memory_app.command("history")
def memory_history_cmd(limit: int = typer.Option(10, min=1, max=100)) -> None:
    """Show recent conversations."""
    commands.memory_history(limit=limit)


@memory_app.command("facts")
def memory_facts_cmd(fact_type: str = typer.Option(None, "--type", help="Only this fact type")) -> None:
    """Show learned user facts."""
    commands.memory_facts(fact_type=fact_type)


@memory_app.command("clear")
def memory_clear_cmd(yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation")) -> None:
    """Clear all memory."""
    commands.memory_clear(yes=yes)


app.add_typer(memory_app, name="memory")
app.add_typer(config_app, name="config")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
