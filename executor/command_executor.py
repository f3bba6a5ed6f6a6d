"""Shell command execution primitive."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger("na.command_executor")


@dataclass
class CommandResult:
    """Captured outcome of one shell command."""

    command: str
    success: bool
    stdout: str = ""
    stderr: str = ""
    error: str | None = None
    exit_code: int | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": self.success,
            "stdout": self.stdout,
            "stderr": self.stderr,
        }
        if self.error is not None:
            payload["error"] = self.error
        if self.exit_code is not None:
            payload["exitCode"] = self.exit_code
        return payload


CommandRunner = Callable[[str], Awaitable[CommandResult]]


async def run_command(
    command: str,
    *,
    cwd: Path | None = None,
    timeout: float | None = None,
) -> CommandResult:
    """Run ``command`` through the system shell and wait for it to exit.

    The command runs in its own process group. A timeout or cancellation of
    the awaiting task kills that whole group before returning or propagating.
    """
    logger.debug("Running command: %s", command)
    try:
        proc = await asyncio.create_subprocess_shell(
            command,
            cwd=cwd,
            start_new_session=True,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        logger.warning("Command could not be started: %s (%s)", command, exc)
        return CommandResult(command=command, success=False, error=str(exc))

    try:
        raw_out, raw_err = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _kill(proc)
        return CommandResult(
            command=command,
            success=False,
            error=f"Command timed out after {timeout:g} seconds",
        )
    except asyncio.CancelledError:
        await _kill(proc)
        raise

    stdout = raw_out.decode("utf-8", errors="replace").strip()
    stderr = raw_err.decode("utf-8", errors="replace").strip()
    code = proc.returncode
    if code == 0:
        return CommandResult(command=command, success=True, stdout=stdout, stderr=stderr, exit_code=0)
    return CommandResult(
        command=command,
        success=False,
        stdout=stdout,
        stderr=stderr,
        error=f"Command failed with exit code {code}",
        exit_code=code,
    )


async def _kill(proc: asyncio.subprocess.Process) -> None:
    try:
        # the shell's children hold the pipes open, so signal the whole group
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    await proc.wait()
