"""Shell command primitive tests (uses the host shell)."""

from __future__ import annotations

import asyncio
import time

import pytest

from executor.command_executor import CommandResult, run_command


@pytest.mark.asyncio
async def test_successful_command_captures_stdout() -> None:
    result = await run_command("echo hello")
    assert result.success
    assert result.stdout == "hello"
    assert result.exit_code == 0
    assert result.error is None


@pytest.mark.asyncio
async def test_non_zero_exit_is_a_failure() -> None:
    result = await run_command("echo oops 1>&2; exit 3")
    assert not result.success
    assert result.exit_code == 3
    assert result.stderr == "oops"
    assert result.error == "Command failed with exit code 3"


@pytest.mark.asyncio
async def test_timeout_kills_the_command() -> None:
    started = time.monotonic()
    result = await run_command("sleep 5", timeout=0.2)
    assert not result.success
    assert "timed out" in result.error
    assert time.monotonic() - started < 4


@pytest.mark.asyncio
async def test_cancellation_propagates() -> None:
    task = asyncio.create_task(run_command("sleep 5"))
    await asyncio.sleep(0.1)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


def test_as_dict_uses_transcript_keys() -> None:
    failed = CommandResult(command="false", success=False, error="Command failed with exit code 1", exit_code=1)
    assert failed.as_dict() == {
        "success": False,
        "stdout": "",
        "stderr": "",
        "error": "Command failed with exit code 1",
        "exitCode": 1,
    }
    assert CommandResult(command="x", success=True).as_dict() == {"success": True, "stdout": "", "stderr": ""}
