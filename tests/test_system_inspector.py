"""System inspection and runtime wiring tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from core.orchestrator import Orchestrator
from core.system_inspector import describe_system, inspect_system, write_system_document
from llm.providers.mock_provider import MockProvider


def test_inspect_and_describe() -> None:
    info = inspect_system()
    for key in ("platform", "system", "python_version", "shell", "home", "cwd", "user", "tools"):
        assert key in info
    text = describe_system(info)
    assert text.startswith("OS: ")
    assert "Shell: " in text


def test_write_system_document(tmp_path: Path) -> None:
    target = tmp_path / "out" / "system.json"
    info = write_system_document(target, {"system": "Linux"})
    assert json.loads(target.read_text(encoding="utf-8")) == info == {"system": "Linux"}


@pytest.mark.asyncio
async def test_orchestrator_builds_working_bundle(tmp_path: Path) -> None:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "default.yaml").write_text(
        "assistant:\n  include_system_context: false\nlogging:\n  file_logging: false\n",
        encoding="utf-8",
    )

    with Orchestrator(root=tmp_path, llm=MockProvider()).build() as bundle:
        assert bundle.paths["db_path"].parent.is_dir()
        response = await bundle.control_loop.handle_message("hello there")
        assert response.startswith("Local fallback response")
        assert bundle.memory.get_stats()["conversations"] == 1
