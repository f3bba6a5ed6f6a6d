"""Structured JSONL audit trail of executed plan steps."""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any


class AuditLogger:
    """Appends one JSON line per executed step or fallback command."""

    def __init__(self, log_path: Path) -> None:
        self.log_path = log_path
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger("na.audit")

    @staticmethod
    def _hash_command(command: str | None) -> str | None:
        if not command:
            return None
        return hashlib.sha256(command.encode("utf-8")).hexdigest()

    def log(
        self,
        *,
        plan_id: str,
        action: str,
        outcome: str,
        step_id: int | None = None,
        command: str | None = None,
        reason: str = "",
    ) -> dict[str, Any]:
        """Append one audit event and return it."""
        event = {
            "timestamp": datetime.now(UTC).isoformat(),
            "plan_id": plan_id,
            "step_id": step_id,
            "action": action,
            "command_hash": self._hash_command(command),
            "outcome": outcome,
            "reason": reason,
        }
        line = json.dumps(event, ensure_ascii=True)
        with self.log_path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")
        self.logger.info(line)
        return event

    def read_events(self) -> list[dict[str, Any]]:
        if not self.log_path.exists():
            return []
        with self.log_path.open("r", encoding="utf-8") as fh:
            return [json.loads(line) for line in fh if line.strip()]
