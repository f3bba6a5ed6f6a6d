"""Approval gate for plans that need explicit user consent."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from planner.execution_plan import AnalysisResult, RiskLevel

logger = logging.getLogger("na.approval")

Approver = Callable[[dict[str, Any], AnalysisResult], "bool | Awaitable[bool]"]


@dataclass
class ApprovalDecision:
    """Represents approve/reject decision."""

    approved: bool
    reason: str


class ApprovalGate:
    """Asks an approver before HIGH risk or approval-required plans run."""

    def __init__(self, approver: Approver | None = None, auto_approve: bool = False) -> None:
        self.approver = approver
        self.auto_approve = auto_approve

    @staticmethod
    def needs_approval(plan: dict[str, Any] | str, analysis: AnalysisResult) -> bool:
        if analysis.requires_approval or analysis.risk_level == RiskLevel.HIGH:
            return True
        if not isinstance(plan, dict):
            return False
        approval = plan.get("approval")
        if isinstance(approval, dict) and approval.get("required") is True:
            return True
        return str(plan.get("risk_level", "")).strip().upper() == RiskLevel.HIGH.value

    async def request(self, plan: dict[str, Any] | str, analysis: AnalysisResult) -> ApprovalDecision:
        """Ask the approver; a missing approver rejects unless auto-approve is on."""
        if self.auto_approve:
            return ApprovalDecision(True, "Auto-approved by configuration.")
        if self.approver is None:
            logger.warning("Plan requires approval but no approver is configured")
            return ApprovalDecision(False, "No approver configured.")

        answer = self.approver(plan if isinstance(plan, dict) else {"raw": plan}, analysis)
        if inspect.isawaitable(answer):
            answer = await answer
        if answer:
            return ApprovalDecision(True, "Approved by user.")
        return ApprovalDecision(False, "Rejected by user.")
