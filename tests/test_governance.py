"""Governance behavior tests."""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from governance.audit_logger import AuditLogger
from governance.permission_engine import ApprovalGate
from planner.execution_plan import AnalysisResult, RiskLevel


def test_needs_approval_for_high_risk_or_required() -> None:
    low = AnalysisResult(risk_level=RiskLevel.LOW)
    assert not ApprovalGate.needs_approval({"risk_level": "LOW"}, low)
    assert ApprovalGate.needs_approval({"risk_level": "high"}, low)
    assert ApprovalGate.needs_approval({"approval": {"required": True}}, low)
    assert ApprovalGate.needs_approval("raw text plan", AnalysisResult(risk_level=RiskLevel.HIGH))
    assert ApprovalGate.needs_approval({}, AnalysisResult(requires_approval=True))


@pytest.mark.asyncio
async def test_request_without_approver_rejects() -> None:
    decision = await ApprovalGate().request({}, AnalysisResult())
    assert not decision.approved


@pytest.mark.asyncio
async def test_request_supports_sync_and_async_approvers() -> None:
    seen = []

    def sync_approver(plan, analysis) -> bool:
        seen.append(plan)
        return False

    async def async_approver(plan, analysis) -> bool:
        return True

    rejected = await ApprovalGate(approver=sync_approver).request({"goal": "rm"}, AnalysisResult())
    approved = await ApprovalGate(approver=async_approver).request("text", AnalysisResult())
    auto = await ApprovalGate(auto_approve=True).request({}, AnalysisResult())

    assert not rejected.approved
    assert seen == [{"goal": "rm"}]
    assert approved.approved
    assert auto.approved


def test_audit_log_hashes_commands(tmp_path: Path) -> None:
    audit = AuditLogger(tmp_path / "logs" / "audit.jsonl")
    event = audit.log(plan_id="p1", step_id=1, action="TERMINAL_COMMAND", command="ls -la", outcome="SUCCESS")
    audit.log(plan_id="fallback", action="FALLBACK_COMMAND", outcome="FAILED", reason="exit 1")

    assert event["command_hash"] == hashlib.sha256(b"ls -la").hexdigest()
    events = audit.read_events()
    assert len(events) == 2
    assert events[1]["command_hash"] is None
    assert events[1]["reason"] == "exit 1"
