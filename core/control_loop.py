"""Message pipeline: Analyze -> Plan -> Approve -> Route -> Remember.

Each call to ``handle_message`` is one independent request. Progress is
published on the event bus so interfaces can show intermediate status.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from core.event_bus import EventBus
from executor.action_router import ActionRouter
from governance.permission_engine import ApprovalGate
from memory.memory_manager import MemoryManager
from planner.action_planner import ActionPlanner
from planner.execution_plan import AnalysisResult
from planner.message_analyzer import MessageAnalyzer

logger = logging.getLogger("na.control_loop")

LOW_CONFIDENCE_REPLY = (
    "Low confidence in analysis result. "
    "Please rephrase your message or provide more details."
)
REJECTED_REPLY = "Action rejected by user."


class ControlLoop:
    """Runs one user message through the whole assistant pipeline."""

    def __init__(
        self,
        event_bus: EventBus,
        analyzer: MessageAnalyzer,
        planner: ActionPlanner,
        router: ActionRouter,
        approval_gate: ApprovalGate,
        memory_manager: MemoryManager | None = None,
        min_confidence: float = 0.7,
    ) -> None:
        self.event_bus = event_bus
        self.analyzer = analyzer
        self.planner = planner
        self.router = router
        self.approval_gate = approval_gate
        self.memory_manager = memory_manager
        self.min_confidence = min_confidence

    async def handle_message(self, message: str) -> str:
        await self.event_bus.emit("analysis_started", {"message": message})
        analysis = await self.analyzer.analyze(message)
        await self.event_bus.emit("analysis_completed", {"analysis": analysis.model_dump(mode="json")})

        if analysis.confidence < self.min_confidence:
            logger.info(
                "Analysis confidence %.2f below threshold %.2f", analysis.confidence, self.min_confidence
            )
            return LOW_CONFIDENCE_REPLY

        plan = await self.planner.plan(analysis)
        await self.event_bus.emit("planning_completed", {"plan": plan})

        if self.approval_gate.needs_approval(plan, analysis):
            await self.event_bus.emit("approval_requested", {"plan": plan})
            decision = await self.approval_gate.request(plan, analysis)
            logger.info("Approval decision: approved=%s (%s)", decision.approved, decision.reason)
            if not decision.approved:
                await self.event_bus.emit("approval_rejected", {"reason": decision.reason})
                return REJECTED_REPLY

        response = await self.router.route(plan, analysis)
        await self.event_bus.emit("execution_completed", {"response": response})

        await self._remember(message, response, analysis, plan)
        return response

    async def _remember(
        self,
        message: str,
        response: str,
        analysis: AnalysisResult,
        plan: dict[str, Any] | str,
    ) -> None:
        if self.memory_manager is None:
            return
        metadata = {
            "confidence": analysis.confidence,
            "risk_level": analysis.risk_level.value,
            "plan_id": plan.get("plan_id") if isinstance(plan, dict) else None,
        }
        try:
            await asyncio.to_thread(
                self.memory_manager.save_conversation,
                message,
                response,
                analysis.type,
                analysis.intent,
                metadata,
            )
            await asyncio.to_thread(self.memory_manager.extract_insights, message, analysis)
        except Exception:
            logger.exception("Failed to update memory")
