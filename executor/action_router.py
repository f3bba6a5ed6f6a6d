"""Dispatch a planned request to the executor that handles its plan type."""

from __future__ import annotations

import logging
from typing import Any

from executor.chat_interaction import ChatResponder
from executor.plan_runner import PlanRunner
from planner.execution_plan import AnalysisResult, PlanType

logger = logging.getLogger("na.action_router")

WEB_AUTOMATION_NOTICE = (
    "Web automation is not available in this assistant. "
    "Try a terminal or file based request instead."
)


class ActionRouter:
    """Routes by plan type: chat, web automation or local plan execution."""

    def __init__(self, plan_runner: PlanRunner, chat_responder: ChatResponder) -> None:
        self.plan_runner = plan_runner
        self.chat_responder = chat_responder

    @staticmethod
    def _plan_type(plan: dict[str, Any] | str, analysis: AnalysisResult) -> str:
        if isinstance(plan, dict) and plan.get("type"):
            return str(plan["type"]).strip().upper()
        return analysis.type

    async def route(self, plan: dict[str, Any] | str, analysis: AnalysisResult) -> str:
        plan_type = self._plan_type(plan, analysis)
        logger.info("Routing %s request", plan_type)

        if plan_type == PlanType.CHAT_INTERACTION:
            message = (
                analysis.parameters.get("original_message")
                or analysis.summary
                or (plan.get("goal") if isinstance(plan, dict) else "")
                or ""
            )
            return await self.chat_responder.respond(str(message))
        if plan_type == PlanType.WEB_AUTOMATION:
            return WEB_AUTOMATION_NOTICE
        return await self.plan_runner.run(plan)
