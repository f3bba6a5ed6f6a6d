"""Intent analysis: classify a user message into an ``AnalysisResult``."""

from __future__ import annotations

import asyncio
import logging

from pydantic import ValidationError

from llm.base_llm import BaseLLM
from llm.json_utils import parse_json_object
from planner.execution_plan import AnalysisResult, PlanType
from planner.prompts import ANALYZER_PROMPT

logger = logging.getLogger("na.analyzer")


def default_analysis(message: str) -> AnalysisResult:
    """Safe result used whenever the analyzer cannot produce one."""
    return AnalysisResult(
        type=PlanType.CHAT_INTERACTION.value,
        intent="UNKNOWN",
        confidence=0.0,
        summary="Error in analysis",
        parameters={"original_message": message},
    )


class MessageAnalyzer:
    """Asks the LLM to classify a message; never raises for bad replies."""

    def __init__(self, llm: BaseLLM) -> None:
        self.llm = llm

    async def analyze(self, message: str) -> AnalysisResult:
        messages = [
            {"role": "system", "content": ANALYZER_PROMPT},
            {"role": "user", "content": message},
        ]
        try:
            reply = await asyncio.to_thread(self.llm.chat, messages, json_mode=True, temperature=0.1)
        except Exception:
            logger.exception("Analyzer LLM call failed")
            return default_analysis(message)

        data = parse_json_object(reply)
        if data is None:
            logger.warning("Analyzer reply is not a JSON object: %.200s", reply)
            return default_analysis(message)
        try:
            analysis = AnalysisResult.model_validate(data)
        except ValidationError as exc:
            logger.warning("Analyzer reply does not match the analysis schema: %s", exc)
            return default_analysis(message)

        analysis.parameters.setdefault("original_message", message)
        logger.info(
            "Analyzed message: type=%s intent=%s confidence=%.2f risk=%s",
            analysis.type,
            analysis.intent,
            analysis.confidence,
            analysis.risk_level.value,
        )
        return analysis
