"""Turn an intent analysis into a raw execution plan."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from llm.base_llm import BaseLLM
from llm.json_utils import parse_json_object
from planner.execution_plan import AnalysisResult
from planner.prompts import PLANNER_PROMPT

logger = logging.getLogger("na.planner")


class ActionPlanner:
    """LLM-backed planner.

    Returns the decoded plan mapping, or the raw reply text when it holds no
    JSON object. Validation is left to the plan runner, which decides between
    normal and fallback execution.
    """

    def __init__(self, llm: BaseLLM, system_context: str = "") -> None:
        self.llm = llm
        self.system_context = system_context

    def _system_prompt(self) -> str:
        if not self.system_context:
            return PLANNER_PROMPT
        return f"{PLANNER_PROMPT}\nSystem information of the target machine:\n{self.system_context}\n"

    async def plan(self, analysis: AnalysisResult) -> dict[str, Any] | str:
        payload = json.dumps(analysis.model_dump(mode="json"), ensure_ascii=False)
        messages = [
            {"role": "system", "content": self._system_prompt()},
            {"role": "user", "content": payload},
        ]
        reply = await asyncio.to_thread(self.llm.chat, messages, json_mode=True, temperature=0.2)
        data = parse_json_object(reply)
        if data is None:
            logger.warning("Planner reply holds no JSON object; passing raw text on")
            return reply
        data.setdefault("source_request_id", analysis.request_id)
        logger.info("Planned %s steps for: %s", len(data.get("steps") or []), data.get("goal", ""))
        return data
