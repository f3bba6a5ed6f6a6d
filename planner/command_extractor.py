"""Extract shell commands from free-form plan text (degraded execution path)."""

from __future__ import annotations

import asyncio
import logging

from llm.base_llm import BaseLLM
from llm.json_utils import parse_json_object
from planner.prompts import COMMAND_EXTRACTION_PROMPT

logger = logging.getLogger("na.command_extractor")


class CommandExtractor:
    def __init__(self, llm: BaseLLM) -> None:
        self.llm = llm

    async def extract_commands(self, plan_text: str) -> list[str]:
        """Return the commands the LLM finds in ``plan_text``; empty on bad replies."""
        messages = [
            {"role": "system", "content": COMMAND_EXTRACTION_PROMPT},
            {"role": "user", "content": plan_text},
        ]
        reply = await asyncio.to_thread(self.llm.chat, messages, json_mode=True, temperature=0.0)
        data = parse_json_object(reply)
        if data is None:
            logger.warning("Command extraction reply is not JSON: %.200s", reply)
            return []
        commands = data.get("commands")
        if not isinstance(commands, list):
            logger.warning("Command extraction reply has no commands list")
            return []
        return [str(command).strip() for command in commands if str(command).strip()]
