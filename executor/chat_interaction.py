"""Conversational replies for CHAT_INTERACTION requests."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from llm.base_llm import BaseLLM
from llm.prompt_engine.memory_injection import inject_memory
from planner.prompts import CHAT_PROMPT

logger = logging.getLogger("na.chat")

FALLBACK_REPLY = "Sorry, I could not come up with an answer. Could you try again?"


class ChatResponder:
    """Answers chat messages with the LLM, using what memory knows about the user."""

    def __init__(self, llm: BaseLLM, memory_context: Callable[[], str] | None = None) -> None:
        self.llm = llm
        self.memory_context = memory_context

    async def respond(self, message: str) -> str:
        messages = [
            {"role": "system", "content": CHAT_PROMPT},
            {"role": "user", "content": message},
        ]
        if self.memory_context is not None:
            messages = inject_memory(messages, self.memory_context())
        reply = await asyncio.to_thread(self.llm.chat, messages)
        if not reply or not reply.strip():
            logger.warning("Chat LLM returned an empty reply")
            return FALLBACK_REPLY
        return reply.strip()
