"""OpenAI provider with graceful fallback behavior."""

from __future__ import annotations

import logging
import os
from typing import Any

from llm.base_llm import BaseLLM

logger = logging.getLogger("na.llm.openai")


class OpenAIProvider(BaseLLM):
    """OpenAI API adapter. Works only when dependency and API key are present."""

    def __init__(self, model: str = "gpt-4o-mini") -> None:
        self.model = model

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            return (
                "OpenAI provider unavailable: OPENAI_API_KEY not set. "
                "Use the ollama or mock provider, or configure credentials."
            )
        try:
            from openai import OpenAI
        except ImportError:
            return (
                "OpenAI provider unavailable: `openai` package missing. "
                "Install with: pip install openai"
            )
        request: dict[str, Any] = {"model": self.model, "messages": messages}
        if kwargs.get("json_mode"):
            request["response_format"] = {"type": "json_object"}
        try:
            client = OpenAI(api_key=api_key)
            response = client.chat.completions.create(**request)
            content = response.choices[0].message.content
            return content or "OpenAI returned an empty response."
        except Exception as exc:  # pragma: no cover - external API path
            logger.warning("OpenAI call failed: %s", exc)
            return f"OpenAI provider failed gracefully: {exc}"
