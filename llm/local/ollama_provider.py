"""Ollama provider adapter (OpenAI-compatible endpoint)."""

from __future__ import annotations

import logging
from typing import Any

from llm.base_llm import BaseLLM

logger = logging.getLogger("na.llm.ollama")


class OllamaProvider(BaseLLM):
    """Talks to a local Ollama server through its ``/v1`` OpenAI-compatible API."""

    def __init__(
        self,
        model: str = "llama3",
        host: str = "http://localhost",
        port: int | str = 11434,
        temperature: float = 0.7,
    ) -> None:
        self.model = model
        self.base_url = f"{host.rstrip('/')}:{port}/v1"
        self.temperature = temperature

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        try:
            from openai import OpenAI
        except ImportError:
            return (
                "Ollama provider unavailable: `openai` package missing. "
                "Install with: pip install openai"
            )
        request: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": kwargs.get("temperature", self.temperature),
        }
        if kwargs.get("json_mode"):
            request["response_format"] = {"type": "json_object"}
        try:
            # Ollama ignores the key but the client requires one.
            client = OpenAI(api_key="ollama", base_url=self.base_url)
            response = client.chat.completions.create(**request)
            content = response.choices[0].message.content
            return content or "Ollama returned an empty response."
        except Exception as exc:
            logger.warning("Ollama call failed: %s", exc)
            return f"Ollama provider failed gracefully: {exc}"
