"""Base LLM interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseLLM(ABC):
    """Abstract LLM provider interface."""

    @abstractmethod
    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        """Return assistant response text for a message list.

        ``json_mode=True`` asks the backend to answer with a single JSON object.
        """
