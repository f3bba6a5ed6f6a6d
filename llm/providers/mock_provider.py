"""Deterministic local fallback LLM provider for offline usage."""

from __future__ import annotations

import json
import re
import uuid
from collections import Counter
from typing import Any

from llm.base_llm import BaseLLM

_SHELL_HINTS = ("list", "show", "create", "delete", "run", "make", "folder", "file", "directory")


class MockProvider(BaseLLM):
    """Rule-based responder that speaks the analyzer/planner JSON contracts."""

    @staticmethod
    def _tokenize(text: str) -> list[str]:
        return [token for token in re.split(r"[^a-zA-Z0-9]+", text.lower()) if token]

    @staticmethod
    def _summarize_tokens(tokens: list[str], max_items: int = 8) -> str:
        if not tokens:
            return "no salient terms detected"
        top = Counter(tokens).most_common(max_items)
        return ", ".join(term for term, _ in top)

    def _analyze(self, prompt: str) -> dict[str, Any]:
        tokens = self._tokenize(prompt)
        wants_action = any(hint in tokens for hint in _SHELL_HINTS)
        return {
            "request_id": str(uuid.uuid4()),
            "type": "OTHERS" if wants_action else "CHAT_INTERACTION",
            "intent": "EXECUTE_COMMAND" if wants_action else "CASUAL_TALK",
            "confidence": 0.9,
            "summary": prompt.strip()[:100],
            "requires_approval": False,
            "risk_level": "LOW",
            "tool_suggestion": "TERMINAL" if wants_action else "NONE",
            "parameters": {"original_message": prompt},
            "context": {},
        }

    @staticmethod
    def _plan(prompt: str) -> dict[str, Any]:
        try:
            analysis = json.loads(prompt)
        except json.JSONDecodeError:
            analysis = {"summary": prompt}
        if not isinstance(analysis, dict):
            analysis = {"summary": str(analysis)}
        summary = str(analysis.get("summary", ""))
        plan_type = str(analysis.get("type", "OTHERS"))
        if plan_type == "CHAT_INTERACTION":
            steps = [
                {
                    "step_id": 1,
                    "name": "Reply to user",
                    "type": "NOTIFICATION",
                    "tool": "NONE",
                    "parameters": {"message": summary},
                    "on_failure": {"action": "SKIP", "retry_count": 0},
                }
            ]
        else:
            steps = [
                {
                    "step_id": 1,
                    "name": "Echo request",
                    "type": "TERMINAL_COMMAND",
                    "tool": "TERMINAL",
                    "timeout_ms": 5000,
                    "parameters": {"cmd": f"echo {json.dumps(summary)}"},
                    "on_failure": {"action": "STOP", "retry_count": 0,
                                   "fallback_message": "Echo failed"},
                }
            ]
        return {
            "plan_id": str(uuid.uuid4()),
            "source_request_id": analysis.get("request_id"),
            "type": plan_type,
            "goal": summary[:150],
            "status": "PLANNED",
            "risk_level": "LOW",
            "approval": {"required": False, "reason": ""},
            "strategy": {"mode": "SEQUENTIAL", "stop_on_error": True},
            "steps": steps,
            "metadata": {"planner_version": "mock"},
        }

    def _facts(self, prompt: str) -> dict[str, Any]:
        facts = []
        name_match = re.search(r"\bmy name is\s+([A-Za-z][A-Za-z\-]*)", prompt, flags=re.IGNORECASE)
        if name_match:
            facts.append({"type": "name", "value": name_match.group(1), "confidence": 0.9})
        like_match = re.search(r"\bi (?:love|like)\s+([a-zA-Z0-9\-\s]+)", prompt, flags=re.IGNORECASE)
        if like_match:
            item = like_match.group(1).strip().rstrip(".")
            facts.append({"type": "preference", "value": item, "confidence": 0.7})
        return {"facts": facts}

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        """Generate deterministic text (or JSON) from conversational messages."""
        if not messages:
            return "No input received."
        system = "\n".join(m["content"] for m in messages if m.get("role") == "system")
        user_messages = [m["content"] for m in messages if m.get("role") == "user"]
        prompt = user_messages[-1] if user_messages else messages[-1]["content"]

        if "Intent Analysis Engine" in system:
            return json.dumps(self._analyze(prompt))
        if "Strategic Action Planner" in system:
            return json.dumps(self._plan(prompt))
        if "Extract the commands" in system:
            return json.dumps({"commands": []})
        if "fact extraction engine" in system:
            return json.dumps(self._facts(prompt))
        if kwargs.get("json_mode"):
            return json.dumps({})

        salient = self._summarize_tokens(self._tokenize(prompt))
        return f"Local fallback response. Salient terms: {salient}."
