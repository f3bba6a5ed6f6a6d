"""Memory injection helper for prompt augmentation."""

from __future__ import annotations


def inject_memory(messages: list[dict[str, str]], memory_context: str) -> list[dict[str, str]]:
    """Prepend what memory knows about the user as an extra system message."""
    if not memory_context.strip():
        return messages
    memory_block = "What you remember about the user:\n" + memory_context.strip()
    return [{"role": "system", "content": memory_block}, *messages]
