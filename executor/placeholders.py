"""Placeholder substitution for step parameters.

Supported tokens:

- ``{{output_of_step_N}}``: output recorded for step N; left verbatim (with an
  ``UnresolvedPlaceholderWarning``) when step N has no recorded output.
- ``{{user_input}}``: latest collected user input, else the value recorded for
  the preceding step, else an empty string.
- ``{{timestamp}}``, ``{{date}}``, ``{{time}}``: one clock reading per call.

Step-output and user-input tokens are substituted before the clock tokens.
"""

from __future__ import annotations

import logging
import re
import warnings
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from executor.errors import UnresolvedPlaceholderWarning

logger = logging.getLogger("na.placeholders")

_STEP_OUTPUT_RE = re.compile(r"\{\{output_of_step_(\d+)\}\}")
_USER_INPUT_TOKEN = "{{user_input}}"
_TIMESTAMP_TOKEN = "{{timestamp}}"
_DATE_TOKEN = "{{date}}"
_TIME_TOKEN = "{{time}}"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class OutputRegistry(dict[int, str]):
    """Step id -> last successful output, scoped to one plan run."""


class UserInputRegistry:
    """Values collected at user-input steps plus a ``latest`` slot."""

    def __init__(self) -> None:
        self._values: dict[int, str] = {}
        self.latest: str | None = None

    def record(self, step_id: int, value: str) -> None:
        self._values[step_id] = value
        self.latest = value

    def get(self, step_id: int | None) -> str | None:
        if step_id is None:
            return None
        return self._values.get(step_id)

    def __contains__(self, step_id: object) -> bool:
        return step_id in self._values

    def __len__(self) -> int:
        return len(self._values)


def resolve_placeholders(
    text: Any,
    outputs: OutputRegistry | dict[int, str],
    user_inputs: UserInputRegistry | None = None,
    *,
    previous_step_id: int | None = None,
    now: Clock = utc_now,
) -> Any:
    """Substitute placeholders in ``text``; non-strings are returned unchanged."""
    if not isinstance(text, str) or "{{" not in text:
        return text

    def _step_output(match: re.Match[str]) -> str:
        step_id = int(match.group(1))
        if step_id in outputs:
            return outputs[step_id]
        logger.warning("Unresolved placeholder %s: step %d has no output", match.group(0), step_id)
        warnings.warn(
            f"Placeholder {match.group(0)} left unresolved: step {step_id} has no recorded output",
            UnresolvedPlaceholderWarning,
            stacklevel=3,
        )
        return match.group(0)

    resolved = _STEP_OUTPUT_RE.sub(_step_output, text)

    if _USER_INPUT_TOKEN in resolved:
        resolved = resolved.replace(_USER_INPUT_TOKEN, _user_input_value(user_inputs, previous_step_id))

    if _TIMESTAMP_TOKEN in resolved or _DATE_TOKEN in resolved or _TIME_TOKEN in resolved:
        reading = now()
        resolved = (
            resolved.replace(_TIMESTAMP_TOKEN, reading.isoformat())
            .replace(_DATE_TOKEN, reading.date().isoformat())
            .replace(_TIME_TOKEN, reading.strftime("%H:%M:%S"))
        )
    return resolved


def _user_input_value(user_inputs: UserInputRegistry | None, previous_step_id: int | None) -> str:
    if user_inputs is None:
        return ""
    if user_inputs.latest is not None:
        return user_inputs.latest
    return user_inputs.get(previous_step_id) or ""
