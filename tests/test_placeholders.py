"""Placeholder resolution tests."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from executor.errors import UnresolvedPlaceholderWarning
from executor.placeholders import OutputRegistry, UserInputRegistry, resolve_placeholders

FIXED = datetime(2024, 5, 17, 9, 30, 15, tzinfo=UTC)


def fixed_clock() -> datetime:
    return FIXED


def test_step_output_is_substituted() -> None:
    outputs = OutputRegistry({1: "/home/me"})
    assert resolve_placeholders("ls {{output_of_step_1}}", outputs) == "ls /home/me"


def test_missing_step_output_is_left_verbatim_with_warning() -> None:
    with pytest.warns(UnresolvedPlaceholderWarning):
        result = resolve_placeholders("cat {{output_of_step_7}}", OutputRegistry())
    assert result == "cat {{output_of_step_7}}"


def test_text_without_placeholders_and_non_strings_are_untouched() -> None:
    outputs = OutputRegistry({1: "x"})
    assert resolve_placeholders("plain text", outputs) == "plain text"
    assert resolve_placeholders(42, outputs) == 42
    assert resolve_placeholders(None, outputs) is None


def test_user_input_without_any_value_becomes_empty() -> None:
    assert resolve_placeholders("Hi {{user_input}}", OutputRegistry(), UserInputRegistry()) == "Hi "
    assert resolve_placeholders("Hi {{user_input}}", OutputRegistry()) == "Hi "


def test_user_input_prefers_latest_value() -> None:
    inputs = UserInputRegistry()
    inputs.record(2, "first")
    inputs.record(3, "second")
    result = resolve_placeholders("{{user_input}}", OutputRegistry(), inputs, previous_step_id=2)
    assert result == "second"


def test_clock_tokens_share_one_reading() -> None:
    text = "{{timestamp}} {{date}} {{time}}"
    result = resolve_placeholders(text, OutputRegistry(), now=fixed_clock)
    assert result == "2024-05-17T09:30:15+00:00 2024-05-17 09:30:15"


def test_resolution_is_idempotent() -> None:
    outputs = OutputRegistry({1: "done"})
    inputs = UserInputRegistry()
    inputs.record(1, "value")
    text = "{{output_of_step_1}} {{user_input}} {{date}}"
    once = resolve_placeholders(text, outputs, inputs, now=fixed_clock)
    twice = resolve_placeholders(once, outputs, inputs, now=fixed_clock)
    assert once == twice == "done value 2024-05-17"
