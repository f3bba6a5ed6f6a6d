"""Error taxonomy for plan execution."""

from __future__ import annotations


class PlanFormatError(ValueError):
    """Plan text is not JSON or carries no ``steps`` array."""

    def __init__(self, message: str, raw_plan: str = "") -> None:
        super().__init__(message)
        self.raw_plan = raw_plan


class PlanValidationError(ValueError):
    """Plan has a ``steps`` array but does not match the plan schema."""


class StepExecutionError(RuntimeError):
    """A step could not perform its tool action."""


class UnresolvedPlaceholderWarning(UserWarning):
    """A ``{{output_of_step_N}}`` placeholder had no recorded output."""
