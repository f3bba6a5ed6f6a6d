"""Execution plan and intent analysis models.

Plans come from an LLM, so parsing is lenient: enum-like strings are
upper-cased, unknown step kinds survive parsing and only fail when the step
is executed, and unknown keys are ignored.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from executor.errors import StepExecutionError


class PlanType(str, Enum):
    OTHERS = "OTHERS"
    WEB_AUTOMATION = "WEB_AUTOMATION"
    CHAT_INTERACTION = "CHAT_INTERACTION"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"


class ExecutionMode(str, Enum):
    SEQUENTIAL = "SEQUENTIAL"
    PARALLEL = "PARALLEL"


class PlanStatus(str, Enum):
    PLANNED = "PLANNED"
    EXECUTING = "EXECUTING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class StepType(str, Enum):
    TERMINAL_COMMAND = "TERMINAL_COMMAND"
    FILE_OPERATION = "FILE_OPERATION"
    VALIDATION = "VALIDATION"
    NOTIFICATION = "NOTIFICATION"
    USER_INPUT = "USER_INPUT"
    WEB_NAVIGATE = "WEB_NAVIGATE"
    WEB_INTERACT = "WEB_INTERACT"
    WEB_EXTRACT = "WEB_EXTRACT"
    API_REQUEST = "API_REQUEST"


class ToolKind(str, Enum):
    TERMINAL = "TERMINAL"
    FS = "FS"
    NONE = "NONE"
    PLAYWRIGHT = "PLAYWRIGHT"
    PUPPETEER = "PUPPETEER"
    AXIOS = "AXIOS"


class FailureAction(str, Enum):
    STOP = "STOP"
    RETRY = "RETRY"
    SKIP = "SKIP"
    FALLBACK = "FALLBACK"


class StepStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


def _upper(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().upper()
    return value


class _LenientModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class OnFailure(_LenientModel):
    """Per-step failure policy."""

    action: FailureAction = FailureAction.STOP
    retry_count: int = Field(default=0, ge=0)
    fallback_message: str = ""

    @field_validator("action", mode="before")
    @classmethod
    def _normalize_action(cls, value: Any) -> Any:
        value = _upper(value)
        return value or FailureAction.STOP

    @field_validator("retry_count", mode="before")
    @classmethod
    def _normalize_retry(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("fallback_message", mode="before")
    @classmethod
    def _normalize_message(cls, value: Any) -> Any:
        return "" if value is None else str(value)


class Strategy(_LenientModel):
    """Plan-wide execution strategy; ``stop_on_error=None`` means not explicitly false."""

    mode: ExecutionMode = ExecutionMode.SEQUENTIAL
    stop_on_error: bool | None = None

    @field_validator("mode", mode="before")
    @classmethod
    def _normalize_mode(cls, value: Any) -> Any:
        value = _upper(value)
        return value or ExecutionMode.SEQUENTIAL


class Approval(_LenientModel):
    required: bool = False
    reason: str = ""

    @field_validator("reason", mode="before")
    @classmethod
    def _normalize_reason(cls, value: Any) -> Any:
        return "" if value is None else str(value)


# ── Typed parameter variants, keyed by (step type, tool) ─────────────


class TerminalCommandParams(_LenientModel):
    cmd: str
    validation: str | None = None


class FileOperationParams(_LenientModel):
    action: str
    path: str
    content: str | None = None

    @field_validator("action", mode="before")
    @classmethod
    def _lower_action(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


class ValidationParams(_LenientModel):
    cmd: str
    validation: str | None = None


class NotificationParams(_LenientModel):
    message: str = ""


class UserInputParams(_LenientModel):
    prompt: str | None = None
    message: str | None = None
    default_value: str | None = None

    @field_validator("default_value", mode="before")
    @classmethod
    def _stringify_default(cls, value: Any) -> Any:
        return value if value is None or isinstance(value, str) else str(value)


StepParameters = (
    TerminalCommandParams
    | FileOperationParams
    | ValidationParams
    | NotificationParams
    | UserInputParams
)

# ``None`` as tool means any tool.
PARAMETER_VARIANTS: dict[tuple[StepType, ToolKind | None], type[BaseModel]] = {
    (StepType.TERMINAL_COMMAND, ToolKind.TERMINAL): TerminalCommandParams,
    (StepType.FILE_OPERATION, ToolKind.FS): FileOperationParams,
    (StepType.VALIDATION, None): ValidationParams,
    (StepType.NOTIFICATION, ToolKind.NONE): NotificationParams,
}


class Step(_LenientModel):
    """One atomic unit of work. Never mutated by the runner."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    step_id: int
    name: str = ""
    type: str
    tool: str = ToolKind.NONE.value
    intent: str | None = None
    blocking: bool = True
    timeout_ms: int | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)
    on_success: dict[str, Any] | None = None
    on_failure: OnFailure = Field(default_factory=OnFailure)

    @field_validator("type", "tool", mode="before")
    @classmethod
    def _normalize_kind(cls, value: Any) -> Any:
        if value is None:
            return ToolKind.NONE.value
        return _upper(value)

    @field_validator("parameters", mode="before")
    @classmethod
    def _normalize_parameters(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("on_failure", mode="before")
    @classmethod
    def _normalize_on_failure(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def requires_user_input(self) -> bool:
        return self.type == StepType.USER_INPUT or self.parameters.get("requires_user_input") is True

    def typed_parameters(self) -> StepParameters:
        """Validate ``parameters`` against the variant for this step's (type, tool)."""
        if self.requires_user_input:
            return UserInputParams.model_validate(self.parameters)
        for (step_type, tool), model in PARAMETER_VARIANTS.items():
            if self.type == step_type and (tool is None or self.tool == tool):
                return model.model_validate(self.parameters)  # type: ignore[return-value]
        raise StepExecutionError(
            f"Unsupported step type/tool combination: {self.type}/{self.tool}"
        )


class PlanResult(_LenientModel):
    success: bool = False
    outputs: list[str] = Field(default_factory=list)
    error: str | None = None


class ExecutionPlan(_LenientModel):
    """JSON-described ordered sequence of steps for one user intent."""

    plan_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    source_request_id: str | None = None
    goal: str = ""
    type: str = PlanType.OTHERS.value
    status: PlanStatus = PlanStatus.PLANNED
    risk_level: RiskLevel = RiskLevel.LOW
    approval: Approval = Field(default_factory=Approval)
    strategy: Strategy = Field(default_factory=Strategy)
    steps: list[Step]
    result: PlanResult | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("plan_id", mode="before")
    @classmethod
    def _normalize_plan_id(cls, value: Any) -> Any:
        if value is None or value == "":
            return uuid.uuid4().hex
        return str(value)

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        return _upper(value) or PlanType.OTHERS.value

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> Any:
        return _upper(value) or PlanStatus.PLANNED

    @field_validator("risk_level", mode="before")
    @classmethod
    def _normalize_risk(cls, value: Any) -> Any:
        value = _upper(value)
        if value == "MEDIUM":
            return RiskLevel.MODERATE
        return value or RiskLevel.LOW

    @field_validator("approval", "strategy", "metadata", mode="before")
    @classmethod
    def _normalize_mapping(cls, value: Any) -> Any:
        return {} if value is None else value


class AnalysisResult(_LenientModel):
    """Intent analysis produced by the message analyzer."""

    request_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: str = PlanType.CHAT_INTERACTION.value
    intent: str = ""
    confidence: float = 0.0
    summary: str = ""
    requires_approval: bool = False
    risk_level: RiskLevel = RiskLevel.LOW
    tool_suggestion: str = ToolKind.NONE.value
    parameters: dict[str, Any] = Field(default_factory=dict)
    context: dict[str, Any] = Field(default_factory=dict)

    @field_validator("type", "tool_suggestion", mode="before")
    @classmethod
    def _normalize_kind(cls, value: Any) -> Any:
        return _upper(value) or "NONE"

    @field_validator("risk_level", mode="before")
    @classmethod
    def _normalize_risk(cls, value: Any) -> Any:
        value = _upper(value)
        if value == "MEDIUM":
            return RiskLevel.MODERATE
        return value or RiskLevel.LOW

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> Any:
        try:
            return max(0.0, min(1.0, float(value)))
        except (TypeError, ValueError):
            return 0.0

    @field_validator("parameters", "context", mode="before")
    @classmethod
    def _normalize_mapping(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @field_validator("request_id", "intent", "summary", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        return "" if value is None else str(value)
