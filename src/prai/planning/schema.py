"""Typed records for plans, plan steps and step execution results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


class StepType(str, Enum):
    """Closed set of executable step kinds."""

    COMMAND = "command"
    CREATE_FILE = "create-file"
    EDIT_FILE = "edit-file"
    DELETE_FILE = "delete-file"
    MKDIR = "mkdir"
    GIT = "git"
    NPM = "npm"
    TEST = "test"
    BUILD = "build"
    MANUAL = "manual"

    @classmethod
    def coerce(cls, value: "StepType | str") -> "StepType | str":
        """Return the enum member for ``value`` or the raw string when unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return value


SHELL_STEP_TYPES = frozenset(
    {StepType.COMMAND, StepType.GIT, StepType.NPM, StepType.TEST, StepType.BUILD}
)
FILE_STEP_TYPES = frozenset(
    {StepType.CREATE_FILE, StepType.EDIT_FILE, StepType.DELETE_FILE, StepType.MKDIR}
)


@dataclass(frozen=True, slots=True)
class PlanStep:
    """Single executable step of a plan.

    ``type`` keeps unrecognised values as plain strings so that plans coming
    from generated JSON can still be loaded; the executor rejects them when
    the step runs.
    """

    number: int
    title: str
    type: Union[StepType, str] = StepType.MANUAL
    description: Optional[str] = None
    command: Optional[str] = None
    file_path: Optional[str] = None
    content: Optional[str] = None
    params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.number < 1:
            raise ValueError(f"Step numbers are 1-based, got {self.number}")
        if not self.title.strip():
            raise ValueError("Plan steps require a non-empty title")
        object.__setattr__(self, "type", StepType.coerce(self.type))

    @property
    def type_label(self) -> str:
        return self.type.value if isinstance(self.type, StepType) else str(self.type)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "number": self.number,
            "title": self.title,
            "type": self.type_label,
        }
        for key in ("description", "command", "file_path", "content"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        if self.params:
            payload["params"] = dict(self.params)
        return payload


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Outcome of running one :class:`PlanStep`."""

    step: PlanStep
    success: bool
    duration_ms: int
    timestamp: datetime = field(default_factory=utc_now)
    output: Optional[str] = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if self.duration_ms < 0:
            raise ValueError("duration_ms must be non-negative")

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "step": self.step.to_dict(),
            "success": self.success,
            "duration_ms": self.duration_ms,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.output is not None:
            payload["output"] = self.output
        if self.error is not None:
            payload["error"] = self.error
        return payload


class RecordModel(BaseModel):
    """Base model for payloads produced by the AI agent."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PlanTask(RecordModel):
    """Task entry of an AI-generated implementation plan."""

    title: str
    description: str = ""
    priority: Literal["high", "medium", "low"] = "medium"
    estimated_time: str = Field(default="", alias="estimatedTime")

    @field_validator("priority", mode="before")
    @classmethod
    def _normalise_priority(cls, value: Any) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower()
            return lowered if lowered in {"high", "medium", "low"} else "medium"
        return value


class ImplementationPlan(RecordModel):
    """Implementation plan returned by the agent for an issue."""

    overview: str = ""
    tasks: List[PlanTask] = Field(default_factory=list)
    suggested_branch_name: str = Field(default="", alias="suggestedBranchName")
    prerequisites: List[str] = Field(default_factory=list)
    testing_strategy: List[str] = Field(default_factory=list, alias="testingStrategy")


__all__ = [
    "ExecutionResult",
    "FILE_STEP_TYPES",
    "ImplementationPlan",
    "PlanStep",
    "PlanTask",
    "RecordModel",
    "SHELL_STEP_TYPES",
    "StepType",
    "utc_now",
]
