"""Execution schemas: structured execution data and API request/response."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.drip.models.enums import ExecutionStatus, LogLevel, TriggerType


class ActionOutcome(BaseModel):
    """Result of running one named action."""

    success: bool
    data: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None

    @classmethod
    def ok(cls, **data: Any) -> "ActionOutcome":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, **data: Any) -> "ActionOutcome":
        return cls(success=False, error=error, data=data)


class ExecutionData(BaseModel):
    """Structured view over ``AutomationExecution.execution_data``.

    Scheduling metadata is written at creation, the outcome fields while the
    execution is processed. Unknown keys written by older code are preserved.
    """

    model_config = ConfigDict(extra="allow")

    # Scheduling metadata
    execute_at: datetime | None = None
    scheduled_at: datetime | None = None
    business_hours_only: bool | None = None
    max_retries: int | None = None
    retry_count: int | None = None

    # Outcome log
    action_results: dict[str, ActionOutcome] = Field(default_factory=dict)
    default_action: dict[str, Any] | None = None
    completion_message: str | None = None
    failure_message: str | None = None
    finished_at: datetime | None = None

    @classmethod
    def from_column(cls, raw: dict[str, Any] | None) -> "ExecutionData":
        return cls.model_validate(raw or {})

    def to_column(self) -> dict[str, Any]:
        """Serialize for the JSON column, omitting unset fields."""
        return self.model_dump(mode="json", exclude_none=True)


def merge_execution_data(
    current: dict[str, Any] | None, update: ExecutionData
) -> dict[str, Any]:
    """Merge ``update`` into the stored execution data.

    Keys are only ever added or overwritten, never removed. Action results
    are merged per action name.
    """
    merged = dict(current or {})
    patch = update.to_column()
    results = {**merged.get("action_results", {}), **patch.pop("action_results", {})}
    merged.update(patch)
    if results:
        merged["action_results"] = results
    return merged


class ExecutionRead(BaseModel):
    """Schema for reading an execution."""

    id: UUID
    workflow_id: UUID
    target_id: UUID
    tenant_id: UUID
    status: ExecutionStatus
    trigger_event: str
    trigger_data: dict[str, Any]
    execution_data: dict[str, Any]
    scheduled_for: datetime | None
    created_at: datetime
    started_at: datetime | None
    completed_at: datetime | None
    error_message: str | None

    model_config = {"from_attributes": True}


class AutomationLogRead(BaseModel):
    """Schema for reading one execution log entry."""

    id: UUID
    execution_id: UUID
    workflow_id: UUID
    level: LogLevel
    message: str
    details: dict[str, Any]
    created_at: datetime

    model_config = {"from_attributes": True}


class ExecutionStats(BaseModel):
    """Execution counts per status (every status present, zero-filled)."""

    counts: dict[ExecutionStatus, int]
    total: int

    @classmethod
    def from_counts(cls, raw: dict[str, int]) -> "ExecutionStats":
        counts = {status: raw.get(status.value, 0) for status in ExecutionStatus}
        return cls(counts=counts, total=sum(counts.values()))


class TriggerEventRequest(BaseModel):
    """A business event that should start matching workflows for a target."""

    trigger_type: TriggerType
    target_id: UUID
    trigger_data: dict[str, Any] = Field(default_factory=dict)


class CancelExecutionRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Reason cannot be empty or whitespace only")
        return v


class CompleteExecutionRequest(BaseModel):
    message: str = Field(default="Marked completed manually", max_length=500)


class FailExecutionRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class TransitionResponse(BaseModel):
    """Whether a requested lifecycle transition was applied."""

    id: UUID
    applied: bool
    status: ExecutionStatus
