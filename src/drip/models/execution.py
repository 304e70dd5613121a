"""Automation execution model - one attempt to run a workflow against a target."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from src.drip.models.base import JSONType, utc_now
from src.drip.models.enums import ExecutionStatus


class AutomationExecution(SQLModel, table=True):
    """Persistent unit of scheduled work and its lifecycle state.

    ``trigger_data`` is written once at creation. ``execution_data`` only ever
    gains keys; always assign a new dict so the JSON column is flagged dirty.
    """

    __tablename__ = "automation_executions"
    __table_args__ = (
        Index("ix_automation_executions_status_scheduled_for", "status", "scheduled_for"),
        Index("ix_automation_executions_status_started_at", "status", "started_at"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    workflow_id: UUID = Field(index=True)
    target_id: UUID = Field(index=True)
    tenant_id: UUID = Field(index=True)
    status: str = Field(default=ExecutionStatus.PENDING.value, max_length=20)
    trigger_event: str = Field(max_length=100)
    trigger_data: dict[str, Any] = Field(default_factory=dict, sa_type=JSONType, nullable=False)
    execution_data: dict[str, Any] = Field(
        default_factory=dict, sa_type=JSONType, nullable=False
    )
    scheduled_for: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)
    error_message: str | None = Field(default=None, max_length=1000)

    @property
    def status_enum(self) -> ExecutionStatus:
        """Get status as ExecutionStatus enum."""
        return ExecutionStatus(self.status)
