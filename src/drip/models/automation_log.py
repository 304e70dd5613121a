"""Automation log model - per-execution audit trail."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from src.drip.models.base import JSONType, utc_now
from src.drip.models.enums import LogLevel


class AutomationLog(SQLModel, table=True):
    """One line of an execution's history, written alongside its transitions."""

    __tablename__ = "automation_logs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    execution_id: UUID = Field(index=True)
    workflow_id: UUID = Field(index=True)
    tenant_id: UUID = Field(index=True)
    level: str = Field(default=LogLevel.INFO.value, max_length=20)
    message: str = Field(max_length=1000)
    details: dict[str, Any] = Field(default_factory=dict, sa_type=JSONType, nullable=False)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def level_enum(self) -> LogLevel:
        return LogLevel(self.level)
