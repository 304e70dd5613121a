"""Automation workflow definition model."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from src.drip.models.base import JSONType, utc_now
from src.drip.models.enums import TriggerType


class AutomationWorkflow(SQLModel, table=True):
    """Declarative "do X after Y, if Z" definition.

    ``actions`` is an ordered map of action name -> config; every config may
    carry an ``enabled`` flag. ``trigger_config`` holds the delay fields
    (``delay_days``, ``delay_hours``, ``delay_minutes``, ``send_hour``) and
    the ``business_hours_only`` / ``max_retries`` scheduling options.
    """

    __tablename__ = "automation_workflows"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tenant_id: UUID = Field(index=True)
    name: str = Field(max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    trigger_type: str = Field(max_length=50, index=True)
    trigger_config: dict[str, Any] = Field(
        default_factory=dict, sa_type=JSONType, nullable=False
    )
    conditions: dict[str, Any] = Field(default_factory=dict, sa_type=JSONType, nullable=False)
    actions: dict[str, Any] = Field(default_factory=dict, sa_type=JSONType, nullable=False)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def trigger_type_enum(self) -> TriggerType:
        """Get trigger type as TriggerType enum."""
        return TriggerType(self.trigger_type)
