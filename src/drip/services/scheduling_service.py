"""Scheduling API: validate, pre-check conditions, persist, dispatch."""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from src.drip.core.clock import Clock, SystemClock
from src.drip.core.config import Settings, get_settings
from src.drip.core.exceptions import TargetNotFoundError, TenantMismatchError
from src.drip.core.logging import get_logger
from src.drip.models import AutomationExecution, AutomationWorkflow
from src.drip.schemas import ExecutionData
from src.drip.services.conditions import ConditionEvaluator
from src.drip.services.execution_store import ExecutionStore
from src.drip.services.lookup import TargetLookup

logger = get_logger(__name__)

DispatchFn = Callable[[UUID], object]


def adjust_to_business_hours(at: datetime, start_hour: int = 9, end_hour: int = 17) -> datetime:
    """Move ``at`` into the [start_hour, end_hour) window.

    Too early moves to start_hour the same day; at or after end_hour moves to
    start_hour the next day.
    """
    if at.hour < start_hour:
        return at.replace(hour=start_hour, minute=0, second=0, microsecond=0)
    if at.hour >= end_hour:
        next_day = at + timedelta(days=1)
        return next_day.replace(hour=start_hour, minute=0, second=0, microsecond=0)
    return at


def compute_execute_at(
    trigger_config: dict[str, Any] | None,
    now: datetime,
    business_hours: tuple[int, int] = (9, 17),
) -> datetime | None:
    """Derive the due time from a workflow's trigger config.

    ``delay_days`` / ``delay_hours`` / ``delay_minutes`` offset from ``now``;
    without them ``send_hour`` picks the next occurrence of that hour. With
    neither the execution is immediate (None). ``business_hours_only`` only
    adjusts a computed due time.
    """
    config = trigger_config or {}
    delays = {
        unit: int(config[f"delay_{unit}"])
        for unit in ("days", "hours", "minutes")
        if config.get(f"delay_{unit}") is not None
    }

    if delays:
        execute_at = now + timedelta(**delays)
    elif config.get("send_hour") is not None:
        hour = int(config["send_hour"])
        if not 0 <= hour <= 23:
            raise ValueError(f"send_hour must be between 0 and 23, got {hour}")
        execute_at = now.replace(hour=hour, minute=0, second=0, microsecond=0)
        if execute_at <= now:
            execute_at += timedelta(days=1)
    else:
        return None

    if config.get("business_hours_only") is True:
        execute_at = adjust_to_business_hours(execute_at, *business_hours)
    return execute_at


class SchedulingService:
    """Creates PENDING executions.

    Executions due within the immediate window are handed to ``dispatch``
    right away instead of waiting for the next poll.
    """

    def __init__(
        self,
        store: ExecutionStore,
        lookup: TargetLookup,
        evaluator: ConditionEvaluator,
        dispatch: DispatchFn | None = None,
        clock: Clock | None = None,
        settings: Settings | None = None,
    ):
        self.store = store
        self.lookup = lookup
        self.evaluator = evaluator
        self.dispatch = dispatch
        self.clock = clock or SystemClock()
        self.settings = settings or get_settings()

    async def schedule_execution(
        self,
        workflow: AutomationWorkflow,
        target_id: UUID,
        trigger_event: str,
        execute_at: datetime | None = None,
        trigger_data: dict[str, Any] | None = None,
        execution_data: ExecutionData | None = None,
    ) -> AutomationExecution | None:
        """Schedule ``workflow`` for ``target_id``.

        Returns:
            The new PENDING execution, or None when the workflow's conditions
            do not hold for the target (nothing is persisted).

        Raises:
            TargetNotFoundError: The target does not exist.
            TenantMismatchError: Target and workflow belong to different tenants.
        """
        target = await self.lookup.get_target(target_id)
        if target is None:
            raise TargetNotFoundError(target_id)
        if target.tenant_id != workflow.tenant_id:
            raise TenantMismatchError(target_id, workflow.id)

        if not self.evaluator.evaluate(workflow, target):
            logger.info(
                "Workflow conditions not met, execution not scheduled",
                workflow_id=str(workflow.id),
                target_id=str(target_id),
            )
            return None

        now = self.clock.now()
        data = (execution_data or ExecutionData()).model_copy(
            update={"execute_at": execute_at, "scheduled_at": now}
        )
        execution = await self.store.create(
            AutomationExecution(
                workflow_id=workflow.id,
                target_id=target_id,
                tenant_id=workflow.tenant_id,
                trigger_event=trigger_event,
                trigger_data=dict(trigger_data or {}),
                execution_data=data.to_column(),
                scheduled_for=execute_at,
                created_at=now,
            )
        )

        window = timedelta(seconds=self.settings.automation_immediate_window_seconds)
        if self.dispatch is not None and (execute_at is None or execute_at < now + window):
            self.dispatch(execution.id)
        return execution

    async def schedule_delayed(
        self,
        workflow: AutomationWorkflow,
        target_id: UUID,
        trigger_event: str,
        delay_days: int = 0,
        delay_hours: int = 0,
        trigger_data: dict[str, Any] | None = None,
    ) -> AutomationExecution | None:
        """Schedule ``delay_days`` + ``delay_hours`` from now."""
        if delay_days < 0 or delay_hours < 0:
            raise ValueError("Delays must be non-negative")
        execute_at = self.clock.now() + timedelta(days=delay_days, hours=delay_hours)
        return await self.schedule_execution(
            workflow, target_id, trigger_event, execute_at=execute_at, trigger_data=trigger_data
        )

    async def schedule_from_config(
        self,
        workflow: AutomationWorkflow,
        target_id: UUID,
        trigger_event: str,
        trigger_data: dict[str, Any] | None = None,
    ) -> AutomationExecution | None:
        """Schedule using the delay and business-hours options in ``trigger_config``."""
        config = workflow.trigger_config or {}
        execute_at = compute_execute_at(
            config,
            self.clock.now(),
            (
                self.settings.automation_business_hours_start,
                self.settings.automation_business_hours_end,
            ),
        )
        data = ExecutionData(
            business_hours_only=config.get("business_hours_only"),
            max_retries=config.get("max_retries"),
        )
        return await self.schedule_execution(
            workflow,
            target_id,
            trigger_event,
            execute_at=execute_at,
            trigger_data=trigger_data,
            execution_data=data,
        )
