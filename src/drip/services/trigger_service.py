"""Maps business events to the workflows listening for them."""

from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.drip.core.db import get_session
from src.drip.core.logging import get_logger
from src.drip.models import AutomationExecution, TriggerType
from src.drip.repositories import WorkflowRepository
from src.drip.services.scheduling_service import SchedulingService

logger = get_logger(__name__)


class AutomationTriggerService:
    def __init__(
        self,
        scheduler: SchedulingService,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        self.scheduler = scheduler
        self._session_factory = session_factory

    async def on_event(
        self,
        tenant_id: UUID,
        trigger_type: TriggerType,
        target_id: UUID,
        trigger_data: dict[str, Any] | None = None,
    ) -> list[AutomationExecution]:
        """Schedule every active workflow of the tenant listening to ``trigger_type``.

        Workflows whose conditions do not hold are skipped. Validation errors
        (missing target, tenant mismatch) propagate to the caller.
        """
        async with get_session(self._session_factory) as session:
            workflows = await WorkflowRepository(session).list_active_for_trigger(
                tenant_id, trigger_type
            )

        scheduled = []
        for workflow in workflows:
            execution = await self.scheduler.schedule_from_config(
                workflow, target_id, trigger_type.value, trigger_data
            )
            if execution is not None:
                scheduled.append(execution)

        logger.info(
            "Trigger event processed",
            tenant_id=str(tenant_id),
            trigger_type=trigger_type.value,
            workflows=len(workflows),
            scheduled=len(scheduled),
        )
        return scheduled
