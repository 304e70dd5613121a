"""Repository for AutomationWorkflow entity."""

from uuid import UUID

from sqlmodel import select

from src.drip.models import AutomationWorkflow, TriggerType
from src.drip.repositories.base import BaseRepository


class WorkflowRepository(BaseRepository[AutomationWorkflow]):
    """Read access to workflow definitions."""

    model = AutomationWorkflow

    async def list_active_for_trigger(
        self, tenant_id: UUID, trigger_type: TriggerType
    ) -> list[AutomationWorkflow]:
        """List a tenant's active workflows listening to ``trigger_type``."""
        result = await self.session.execute(
            select(AutomationWorkflow)
            .where(
                AutomationWorkflow.tenant_id == tenant_id,
                AutomationWorkflow.trigger_type == trigger_type.value,
                AutomationWorkflow.is_active == True,  # noqa: E712
            )
            .order_by(AutomationWorkflow.created_at.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())
