"""Repository for AutomationLog entity."""

from uuid import UUID

from sqlmodel import select

from src.drip.models import AutomationLog
from src.drip.repositories.base import BaseRepository


class AutomationLogRepository(BaseRepository[AutomationLog]):
    model = AutomationLog

    async def list_for_execution(self, execution_id: UUID) -> list[AutomationLog]:
        """All entries for one execution, oldest first."""
        result = await self.session.execute(
            select(AutomationLog)
            .where(AutomationLog.execution_id == execution_id)
            .order_by(AutomationLog.created_at.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())
