"""Repository for AutomationExecution entity."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import and_, delete, func, or_, update
from sqlmodel import select

from src.drip.models import AutomationExecution, AutomationLog, ExecutionStatus
from src.drip.repositories.base import BaseRepository


def _due_at(now: datetime) -> Any:
    """PENDING with ``scheduled_for`` unset or not after ``now``."""
    return and_(
        AutomationExecution.status == ExecutionStatus.PENDING.value,
        or_(
            AutomationExecution.scheduled_for.is_(None),  # type: ignore[union-attr]
            AutomationExecution.scheduled_for <= now,  # type: ignore[operator]
        ),
    )


class ExecutionRepository(BaseRepository[AutomationExecution]):
    """Repository for automation executions.

    Every status change goes through :meth:`transition`, a conditional
    UPDATE guarded on the current status, so concurrent workers (or
    instances) can never both move the same row.
    """

    model = AutomationExecution

    async def get_for_tenant(
        self, execution_id: UUID, tenant_id: UUID
    ) -> AutomationExecution | None:
        """Get an execution by id, scoped to tenant."""
        result = await self.session.execute(
            select(AutomationExecution).where(
                AutomationExecution.id == execution_id,
                AutomationExecution.tenant_id == tenant_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_due(
        self,
        now: datetime,
        tenant_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[AutomationExecution]:
        """List PENDING executions due at ``now``, oldest first.

        Due means ``scheduled_for`` is unset or not after ``now``.
        """
        query = select(AutomationExecution).where(_due_at(now))
        if tenant_id is not None:
            query = query.where(AutomationExecution.tenant_id == tenant_id)
        query = query.order_by(AutomationExecution.created_at.asc())  # type: ignore[attr-defined]
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_due_tenant_ids(self, now: datetime) -> list[UUID]:
        """Distinct tenants with at least one execution due at ``now``."""
        result = await self.session.execute(
            select(AutomationExecution.tenant_id).where(_due_at(now)).distinct()
        )
        return list(result.scalars().all())

    async def list_stuck(self, started_before: datetime) -> list[AutomationExecution]:
        """List RUNNING executions started strictly before the cutoff."""
        result = await self.session.execute(
            select(AutomationExecution)
            .where(
                AutomationExecution.status == ExecutionStatus.RUNNING.value,
                AutomationExecution.started_at < started_before,  # type: ignore[operator]
            )
            .order_by(AutomationExecution.started_at.asc())  # type: ignore[union-attr]
        )
        return list(result.scalars().all())

    async def list_for_tenant(
        self,
        tenant_id: UUID,
        status: ExecutionStatus | None,
        cursor: str | None,
        limit: int,
        workflow_id: UUID | None = None,
        target_id: UUID | None = None,
    ) -> tuple[list[AutomationExecution], str | None, bool]:
        """Page through a tenant's executions, newest first."""
        query = select(AutomationExecution).where(AutomationExecution.tenant_id == tenant_id)
        if status is not None:
            query = query.where(AutomationExecution.status == status.value)
        if workflow_id is not None:
            query = query.where(AutomationExecution.workflow_id == workflow_id)
        if target_id is not None:
            query = query.where(AutomationExecution.target_id == target_id)
        return await self.paginate(query, cursor, limit, AutomationExecution.created_at)

    async def transition(
        self,
        execution_id: UUID,
        sources: tuple[ExecutionStatus, ...],
        target: ExecutionStatus,
        **values: Any,
    ) -> bool:
        """Move one execution to ``target`` if its status is still in ``sources``.

        Returns:
            True if the row was updated, False if another writer got there first
            or the execution does not exist.
        """
        statuses = [s.value for s in sources]
        stmt = (
            update(AutomationExecution)
            .where(AutomationExecution.id == execution_id)  # type: ignore[arg-type]
            .where(AutomationExecution.status.in_(statuses))  # type: ignore[attr-defined]
            .values(status=target.value, **values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) == 1  # type: ignore[attr-defined]

    async def delete_completed_before(self, cutoff: datetime) -> int:
        """Delete COMPLETED executions finished before ``cutoff``.

        FAILED and CANCELLED rows are never touched. Log entries of the
        deleted executions are removed with them.

        Returns:
            Number of executions deleted
        """
        expired = and_(
            AutomationExecution.status == ExecutionStatus.COMPLETED.value,
            AutomationExecution.completed_at < cutoff,  # type: ignore[operator]
        )
        await self.session.execute(
            delete(AutomationLog).where(
                AutomationLog.execution_id.in_(  # type: ignore[attr-defined]
                    select(AutomationExecution.id).where(expired)
                )
            )
        )
        stmt = delete(AutomationExecution).where(expired)
        result = await self.session.execute(stmt)
        return result.rowcount or 0  # type: ignore[attr-defined]

    async def count_by_status(self, tenant_id: UUID | None = None) -> dict[str, int]:
        """Count executions grouped by status."""
        query = select(AutomationExecution.status, func.count()).group_by(
            AutomationExecution.status
        )
        if tenant_id is not None:
            query = query.where(AutomationExecution.tenant_id == tenant_id)
        result = await self.session.execute(query)
        return {status: count for status, count in result.all()}
