"""Execution store: lifecycle transitions for automation executions.

Each transition runs in its own short transaction and is a compare-and-swap
on the current status, so a crash mid-processing leaves the execution
visibly RUNNING for the watchdog, and two workers can never both claim the
same PENDING execution.
"""

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.drip.core.clock import Clock, SystemClock
from src.drip.core.db import get_session
from src.drip.core.logging import get_logger
from src.drip.models import AutomationExecution, AutomationLog, ExecutionStatus, LogLevel
from src.drip.repositories import AutomationLogRepository, ExecutionRepository
from src.drip.schemas import ExecutionData, ExecutionStats, merge_execution_data

logger = get_logger(__name__)


def timeout_message(minutes: int) -> str:
    return f"Execution timeout - marked as failed after {minutes} minutes"


def _log_entry(
    execution: AutomationExecution,
    level: LogLevel,
    message: str,
    details: dict[str, Any] | None = None,
) -> AutomationLog:
    return AutomationLog(
        execution_id=execution.id,
        workflow_id=execution.workflow_id,
        tenant_id=execution.tenant_id,
        level=level.value,
        message=message[:1000],
        details=details or {},
    )


class ExecutionStore:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self.clock = clock or SystemClock()

    async def create(self, execution: AutomationExecution) -> AutomationExecution:
        async with get_session(self._session_factory) as session:
            ExecutionRepository(session).add(execution)
            await session.commit()
            await session.refresh(execution)
        logger.info(
            "Execution created",
            execution_id=str(execution.id),
            workflow_id=str(execution.workflow_id),
            tenant_id=str(execution.tenant_id),
            scheduled_for=execution.scheduled_for.isoformat() if execution.scheduled_for else None,
        )
        return execution

    async def get(self, execution_id: UUID) -> AutomationExecution | None:
        async with get_session(self._session_factory) as session:
            return await ExecutionRepository(session).get_by_id(execution_id)

    async def get_for_tenant(
        self, execution_id: UUID, tenant_id: UUID
    ) -> AutomationExecution | None:
        async with get_session(self._session_factory) as session:
            return await ExecutionRepository(session).get_for_tenant(execution_id, tenant_id)

    async def list_for_tenant(
        self,
        tenant_id: UUID,
        status: ExecutionStatus | None = None,
        cursor: str | None = None,
        limit: int = 50,
        workflow_id: UUID | None = None,
        target_id: UUID | None = None,
    ) -> tuple[list[AutomationExecution], str | None, bool]:
        async with get_session(self._session_factory) as session:
            return await ExecutionRepository(session).list_for_tenant(
                tenant_id, status, cursor, limit, workflow_id=workflow_id, target_id=target_id
            )

    async def list_due_ids(self, now: datetime, tenant_id: UUID | None = None) -> list[UUID]:
        """Ids of PENDING executions due at ``now``, oldest first."""
        async with get_session(self._session_factory) as session:
            due = await ExecutionRepository(session).list_due(now, tenant_id)
        return [execution.id for execution in due]

    async def due_tenant_ids(self, now: datetime) -> list[UUID]:
        """Tenants with at least one execution due at ``now``, whatever their status."""
        async with get_session(self._session_factory) as session:
            return await ExecutionRepository(session).list_due_tenant_ids(now)

    async def log(
        self,
        execution: AutomationExecution,
        level: LogLevel,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Append an entry to the execution's log."""
        async with get_session(self._session_factory) as session:
            AutomationLogRepository(session).add(_log_entry(execution, level, message, details))
            await session.commit()

    async def logs(self, execution_id: UUID) -> list[AutomationLog]:
        async with get_session(self._session_factory) as session:
            return await AutomationLogRepository(session).list_for_execution(execution_id)

    async def claim(self, execution_id: UUID) -> AutomationExecution | None:
        """Atomically move PENDING -> RUNNING.

        Returns:
            The claimed execution, or None if it was not PENDING (already
            handled, cancelled or missing).
        """
        async with get_session(self._session_factory) as session:
            repo = ExecutionRepository(session)
            claimed = await repo.transition(
                execution_id,
                (ExecutionStatus.PENDING,),
                ExecutionStatus.RUNNING,
                started_at=self.clock.now(),
            )
            if not claimed:
                return None
            execution = await repo.get_by_id(execution_id)
            if execution is not None:
                AutomationLogRepository(session).add(
                    _log_entry(execution, LogLevel.INFO, "Starting workflow execution")
                )
            await session.commit()
            return execution

    async def complete(
        self,
        execution_id: UUID,
        message: str,
        data: ExecutionData | None = None,
        sources: tuple[ExecutionStatus, ...] = (ExecutionStatus.RUNNING,),
    ) -> bool:
        """Move to COMPLETED, recording ``message`` and any outcome ``data``."""
        now = self.clock.now()
        update = (data or ExecutionData()).model_copy(
            update={"completion_message": message, "finished_at": now}
        )
        return await self._finish(
            execution_id,
            ExecutionStatus.COMPLETED,
            sources,
            update,
            (LogLevel.INFO, message),
            completed_at=now,
        )

    async def fail(
        self,
        execution_id: UUID,
        reason: str,
        data: ExecutionData | None = None,
        sources: tuple[ExecutionStatus, ...] = (ExecutionStatus.RUNNING,),
    ) -> bool:
        """Move to FAILED with ``reason`` as the error message."""
        now = self.clock.now()
        update = (data or ExecutionData()).model_copy(
            update={"failure_message": reason, "finished_at": now}
        )
        return await self._finish(
            execution_id,
            ExecutionStatus.FAILED,
            sources,
            update,
            (LogLevel.ERROR, reason),
            completed_at=now,
            error_message=reason[:1000],
        )

    async def cancel(self, execution_id: UUID, reason: str) -> bool:
        """Cancel a PENDING execution. Returns False for any other status."""
        now = self.clock.now()
        message = f"Cancelled: {reason}"
        return await self._finish(
            execution_id,
            ExecutionStatus.CANCELLED,
            (ExecutionStatus.PENDING,),
            ExecutionData(failure_message=message, finished_at=now),
            (LogLevel.WARN, message),
            completed_at=now,
            error_message=message[:1000],
        )

    async def mark_completed(self, execution_id: UUID, message: str) -> bool:
        """Complete an execution outside the interpreter (manual/synthetic runs)."""
        return await self.complete(
            execution_id, message, sources=ExecutionStatus.sources_for(ExecutionStatus.COMPLETED)
        )

    async def mark_failed(self, execution_id: UUID, reason: str) -> bool:
        """Fail an execution outside the interpreter (manual runs, dispatch errors)."""
        return await self.fail(
            execution_id, reason, sources=ExecutionStatus.sources_for(ExecutionStatus.FAILED)
        )

    async def fail_stuck(self, now: datetime, timeout_minutes: int) -> list[UUID]:
        """Fail RUNNING executions started more than ``timeout_minutes`` before ``now``.

        Rows that leave RUNNING between the scan and the update are skipped.

        Returns:
            Ids of the executions that were failed.
        """
        cutoff = now - timedelta(minutes=timeout_minutes)
        async with get_session(self._session_factory) as session:
            stuck = await ExecutionRepository(session).list_stuck(cutoff)

        reason = timeout_message(timeout_minutes)
        failed = []
        for execution in stuck:
            if await self._finish(
                execution.id,
                ExecutionStatus.FAILED,
                (ExecutionStatus.RUNNING,),
                ExecutionData(failure_message=reason, finished_at=now),
                (LogLevel.ERROR, reason),
                completed_at=now,
                error_message=reason,
            ):
                failed.append(execution.id)
        return failed

    async def delete_completed_before(self, cutoff: datetime) -> int:
        async with get_session(self._session_factory) as session:
            deleted = await ExecutionRepository(session).delete_completed_before(cutoff)
            await session.commit()
        return deleted

    async def stats(self, tenant_id: UUID | None = None) -> ExecutionStats:
        async with get_session(self._session_factory) as session:
            counts = await ExecutionRepository(session).count_by_status(tenant_id)
        return ExecutionStats.from_counts(counts)

    async def _finish(
        self,
        execution_id: UUID,
        target: ExecutionStatus,
        sources: tuple[ExecutionStatus, ...],
        data: ExecutionData,
        entry: tuple[LogLevel, str],
        **values: object,
    ) -> bool:
        """CAS from the observed status to ``target``, logging ``entry`` in the same commit."""
        allowed = tuple(s for s in sources if s.can_transition_to(target))
        async with get_session(self._session_factory) as session:
            repo = ExecutionRepository(session)
            execution = await repo.get_by_id(execution_id)
            if execution is None or execution.status_enum not in allowed:
                return False

            applied = await repo.transition(
                execution_id,
                (execution.status_enum,),
                target,
                execution_data=merge_execution_data(execution.execution_data, data),
                **values,
            )
            if applied:
                AutomationLogRepository(session).add(_log_entry(execution, *entry))
            await session.commit()

        if applied:
            logger.info(
                "Execution transitioned",
                execution_id=str(execution_id),
                from_status=execution.status,
                to_status=target.value,
            )
        return applied
