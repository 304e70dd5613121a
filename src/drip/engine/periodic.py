"""Periodic units: due-execution poller, stuck watchdog, retention sweeper.

Each unit exposes ``tick(now)`` so tests drive it with an explicit time;
``PeriodicTask`` runs a tick on an interval with an injectable sleep.
"""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from uuid import UUID

from src.drip.core.clock import Clock, SystemClock
from src.drip.core.logging import get_logger
from src.drip.engine.dispatcher import ExecutionDispatcher
from src.drip.services.execution_store import ExecutionStore

logger = get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class DuePoller:
    """Finds due PENDING executions and hands them to the dispatcher."""

    def __init__(
        self,
        store: ExecutionStore,
        dispatcher: ExecutionDispatcher,
        clock: Clock | None = None,
        per_tenant: bool = True,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.clock = clock or SystemClock()
        self.per_tenant = per_tenant

    async def tick(self, now: datetime | None = None) -> list[UUID]:
        """Dispatch everything due at ``now``, oldest first.

        Returns:
            Ids submitted to the dispatcher during this tick.
        """
        now = now or self.clock.now()
        submitted: list[UUID] = []

        if self.per_tenant:
            for tenant_id in await self.store.due_tenant_ids(now):
                try:
                    due = await self.store.list_due_ids(now, tenant_id)
                except Exception as e:
                    logger.exception("Due query failed", tenant_id=str(tenant_id), error=str(e))
                    continue
                submitted.extend(await self._dispatch_all(due))
        else:
            submitted.extend(await self._dispatch_all(await self.store.list_due_ids(now)))

        if submitted:
            logger.info("Dispatched due executions", count=len(submitted))
        return submitted

    async def _dispatch_all(self, execution_ids: list[UUID]) -> list[UUID]:
        submitted = []
        for execution_id in execution_ids:
            try:
                if self.dispatcher.submit(execution_id):
                    submitted.append(execution_id)
            except Exception as e:
                logger.exception(
                    "Failed to dispatch execution", execution_id=str(execution_id), error=str(e)
                )
                await self.store.mark_failed(execution_id, f"Dispatch failed: {e}")
        return submitted


class StuckExecutionWatchdog:
    """Force-fails executions left RUNNING longer than the timeout."""

    def __init__(
        self,
        store: ExecutionStore,
        clock: Clock | None = None,
        timeout_minutes: int = 15,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.timeout_minutes = timeout_minutes

    async def tick(self, now: datetime | None = None) -> list[UUID]:
        now = now or self.clock.now()
        failed = await self.store.fail_stuck(now, self.timeout_minutes)
        if failed:
            logger.warning(
                "Marked stuck executions as failed",
                count=len(failed),
                timeout_minutes=self.timeout_minutes,
            )
        return failed


class RetentionSweeper:
    """Deletes COMPLETED executions older than the retention window.

    FAILED and CANCELLED executions are kept for debugging.
    """

    def __init__(
        self,
        store: ExecutionStore,
        clock: Clock | None = None,
        retention_days: int = 30,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.retention_days = retention_days

    async def tick(self, now: datetime | None = None) -> int:
        now = now or self.clock.now()
        cutoff = now - timedelta(days=self.retention_days)
        deleted = await self.store.delete_completed_before(cutoff)
        logger.info(
            "Completed executions swept", deleted=deleted, retention_days=self.retention_days
        )
        return deleted


class PeriodicTask:
    """Run ``tick`` every ``interval`` seconds until stopped.

    A failing tick is logged and the loop carries on.
    """

    def __init__(
        self,
        name: str,
        tick: Callable[[], Awaitable[object]],
        interval: float,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.name = name
        self._tick = tick
        self.interval = interval
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self) -> None:
        while True:
            try:
                await self._tick()
            except Exception as e:
                logger.exception("Periodic task tick failed", task=self.name, error=str(e))
            await self._sleep(self.interval)

    def start(self) -> None:
        if self.is_running:
            return
        logger.info("Starting periodic task", task=self.name, interval=self.interval)
        self._task = asyncio.create_task(self.run(), name=self.name)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Stopped periodic task", task=self.name)
