"""Automation engine: wires the store, executor, dispatcher and periodic tasks."""

import asyncio
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.drip.core.clock import Clock, SystemClock
from src.drip.core.config import Settings, get_settings
from src.drip.core.logging import get_logger
from src.drip.core.notifications import HttpxWebhookCaller, LogOnlySmsSender, ResendEmailSender
from src.drip.engine.actions import ActionRegistry, Channels, registry
from src.drip.engine.dispatcher import ExecutionDispatcher
from src.drip.engine.executor import WorkflowExecutor
from src.drip.engine.periodic import (
    DuePoller,
    PeriodicTask,
    RetentionSweeper,
    SleepFn,
    StuckExecutionWatchdog,
)
from src.drip.models import AutomationExecution, AutomationWorkflow
from src.drip.schemas import ExecutionStats
from src.drip.services.conditions import ConditionEvaluator, RuleConditionEvaluator
from src.drip.services.execution_store import ExecutionStore
from src.drip.services.lookup import SqlTargetLookup
from src.drip.services.scheduling_service import SchedulingService
from src.drip.services.trigger_service import AutomationTriggerService

logger = get_logger(__name__)


class AutomationEngine:
    """Entry point for scheduling and processing automation executions.

    The poller always runs in-process. The watchdog and retention sweeper
    run here only with the "inprocess" maintenance backend; with "temporal"
    they run as ``ExecutionMaintenanceWorkflow`` instead.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        clock: Clock | None = None,
        evaluator: ConditionEvaluator | None = None,
        channels: Channels | None = None,
        actions: ActionRegistry | None = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock()

        self.store = ExecutionStore(session_factory, self.clock)
        self.channels = channels or Channels(
            email=ResendEmailSender(self.settings),
            sms=LogOnlySmsSender(),
            webhook=HttpxWebhookCaller(self.settings),
            lookup=SqlTargetLookup(session_factory),
        )
        self.evaluator = evaluator or RuleConditionEvaluator(self.clock)

        self.executor = WorkflowExecutor(
            self.store, self.evaluator, actions or registry.copy(), self.channels, self.clock
        )
        self.dispatcher = ExecutionDispatcher(
            self.executor.execute,
            max_concurrency=self.settings.automation_max_concurrency,
            on_error=self._on_dispatch_error,
        )
        self.scheduler = SchedulingService(
            self.store,
            self.channels.lookup,
            self.evaluator,
            dispatch=self.dispatcher.submit,
            clock=self.clock,
            settings=self.settings,
        )
        self.triggers = AutomationTriggerService(self.scheduler, session_factory)

        self.poller = DuePoller(
            self.store,
            self.dispatcher,
            self.clock,
            per_tenant=self.settings.automation_per_tenant_polling,
        )
        self.watchdog = StuckExecutionWatchdog(
            self.store, self.clock, self.settings.automation_stuck_timeout_minutes
        )
        self.sweeper = RetentionSweeper(
            self.store, self.clock, self.settings.automation_retention_days
        )

        self.tasks = [
            PeriodicTask(
                "automation-poller",
                self.poller.tick,
                self.settings.automation_poll_interval_seconds,
                sleep,
            )
        ]
        if self.settings.automation_maintenance_backend == "inprocess":
            self.tasks += [
                PeriodicTask(
                    "automation-watchdog",
                    self.watchdog.tick,
                    self.settings.automation_watchdog_interval_seconds,
                    sleep,
                ),
                PeriodicTask(
                    "automation-retention",
                    self.sweeper.tick,
                    self.settings.automation_sweep_interval_seconds,
                    sleep,
                ),
            ]

    async def start(self) -> None:
        for task in self.tasks:
            task.start()
        logger.info(
            "Automation engine started",
            tasks=[task.name for task in self.tasks],
            maintenance_backend=self.settings.automation_maintenance_backend,
        )

    async def stop(self, timeout: float | None = None) -> bool:
        """Stop periodic tasks, then drain in-flight executions.

        Returns:
            True if every in-flight execution finished within the timeout.
        """
        for task in self.tasks:
            await task.stop()
        drained = await self.dispatcher.drain(
            timeout if timeout is not None else self.settings.shutdown_grace_period
        )
        logger.info("Automation engine stopped", drained=drained)
        return drained

    async def _on_dispatch_error(self, execution_id: UUID, error: Exception) -> None:
        await self.store.mark_failed(execution_id, f"Dispatch failed: {error}")

    # Scheduling

    async def schedule_execution(
        self,
        workflow: AutomationWorkflow,
        target_id: UUID,
        trigger_event: str,
        execute_at: datetime | None = None,
        trigger_data: dict[str, Any] | None = None,
    ) -> AutomationExecution | None:
        return await self.scheduler.schedule_execution(
            workflow, target_id, trigger_event, execute_at, trigger_data
        )

    async def schedule_delayed(
        self,
        workflow: AutomationWorkflow,
        target_id: UUID,
        trigger_event: str,
        delay_days: int = 0,
        delay_hours: int = 0,
        trigger_data: dict[str, Any] | None = None,
    ) -> AutomationExecution | None:
        return await self.scheduler.schedule_delayed(
            workflow, target_id, trigger_event, delay_days, delay_hours, trigger_data
        )

    async def schedule_from_config(
        self,
        workflow: AutomationWorkflow,
        target_id: UUID,
        trigger_event: str,
        trigger_data: dict[str, Any] | None = None,
    ) -> AutomationExecution | None:
        return await self.scheduler.schedule_from_config(
            workflow, target_id, trigger_event, trigger_data
        )

    # Lifecycle hooks

    async def cancel_execution(self, execution_id: UUID, reason: str) -> bool:
        return await self.store.cancel(execution_id, reason)

    async def mark_completed(self, execution_id: UUID, message: str) -> bool:
        return await self.store.mark_completed(execution_id, message)

    async def mark_failed(self, execution_id: UUID, reason: str) -> bool:
        return await self.store.mark_failed(execution_id, reason)

    async def get_execution_stats(self, tenant_id: UUID | None = None) -> ExecutionStats:
        return await self.store.stats(tenant_id)
