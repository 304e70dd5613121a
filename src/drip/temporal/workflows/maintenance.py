"""
Execution Maintenance Workflow.

Recovers stuck executions and sweeps old completed ones. Runs on a Temporal
cron schedule when the maintenance backend is "temporal", so only one copy
runs across all API instances.
"""

from dataclasses import dataclass
from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from src.drip.temporal.activities import (
        FailStuckInput,
        SweepInput,
        fail_stuck_executions,
        sweep_completed_executions,
    )

_RETRY = RetryPolicy(maximum_attempts=3, initial_interval=timedelta(seconds=2))


@dataclass
class MaintenanceInput:
    timeout_minutes: int = 15
    retention_days: int = 30


@workflow.defn
class ExecutionMaintenanceWorkflow:
    """Run the stuck-execution watchdog and the retention sweep in parallel."""

    @workflow.run
    async def run(self, input: MaintenanceInput) -> dict[str, int]:
        """
        Returns:
            {"stuck_failed": int, "completed_deleted": int}
        """
        workflow.logger.info(
            f"Starting execution maintenance (timeout: {input.timeout_minutes} min, "
            f"retention: {input.retention_days} days)"
        )

        stuck_task = workflow.execute_activity(
            fail_stuck_executions,
            FailStuckInput(timeout_minutes=input.timeout_minutes),
            start_to_close_timeout=timedelta(minutes=5),
            retry_policy=_RETRY,
        )
        sweep_task = workflow.execute_activity(
            sweep_completed_executions,
            SweepInput(retention_days=input.retention_days),
            start_to_close_timeout=timedelta(minutes=5),
            retry_policy=_RETRY,
        )

        result = {
            "stuck_failed": await stuck_task,
            "completed_deleted": await sweep_task,
        }
        workflow.logger.info(
            f"Execution maintenance complete: {result['stuck_failed']} stuck failed, "
            f"{result['completed_deleted']} completed deleted"
        )
        return result
