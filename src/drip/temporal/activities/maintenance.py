"""Execution maintenance activities: stuck-execution recovery and retention.

Thin wrappers over the in-process periodic units so both maintenance
backends share one implementation.
"""

from dataclasses import dataclass

from temporalio import activity

from src.drip.engine.periodic import RetentionSweeper, StuckExecutionWatchdog
from src.drip.services.execution_store import ExecutionStore


@dataclass
class FailStuckInput:
    timeout_minutes: int = 15


@dataclass
class SweepInput:
    retention_days: int = 30


@activity.defn
async def fail_stuck_executions(input: FailStuckInput) -> int:
    """Fail executions RUNNING for longer than ``timeout_minutes``.

    Idempotent: only rows still RUNNING are updated, so a retry after a
    partial run skips what was already failed.

    Returns:
        Number of executions failed
    """
    activity.logger.info(f"Checking for executions stuck over {input.timeout_minutes} minutes")

    watchdog = StuckExecutionWatchdog(ExecutionStore(), timeout_minutes=input.timeout_minutes)
    failed = await watchdog.tick()

    if failed:
        activity.logger.warning(f"Marked {len(failed)} stuck executions as failed")
    return len(failed)


@activity.defn
async def sweep_completed_executions(input: SweepInput) -> int:
    """Delete COMPLETED executions older than ``retention_days``.

    Idempotent: DELETE of already-deleted rows is a no-op.

    Returns:
        Number of executions deleted
    """
    activity.logger.info(f"Sweeping completed executions older than {input.retention_days} days")

    sweeper = RetentionSweeper(ExecutionStore(), retention_days=input.retention_days)
    count = await sweeper.tick()

    activity.logger.info(f"Deleted {count} completed executions")
    return count
