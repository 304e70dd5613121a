"""Temporal activities. Each one is idempotent and safe to retry."""

from src.drip.temporal.activities.maintenance import (
    FailStuckInput,
    SweepInput,
    fail_stuck_executions,
    sweep_completed_executions,
)

__all__ = [
    "FailStuckInput",
    "SweepInput",
    "fail_stuck_executions",
    "sweep_completed_executions",
]
