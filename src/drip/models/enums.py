"""Shared enums for models."""

from enum import Enum
from typing import assert_never


class ExecutionStatus(str, Enum):
    """Lifecycle state of an automation execution.

    PENDING -> RUNNING -> COMPLETED | FAILED
    PENDING -> CANCELLED | COMPLETED | FAILED (cancel, manual hooks, dispatch errors)

    Terminal states never change and nothing re-enters PENDING.
    """

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        match self:
            case ExecutionStatus.PENDING | ExecutionStatus.RUNNING:
                return False
            case ExecutionStatus.COMPLETED | ExecutionStatus.FAILED | ExecutionStatus.CANCELLED:
                return True
            case _:
                assert_never(self)

    def can_transition_to(self, target: "ExecutionStatus") -> bool:
        """Whether moving from this status to ``target`` is a legal forward step."""
        match self:
            case ExecutionStatus.PENDING:
                return target is not ExecutionStatus.PENDING
            case ExecutionStatus.RUNNING:
                return target in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED)
            case ExecutionStatus.COMPLETED | ExecutionStatus.FAILED | ExecutionStatus.CANCELLED:
                return False
            case _:
                assert_never(self)

    @classmethod
    def sources_for(cls, target: "ExecutionStatus") -> tuple["ExecutionStatus", ...]:
        """All statuses from which ``target`` is reachable in one step."""
        return tuple(status for status in cls if status.can_transition_to(target))


class TriggerType(str, Enum):
    """Business event type a workflow listens to."""

    TIME_BASED = "time_based"
    EVENT_BASED = "event_based"
    MANUAL = "manual"
    WEBHOOK = "webhook"
    CUSTOMER_CREATED = "customer_created"
    SERVICE_COMPLETED = "service_completed"
    REVIEW_COMPLETED = "review_completed"
    SCHEDULED = "scheduled"


class LogLevel(str, Enum):
    """Severity of an automation log entry."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"
