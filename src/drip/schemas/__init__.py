from src.drip.schemas.execution import (
    ActionOutcome,
    AutomationLogRead,
    CancelExecutionRequest,
    CompleteExecutionRequest,
    ExecutionData,
    ExecutionRead,
    ExecutionStats,
    FailExecutionRequest,
    TransitionResponse,
    TriggerEventRequest,
    merge_execution_data,
)
from src.drip.schemas.pagination import PaginatedResponse

__all__ = [
    # Execution data
    "ActionOutcome",
    "ExecutionData",
    "merge_execution_data",
    # API
    "AutomationLogRead",
    "CancelExecutionRequest",
    "CompleteExecutionRequest",
    "ExecutionRead",
    "ExecutionStats",
    "FailExecutionRequest",
    "TransitionResponse",
    "TriggerEventRequest",
    # Pagination
    "PaginatedResponse",
]
