"""Automation endpoints - trigger events, inspect and steer executions.

All endpoints are tenant-scoped through the X-Tenant-Slug header.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from src.drip.api.dependencies import Engine, ValidatedTenant
from src.drip.core.exceptions import ExecutionNotFoundError
from src.drip.engine import AutomationEngine
from src.drip.models import AutomationExecution, ExecutionStatus, Tenant
from src.drip.schemas import (
    AutomationLogRead,
    CancelExecutionRequest,
    CompleteExecutionRequest,
    ExecutionRead,
    ExecutionStats,
    FailExecutionRequest,
    PaginatedResponse,
    TransitionResponse,
    TriggerEventRequest,
)

router = APIRouter(prefix="/automation", tags=["automation"])


async def _get_execution(
    engine: AutomationEngine, tenant: Tenant, execution_id: UUID
) -> AutomationExecution:
    execution = await engine.store.get_for_tenant(execution_id, tenant.id)
    if execution is None:
        raise ExecutionNotFoundError(execution_id)
    return execution


async def _transition_response(
    engine: AutomationEngine, tenant: Tenant, execution_id: UUID, applied: bool
) -> TransitionResponse:
    execution = await _get_execution(engine, tenant, execution_id)
    return TransitionResponse(id=execution.id, applied=applied, status=execution.status_enum)


@router.post(
    "/events",
    response_model=list[ExecutionRead],
    status_code=status.HTTP_202_ACCEPTED,
    summary="Trigger event",
    description="Schedule every active workflow of the tenant listening to the event.",
    responses={
        202: {"description": "Executions scheduled (may be empty)"},
        404: {"description": "Target not found"},
        409: {"description": "Target belongs to another tenant"},
    },
)
async def trigger_event(
    request: TriggerEventRequest,
    tenant: ValidatedTenant,
    engine: Engine,
) -> list[ExecutionRead]:
    executions = await engine.triggers.on_event(
        tenant.id, request.trigger_type, request.target_id, request.trigger_data
    )
    return [ExecutionRead.model_validate(e) for e in executions]


@router.get(
    "/executions",
    response_model=PaginatedResponse[ExecutionRead],
    summary="List executions",
    description="List the tenant's executions, newest first, with cursor-based pagination.",
)
async def list_executions(
    tenant: ValidatedTenant,
    engine: Engine,
    status_filter: Annotated[
        ExecutionStatus | None, Query(alias="status", description="Only this status")
    ] = None,
    workflow_id: Annotated[UUID | None, Query(description="Only this workflow")] = None,
    target_id: Annotated[UUID | None, Query(description="Only this target")] = None,
    cursor: Annotated[str | None, Query(description="Cursor for pagination")] = None,
    limit: Annotated[int, Query(ge=1, le=100, description="Max items to return")] = 50,
) -> PaginatedResponse[ExecutionRead]:
    executions, next_cursor, has_more = await engine.store.list_for_tenant(
        tenant.id,
        status_filter,
        cursor,
        limit,
        workflow_id=workflow_id,
        target_id=target_id,
    )
    return PaginatedResponse(
        items=[ExecutionRead.model_validate(e) for e in executions],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.get(
    "/executions/{execution_id}",
    response_model=ExecutionRead,
    summary="Get execution",
    responses={404: {"description": "Execution not found"}},
)
async def get_execution(
    execution_id: UUID,
    tenant: ValidatedTenant,
    engine: Engine,
) -> ExecutionRead:
    return ExecutionRead.model_validate(await _get_execution(engine, tenant, execution_id))


@router.get(
    "/executions/{execution_id}/logs",
    response_model=list[AutomationLogRead],
    summary="Get execution log",
    description="Log entries of one execution, oldest first.",
    responses={404: {"description": "Execution not found"}},
)
async def get_execution_logs(
    execution_id: UUID,
    tenant: ValidatedTenant,
    engine: Engine,
) -> list[AutomationLogRead]:
    await _get_execution(engine, tenant, execution_id)
    return [AutomationLogRead.model_validate(e) for e in await engine.store.logs(execution_id)]


@router.post(
    "/executions/{execution_id}/cancel",
    response_model=TransitionResponse,
    summary="Cancel execution",
    description="Cancel a PENDING execution. Any other status is left unchanged.",
    responses={404: {"description": "Execution not found"}},
)
async def cancel_execution(
    execution_id: UUID,
    request: CancelExecutionRequest,
    tenant: ValidatedTenant,
    engine: Engine,
) -> TransitionResponse:
    await _get_execution(engine, tenant, execution_id)
    applied = await engine.cancel_execution(execution_id, request.reason)
    return await _transition_response(engine, tenant, execution_id, applied)


@router.post(
    "/executions/{execution_id}/complete",
    response_model=TransitionResponse,
    summary="Mark execution completed",
    responses={404: {"description": "Execution not found"}},
)
async def complete_execution(
    execution_id: UUID,
    request: CompleteExecutionRequest,
    tenant: ValidatedTenant,
    engine: Engine,
) -> TransitionResponse:
    await _get_execution(engine, tenant, execution_id)
    applied = await engine.mark_completed(execution_id, request.message)
    return await _transition_response(engine, tenant, execution_id, applied)


@router.post(
    "/executions/{execution_id}/fail",
    response_model=TransitionResponse,
    summary="Mark execution failed",
    responses={404: {"description": "Execution not found"}},
)
async def fail_execution(
    execution_id: UUID,
    request: FailExecutionRequest,
    tenant: ValidatedTenant,
    engine: Engine,
) -> TransitionResponse:
    await _get_execution(engine, tenant, execution_id)
    applied = await engine.mark_failed(execution_id, request.reason)
    return await _transition_response(engine, tenant, execution_id, applied)


@router.get(
    "/stats",
    response_model=ExecutionStats,
    summary="Execution stats",
    description="Execution counts per status for the tenant.",
)
async def get_stats(tenant: ValidatedTenant, engine: Engine) -> ExecutionStats:
    return await engine.get_execution_stats(tenant.id)
