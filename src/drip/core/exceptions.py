"""Domain errors and exception handlers with request_id in responses."""

from uuid import UUID

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.drip.core.logging import get_logger

logger = get_logger(__name__)


class AutomationError(Exception):
    """Base class for errors raised synchronously by the automation engine."""

    status_code: int = status.HTTP_400_BAD_REQUEST


class TargetNotFoundError(AutomationError):
    """The target entity of a scheduling request does not exist."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, target_id: UUID):
        self.target_id = target_id
        super().__init__(f"Target not found: {target_id}")


class WorkflowNotFoundError(AutomationError):
    """The referenced workflow definition does not exist."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, workflow_id: UUID):
        self.workflow_id = workflow_id
        super().__init__(f"Workflow not found: {workflow_id}")


class ExecutionNotFoundError(AutomationError):
    """The referenced execution does not exist (or belongs to another tenant)."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, execution_id: UUID):
        self.execution_id = execution_id
        super().__init__(f"Execution not found: {execution_id}")


class TenantMismatchError(AutomationError):
    """Target entity and workflow belong to different tenants."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, target_id: UUID, workflow_id: UUID):
        self.target_id = target_id
        self.workflow_id = workflow_id
        super().__init__(
            f"Target {target_id} and workflow {workflow_id} belong to different tenants"
        )


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses."""

    @app.exception_handler(AutomationError)
    async def automation_error_handler(request: Request, exc: AutomationError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": str(exc),
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = correlation_id.get()
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=request_id,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "request_id": request_id,
            },
        )
