"""Temporal Client - connection and maintenance schedule management."""

from temporalio.client import Client
from temporalio.exceptions import WorkflowAlreadyStartedError

from src.drip.core.config import get_settings
from src.drip.core.logging import get_logger
from src.drip.temporal.workflows import ExecutionMaintenanceWorkflow, MaintenanceInput

logger = get_logger(__name__)

MAINTENANCE_WORKFLOW_ID = "automation-execution-maintenance"

_client: Client | None = None


async def get_temporal_client() -> Client:
    """Get or create Temporal client."""
    global _client
    if _client is None:
        settings = get_settings()
        _client = await Client.connect(
            settings.temporal_host, namespace=settings.temporal_namespace
        )
    return _client


async def close_temporal_client() -> None:
    """Drop the cached Temporal client. Call during shutdown."""
    global _client
    _client = None


async def ensure_maintenance_schedule(client: Client) -> bool:
    """Start the cron maintenance workflow unless it is already running.

    Returns:
        True if a new cron workflow was started.
    """
    settings = get_settings()
    try:
        await client.start_workflow(
            ExecutionMaintenanceWorkflow.run,
            MaintenanceInput(
                timeout_minutes=settings.automation_stuck_timeout_minutes,
                retention_days=settings.automation_retention_days,
            ),
            id=MAINTENANCE_WORKFLOW_ID,
            task_queue=settings.temporal_task_queue,
            cron_schedule=settings.automation_maintenance_schedule,
        )
    except WorkflowAlreadyStartedError:
        logger.info("Maintenance workflow already scheduled", workflow_id=MAINTENANCE_WORKFLOW_ID)
        return False

    logger.info(
        "Maintenance workflow scheduled",
        workflow_id=MAINTENANCE_WORKFLOW_ID,
        cron=settings.automation_maintenance_schedule,
    )
    return True
