"""
Temporal Worker - Separate process from API.

Hosts ExecutionMaintenanceWorkflow for the "temporal" maintenance backend.

Run with:
    uv run python -m src.drip.temporal.worker
"""

import asyncio

import uvicorn
from fastapi import FastAPI
from temporalio.client import Client
from temporalio.worker import Worker

from src.drip.core.config import get_settings
from src.drip.core.db import dispose_engine
from src.drip.core.logging import get_logger, setup_logging
from src.drip.temporal.activities import fail_stuck_executions, sweep_completed_executions
from src.drip.temporal.client import ensure_maintenance_schedule
from src.drip.temporal.workflows import ExecutionMaintenanceWorkflow

logger = get_logger(__name__)

WORKER_HEALTH_PORT = 8001


def create_worker(client: Client, task_queue: str) -> Worker:
    """Create the maintenance worker.

    Maintenance activities are short, so concurrency stays low.
    """
    return Worker(
        client,
        task_queue=task_queue,
        workflows=[ExecutionMaintenanceWorkflow],
        activities=[fail_stuck_executions, sweep_completed_executions],
        max_concurrent_activities=10,
        max_concurrent_workflow_tasks=10,
    )


async def run_health_server(task_queue: str, port: int = WORKER_HEALTH_PORT) -> None:
    """Run a lightweight health server for K8s probes."""
    health_app = FastAPI(title="Automation Worker Health")

    @health_app.get("/health")
    async def health() -> dict[str, str]:
        return {
            "status": "healthy",
            "service": "automation-worker",
            "task_queue": task_queue,
        }

    config = uvicorn.Config(health_app, host="0.0.0.0", port=port, log_level="warning")
    server = uvicorn.Server(config)
    logger.info(f"Starting health server on port {port}")
    await server.serve()


async def main() -> None:
    settings = get_settings()
    setup_logging(settings.debug)

    client = await Client.connect(settings.temporal_host, namespace=settings.temporal_namespace)
    worker = create_worker(client, settings.temporal_task_queue)

    if settings.automation_maintenance_backend == "temporal":
        await ensure_maintenance_schedule(client)
    else:
        logger.warning(
            "Maintenance backend is inprocess - worker will only run manually started workflows"
        )

    logger.info(f"Starting worker on queue: {settings.temporal_task_queue}")
    try:
        await asyncio.gather(worker.run(), run_health_server(settings.temporal_task_queue))
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
