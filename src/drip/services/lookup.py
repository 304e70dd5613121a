"""Tenant/entity lookup used by scheduling and actions."""

from typing import Any, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.drip.core.db import get_session
from src.drip.core.logging import get_logger
from src.drip.models import AutomationWorkflow, Customer
from src.drip.repositories import CustomerRepository, WorkflowRepository

logger = get_logger(__name__)

# Customer fields an automation is allowed to change
UPDATABLE_FIELDS = frozenset({"notes", "service_type", "industry"})


class TargetLookup(Protocol):
    async def get_target(self, target_id: UUID) -> Customer | None: ...

    async def get_workflow(self, workflow_id: UUID) -> AutomationWorkflow | None: ...

    async def update_target(self, target_id: UUID, changes: dict[str, Any]) -> dict[str, Any]:
        """Apply ``changes`` to the target and return what was actually changed."""
        ...


class SqlTargetLookup:
    """Read targets and workflows from the application database.

    Each call runs in its own short session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self._session_factory = session_factory

    async def get_target(self, target_id: UUID) -> Customer | None:
        async with get_session(self._session_factory) as session:
            return await CustomerRepository(session).get_by_id(target_id)

    async def get_workflow(self, workflow_id: UUID) -> AutomationWorkflow | None:
        async with get_session(self._session_factory) as session:
            return await WorkflowRepository(session).get_by_id(workflow_id)

    async def update_target(self, target_id: UUID, changes: dict[str, Any]) -> dict[str, Any]:
        """Apply field updates and ``add_tags`` to a customer.

        Unsupported keys are ignored. Raises LookupError if the customer is gone.
        """
        async with get_session(self._session_factory) as session:
            customer = await CustomerRepository(session).get_by_id(target_id)
            if customer is None:
                raise LookupError(f"Customer not found: {target_id}")

            applied: dict[str, Any] = {}
            for field, value in changes.items():
                if field in UPDATABLE_FIELDS:
                    setattr(customer, field, value)
                    applied[field] = value

            new_tags = [t for t in changes.get("add_tags", []) if t not in customer.tags]
            if new_tags:
                # New list so the JSON column is flagged dirty
                customer.tags = [*customer.tags, *new_tags]
                applied["add_tags"] = new_tags

            if applied:
                session.add(customer)
                await session.commit()
                logger.info("Customer updated by automation", customer_id=str(target_id))
            return applied
