"""Tests for scheduling executions."""

from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from sqlmodel import select

from src.drip.core.exceptions import TargetNotFoundError, TenantMismatchError
from src.drip.models import AutomationExecution, Customer, ExecutionStatus
from src.drip.services.conditions import RuleConditionEvaluator
from src.drip.services.lookup import SqlTargetLookup
from src.drip.services.scheduling_service import SchedulingService
from tests.factories import CustomerFactory, TenantFactory, WorkflowFactory
from tests.helpers import NOW

pytestmark = pytest.mark.integration


@pytest.fixture
def dispatched() -> list:
    return []


@pytest.fixture
def scheduler(store, session_factory, clock, settings, dispatched) -> SchedulingService:
    return SchedulingService(
        store,
        SqlTargetLookup(session_factory),
        RuleConditionEvaluator(clock),
        dispatch=dispatched.append,
        clock=clock,
        settings=settings,
    )


async def count_executions(db_session) -> int:
    result = await db_session.execute(select(AutomationExecution))
    return len(result.scalars().all())


class TestScheduleExecution:
    async def test_immediate_execution_is_dispatched(
        self, scheduler, workflow, customer, dispatched
    ):
        execution = await scheduler.schedule_execution(
            workflow, customer.id, "service_completed", trigger_data={"job_id": "J-1"}
        )

        assert execution.status_enum is ExecutionStatus.PENDING
        assert execution.tenant_id == workflow.tenant_id
        assert execution.scheduled_for is None
        assert execution.created_at == NOW
        assert execution.trigger_data == {"job_id": "J-1"}
        assert execution.execution_data["scheduled_at"] == NOW.isoformat()
        assert dispatched == [execution.id]

    async def test_due_within_window_is_dispatched(self, scheduler, workflow, customer, dispatched):
        execution = await scheduler.schedule_execution(
            workflow, customer.id, "manual", execute_at=NOW + timedelta(seconds=30)
        )
        assert dispatched == [execution.id]

    async def test_future_execution_waits_for_poller(
        self, scheduler, workflow, customer, dispatched
    ):
        execute_at = NOW + timedelta(days=1)
        execution = await scheduler.schedule_execution(
            workflow, customer.id, "manual", execute_at=execute_at
        )

        assert execution.scheduled_for == execute_at
        assert execution.execution_data["execute_at"] == execute_at.isoformat()
        assert dispatched == []

    async def test_missing_target_persists_nothing(self, scheduler, workflow, db_session):
        with pytest.raises(TargetNotFoundError):
            await scheduler.schedule_execution(workflow, uuid4(), "manual")
        assert await count_executions(db_session) == 0

    async def test_cross_tenant_target_persists_nothing(
        self, scheduler, workflow, persist, db_session
    ):
        other_tenant = TenantFactory.build()
        stranger = CustomerFactory.build(tenant_id=other_tenant.id)
        await persist(other_tenant, stranger)

        with pytest.raises(TenantMismatchError):
            await scheduler.schedule_execution(workflow, stranger.id, "manual")
        assert await count_executions(db_session) == 0

    async def test_conditions_not_met_returns_none(
        self, scheduler, persist, tenant, customer, db_session, dispatched
    ):
        workflow = WorkflowFactory.build(
            tenant_id=tenant.id, conditions={"industries": ["restaurants"]}
        )
        await persist(workflow)

        assert await scheduler.schedule_execution(workflow, customer.id, "manual") is None
        assert await count_executions(db_session) == 0
        assert dispatched == []


class TestScheduleDelayed:
    async def test_delay_from_now(self, scheduler, workflow, customer, dispatched):
        execution = await scheduler.schedule_delayed(
            workflow, customer.id, "service_completed", delay_days=1, delay_hours=2
        )
        assert execution.scheduled_for == NOW + timedelta(days=1, hours=2)
        assert dispatched == []

    async def test_zero_delay_is_immediate(self, scheduler, workflow, customer, dispatched):
        execution = await scheduler.schedule_delayed(workflow, customer.id, "manual")
        assert execution.scheduled_for == NOW
        assert dispatched == [execution.id]

    async def test_negative_delay_rejected(self, scheduler, workflow, customer):
        with pytest.raises(ValueError, match="non-negative"):
            await scheduler.schedule_delayed(workflow, customer.id, "manual", delay_hours=-1)


class TestScheduleFromConfig:
    async def test_business_hours_config(self, scheduler, persist, tenant, customer):
        workflow = WorkflowFactory.build(
            tenant_id=tenant.id,
            trigger_config={"delay_hours": 8, "business_hours_only": True, "max_retries": 2},
        )
        await persist(workflow)

        execution = await scheduler.schedule_from_config(workflow, customer.id, "manual")

        assert execution.scheduled_for == datetime(2026, 3, 3, 9, 0)
        assert execution.execution_data["business_hours_only"] is True
        assert execution.execution_data["max_retries"] == 2

    async def test_empty_config_is_immediate(self, scheduler, workflow, customer, dispatched):
        execution = await scheduler.schedule_from_config(workflow, customer.id, "manual")
        assert execution.scheduled_for is None
        assert dispatched == [execution.id]


class TestEndToEnd:
    async def test_immediate_send(self, automation, workflow, customer, email_sender):
        execution = await automation.schedule_execution(
            workflow, customer.id, "service_completed"
        )
        await automation.dispatcher.join()

        done = await automation.store.get(execution.id)
        assert done.status_enum is ExecutionStatus.COMPLETED
        assert email_sender.sent == [(customer.id, "review_request")]

    async def test_delayed_send_after_opt_out(
        self, automation, session_factory, workflow, customer, clock, email_sender
    ):
        execution = await automation.schedule_delayed(
            workflow, customer.id, "service_completed", delay_days=1
        )

        # Customer opts out before the execution comes due
        async with session_factory() as session:
            stored = await session.get(Customer, customer.id)
            stored.opted_out = True
            await session.commit()
        clock.advance(days=1, minutes=1)
        await automation.poller.tick()
        await automation.dispatcher.join()

        done = await automation.store.get(execution.id)
        assert done.status_enum is ExecutionStatus.COMPLETED
        assert done.execution_data["completion_message"] == "Workflow conditions no longer met"
        assert email_sender.sent == []
