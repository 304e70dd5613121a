"""Tests for mapping business events onto workflows."""

from datetime import timedelta

import pytest

from src.drip.models import TriggerType
from tests.factories import WorkflowFactory
from tests.helpers import NOW

pytestmark = pytest.mark.integration


class TestOnEvent:
    async def test_schedules_every_matching_workflow(
        self, automation, persist, tenant, customer
    ):
        immediate = WorkflowFactory.build(tenant_id=tenant.id)
        delayed = WorkflowFactory.build(tenant_id=tenant.id, trigger_config={"delay_days": 3})
        other_trigger = WorkflowFactory.build(
            tenant_id=tenant.id, trigger_type=TriggerType.CUSTOMER_CREATED.value
        )
        inactive = WorkflowFactory.build(tenant_id=tenant.id, is_active=False)
        await persist(immediate, delayed, other_trigger, inactive)

        executions = await automation.triggers.on_event(
            tenant.id, TriggerType.SERVICE_COMPLETED, customer.id, {"job_id": "J-7"}
        )
        await automation.dispatcher.join()

        by_workflow = {e.workflow_id: e for e in executions}
        assert set(by_workflow) == {immediate.id, delayed.id}
        assert by_workflow[delayed.id].scheduled_for == NOW + timedelta(days=3)
        assert all(e.trigger_event == "service_completed" for e in executions)
        assert all(e.trigger_data == {"job_id": "J-7"} for e in executions)

    async def test_workflows_of_other_tenants_are_ignored(
        self, automation, persist, tenant, customer
    ):
        await persist(WorkflowFactory.build())

        assert await automation.triggers.on_event(
            tenant.id, TriggerType.SERVICE_COMPLETED, customer.id
        ) == []

    async def test_conditions_filter_workflows(self, automation, persist, tenant, customer):
        matching = WorkflowFactory.build(
            tenant_id=tenant.id, conditions={"service_types": ["plumbing"]}
        )
        skipped = WorkflowFactory.build(
            tenant_id=tenant.id, conditions={"service_types": ["hvac"]}
        )
        await persist(matching, skipped)

        executions = await automation.triggers.on_event(
            tenant.id, TriggerType.SERVICE_COMPLETED, customer.id
        )
        await automation.dispatcher.join()

        assert [e.workflow_id for e in executions] == [matching.id]
