"""Tests for running executions end to end against the database."""

from uuid import uuid4

import pytest

from src.drip.models import ExecutionStatus, LogLevel, TriggerType
from src.drip.schemas import ActionOutcome
from tests.factories import CustomerFactory, ExecutionFactory, WorkflowFactory
from tests.helpers import NOW

pytestmark = pytest.mark.integration


async def make_execution(persist, workflow, customer, **kwargs):
    execution = ExecutionFactory.build(
        workflow_id=workflow.id,
        target_id=customer.id,
        tenant_id=customer.tenant_id,
        **kwargs,
    )
    await persist(execution)
    return execution


class TestExecute:
    async def test_immediate_email_completes(
        self, automation, persist, workflow, customer, email_sender
    ):
        execution = await make_execution(persist, workflow, customer)

        assert await automation.executor.execute(execution.id)

        done = await automation.store.get(execution.id)
        assert done.status_enum is ExecutionStatus.COMPLETED
        assert done.started_at == NOW
        assert done.completed_at == NOW
        assert done.execution_data["completion_message"] == "Workflow completed successfully"
        assert done.execution_data["action_results"]["send_email"]["success"] is True
        assert email_sender.sent == [(customer.id, "review_request")]

    async def test_second_execute_is_a_no_op(
        self, automation, persist, workflow, customer, email_sender
    ):
        execution = await make_execution(persist, workflow, customer)

        assert await automation.executor.execute(execution.id)
        assert not await automation.executor.execute(execution.id)
        assert len(email_sender.sent) == 1

    async def test_one_successful_channel_is_enough(
        self, automation, persist, tenant, customer, sms_sender
    ):
        workflow = WorkflowFactory.build(
            tenant_id=tenant.id,
            actions={
                "send_sms": {"enabled": True},
                "send_email": {"enabled": True, "template_type": "follow_up"},
            },
        )
        await persist(workflow)
        execution = await make_execution(persist, workflow, customer)

        assert await automation.executor.execute(execution.id)

        results = (await automation.store.get(execution.id)).execution_data["action_results"]
        assert results["send_sms"]["success"] is False
        assert results["send_sms"]["error"] == "SMS not eligible: No phone number"
        assert results["send_email"]["success"] is True
        assert sms_sender.sent == []

    async def test_all_actions_failing_fails(self, automation, persist, tenant, customer):
        workflow = WorkflowFactory.build(
            tenant_id=tenant.id,
            actions={"send_sms": {"enabled": True}, "fax": {"enabled": True}},
        )
        await persist(workflow)
        execution = await make_execution(persist, workflow, customer)

        assert not await automation.executor.execute(execution.id)

        failed = await automation.store.get(execution.id)
        assert failed.status_enum is ExecutionStatus.FAILED
        assert failed.error_message == "Workflow action execution failed"
        assert failed.completed_at == NOW
        results = failed.execution_data["action_results"]
        assert results["fax"]["error"] == "Unknown action type: fax"

    async def test_conditions_rechecked_at_run_time(
        self, automation, persist, tenant, workflow, email_sender
    ):
        customer = CustomerFactory.build(tenant_id=tenant.id, opted_out=True)
        await persist(customer)
        execution = await make_execution(persist, workflow, customer)

        assert await automation.executor.execute(execution.id)

        done = await automation.store.get(execution.id)
        assert done.status_enum is ExecutionStatus.COMPLETED
        assert done.execution_data["completion_message"] == "Workflow conditions no longer met"
        assert email_sender.sent == []

    async def test_conditions_result_lost_to_another_writer(
        self, automation, persist, tenant, workflow, monkeypatch
    ):
        customer = CustomerFactory.build(tenant_id=tenant.id, opted_out=True)
        await persist(customer)
        execution = await make_execution(persist, workflow, customer)

        async def lost_race(execution_id, message, data=None, sources=()):
            return False

        monkeypatch.setattr(automation.store, "complete", lost_race)

        assert not await automation.executor.execute(execution.id)
        assert (await automation.store.get(execution.id)).status_enum is ExecutionStatus.RUNNING

    async def test_missing_workflow_fails(self, automation, persist, customer):
        execution = ExecutionFactory.build(
            workflow_id=uuid4(), target_id=customer.id, tenant_id=customer.tenant_id
        )
        await persist(execution)

        assert not await automation.executor.execute(execution.id)

        failed = await automation.store.get(execution.id)
        assert failed.status_enum is ExecutionStatus.FAILED
        assert failed.error_message == f"Workflow not found: {execution.workflow_id}"

    async def test_missing_target_fails(self, automation, persist, workflow):
        execution = ExecutionFactory.build(workflow_id=workflow.id, tenant_id=workflow.tenant_id)
        await persist(execution)

        assert not await automation.executor.execute(execution.id)

        failed = await automation.store.get(execution.id)
        assert failed.error_message == f"Target not found: {execution.target_id}"

    async def test_cancelled_execution_is_never_run(
        self, automation, persist, workflow, customer, email_sender
    ):
        execution = await make_execution(persist, workflow, customer)
        assert await automation.cancel_execution(execution.id, "customer asked")

        assert not await automation.executor.execute(execution.id)
        assert email_sender.sent == []
        assert (await automation.store.get(execution.id)).status_enum is ExecutionStatus.CANCELLED

    async def test_update_customer_action(self, automation, persist, tenant, customer):
        workflow = WorkflowFactory.build(
            tenant_id=tenant.id,
            actions={
                "update_customer": {
                    "updates": {"notes": "Review requested", "add_tags": ["reviewed"]}
                }
            },
        )
        await persist(workflow)
        execution = await make_execution(persist, workflow, customer)

        assert await automation.executor.execute(execution.id)

        updated = await automation.channels.lookup.get_target(customer.id)
        assert updated.notes == "Review requested"
        assert updated.tags == ["reviewed"]


class TestDefaultActions:
    @pytest.mark.parametrize(
        ("trigger_type", "action", "template"),
        [
            (TriggerType.CUSTOMER_CREATED, "welcome", "welcome"),
            (TriggerType.SERVICE_COMPLETED, "review_request", "review_request"),
            (TriggerType.REVIEW_COMPLETED, "thank_you", "thank_you"),
        ],
    )
    async def test_default_action_per_trigger(
        self, automation, persist, tenant, customer, email_sender, trigger_type, action, template
    ):
        workflow = WorkflowFactory.build(
            tenant_id=tenant.id, trigger_type=trigger_type.value, actions={}
        )
        await persist(workflow)
        execution = await make_execution(persist, workflow, customer)

        assert await automation.executor.execute(execution.id)

        done = await automation.store.get(execution.id)
        assert done.execution_data["default_action"]["action"] == action
        assert done.execution_data["default_action"]["success"] is True
        assert email_sender.sent == [(customer.id, template)]

    async def test_trigger_without_default_fails(self, automation, persist, tenant, customer):
        workflow = WorkflowFactory.build(
            tenant_id=tenant.id, trigger_type=TriggerType.MANUAL.value, actions={}
        )
        await persist(workflow)
        execution = await make_execution(persist, workflow, customer)

        assert not await automation.executor.execute(execution.id)

        failed = await automation.store.get(execution.id)
        assert failed.status_enum is ExecutionStatus.FAILED
        assert failed.execution_data["default_action"]["action"] is None


class TestCustomActions:
    async def test_handler_exception_is_recorded(
        self, automation, persist, tenant, customer
    ):
        @automation.executor.registry.register("explode")
        async def explode(ctx):
            raise RuntimeError("boom")

        workflow = WorkflowFactory.build(tenant_id=tenant.id, actions={"explode": {}})
        await persist(workflow)
        execution = await make_execution(persist, workflow, customer)

        assert not await automation.executor.execute(execution.id)

        failed = await automation.store.get(execution.id)
        assert failed.execution_data["action_results"]["explode"]["error"] == (
            "Action explode failed: boom"
        )

    async def test_registered_action_runs(self, automation, persist, tenant, customer):
        seen = []

        @automation.executor.registry.register("audit")
        async def audit(ctx):
            seen.append(ctx.execution.id)
            return ActionOutcome.ok(logged=True)

        workflow = WorkflowFactory.build(tenant_id=tenant.id, actions={"Audit": {}})
        await persist(workflow)
        execution = await make_execution(persist, workflow, customer)

        assert await automation.executor.execute(execution.id)
        assert seen == [execution.id]

    async def test_store_error_after_claim_fails_execution(
        self, automation, persist, workflow, customer, monkeypatch
    ):
        execution = await make_execution(persist, workflow, customer)

        async def broken_lookup(workflow_id):
            raise RuntimeError("connection reset")

        monkeypatch.setattr(automation.channels.lookup, "get_workflow", broken_lookup)

        assert not await automation.executor.execute(execution.id)

        failed = await automation.store.get(execution.id)
        assert failed.status_enum is ExecutionStatus.FAILED
        assert failed.error_message == "Exception during workflow execution: connection reset"


class TestExecutionLog:
    async def test_successful_run(self, automation, persist, workflow, customer):
        execution = await make_execution(persist, workflow, customer)

        assert await automation.executor.execute(execution.id)

        entries = await automation.store.logs(execution.id)
        assert [(e.level_enum, e.message) for e in entries] == [
            (LogLevel.INFO, "Starting workflow execution"),
            (LogLevel.INFO, "Action send_email succeeded"),
            (LogLevel.INFO, "Workflow completed successfully"),
        ]
        assert all(e.workflow_id == workflow.id for e in entries)
        assert all(e.tenant_id == customer.tenant_id for e in entries)
        assert entries[1].details["data"]["method"] == "email"

    async def test_failed_run(self, automation, persist, tenant, customer):
        workflow = WorkflowFactory.build(tenant_id=tenant.id, actions={"fax": {"enabled": True}})
        await persist(workflow)
        execution = await make_execution(persist, workflow, customer)

        assert not await automation.executor.execute(execution.id)

        entries = await automation.store.logs(execution.id)
        assert [(e.level_enum, e.message) for e in entries] == [
            (LogLevel.INFO, "Starting workflow execution"),
            (LogLevel.WARN, "Action fax failed: Unknown action type: fax"),
            (LogLevel.ERROR, "Workflow action execution failed"),
        ]

    async def test_default_action_run(self, automation, persist, tenant, customer):
        workflow = WorkflowFactory.build(
            tenant_id=tenant.id, trigger_type=TriggerType.CUSTOMER_CREATED.value, actions={}
        )
        await persist(workflow)
        execution = await make_execution(persist, workflow, customer)

        assert await automation.executor.execute(execution.id)

        messages = [e.message for e in await automation.store.logs(execution.id)]
        assert messages == [
            "Starting workflow execution",
            "No actions defined for workflow",
            "Default action welcome succeeded",
            "Workflow completed successfully",
        ]

    async def test_log_write_failure_does_not_fail_run(
        self, automation, persist, workflow, customer, monkeypatch
    ):
        execution = await make_execution(persist, workflow, customer)

        async def broken_log(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(automation.store, "log", broken_log)

        assert await automation.executor.execute(execution.id)
        done = await automation.store.get(execution.id)
        assert done.status_enum is ExecutionStatus.COMPLETED
