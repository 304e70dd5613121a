"""Workflow executor: runs one claimed execution to a terminal state."""

from uuid import UUID

from src.drip.core.clock import Clock, SystemClock
from src.drip.core.logging import bind_execution_context, get_logger
from src.drip.engine.actions import DEFAULT_ACTIONS, ActionContext, ActionRegistry, Channels
from src.drip.models import (
    AutomationExecution,
    AutomationWorkflow,
    Customer,
    ExecutionStatus,
    LogLevel,
)
from src.drip.schemas import ActionOutcome, ExecutionData
from src.drip.services.conditions import ConditionEvaluator
from src.drip.services.execution_store import ExecutionStore

logger = get_logger(__name__)

CONDITIONS_NOT_MET = "Workflow conditions no longer met"
COMPLETED_MESSAGE = "Workflow completed successfully"
FAILED_MESSAGE = "Workflow action execution failed"


class WorkflowExecutor:
    """Claims a PENDING execution and interprets its workflow's action map.

    The overall result is the OR of the action outcomes: one successful
    channel is enough to complete the execution.
    """

    def __init__(
        self,
        store: ExecutionStore,
        evaluator: ConditionEvaluator,
        registry: ActionRegistry,
        channels: Channels,
        clock: Clock | None = None,
    ):
        self.store = store
        self.evaluator = evaluator
        self.registry = registry
        self.channels = channels
        self.clock = clock or SystemClock()

    async def execute(self, execution_id: UUID) -> bool:
        """Process one execution. Never raises.

        Returns:
            True if the execution ended COMPLETED by this call, False if it
            failed or was not PENDING (already handled elsewhere).
        """
        bind_execution_context(execution_id)
        claimed = False
        try:
            execution = await self.store.claim(execution_id)
            if execution is None:
                logger.debug("Execution not pending, skipping")
                return False
            claimed = True
            return await self._process(execution)
        except Exception as e:
            logger.exception("Workflow execution raised", error=str(e))
            sources = (ExecutionStatus.RUNNING,) if claimed else (ExecutionStatus.PENDING,)
            try:
                await self.store.fail(
                    execution_id, f"Exception during workflow execution: {e}", sources=sources
                )
            except Exception as store_error:
                logger.exception("Could not record execution failure", error=str(store_error))
            return False

    async def _process(self, execution: AutomationExecution) -> bool:
        bind_execution_context(execution.id, execution.tenant_id)
        lookup = self.channels.lookup

        workflow = await lookup.get_workflow(execution.workflow_id)
        if workflow is None:
            await self.store.fail(execution.id, f"Workflow not found: {execution.workflow_id}")
            return False
        target = await lookup.get_target(execution.target_id)
        if target is None:
            await self.store.fail(execution.id, f"Target not found: {execution.target_id}")
            return False

        if not self.evaluator.evaluate(workflow, target):
            logger.info("Workflow conditions no longer met", workflow_id=str(workflow.id))
            if not await self.store.complete(execution.id, CONDITIONS_NOT_MET):
                logger.warning("Execution left RUNNING before conditions result was recorded")
                return False
            return True

        success, data = await self._run_actions(execution, workflow, target)

        if success:
            applied = await self.store.complete(execution.id, COMPLETED_MESSAGE, data)
        else:
            applied = await self.store.fail(execution.id, FAILED_MESSAGE, data)
        if not applied:
            logger.warning("Execution left RUNNING before results were recorded")
            return False

        logger.info("Workflow execution finished", workflow_id=str(workflow.id), success=success)
        return success

    async def _run_actions(
        self,
        execution: AutomationExecution,
        workflow: AutomationWorkflow,
        target: Customer,
    ) -> tuple[bool, ExecutionData]:
        now = self.clock.now()
        if not workflow.actions:
            return await self._run_default(execution, workflow, target)

        results: dict[str, ActionOutcome] = {}
        for name, config in workflow.actions.items():
            if not isinstance(config, dict):
                outcome = ActionOutcome.fail("Invalid action config - expected an object")
            elif config.get("enabled", True) is False:
                outcome = ActionOutcome.ok(status="skipped", reason="disabled")
            else:
                ctx = ActionContext(execution, workflow, target, config, self.channels, now)
                outcome = await self.registry.run(name, ctx)

            results[name] = outcome
            if outcome.success:
                logger.info("Action succeeded", action=name)
                await self._log(execution, LogLevel.INFO, f"Action {name} succeeded", outcome)
            else:
                logger.warning("Action failed", action=name, error=outcome.error)
                await self._log(
                    execution, LogLevel.WARN, f"Action {name} failed: {outcome.error}", outcome
                )

        success = any(outcome.success for outcome in results.values())
        return success, ExecutionData(action_results=results)

    async def _run_default(
        self,
        execution: AutomationExecution,
        workflow: AutomationWorkflow,
        target: Customer,
    ) -> tuple[bool, ExecutionData]:
        await self._log(execution, LogLevel.WARN, "No actions defined for workflow")
        default = DEFAULT_ACTIONS.get(workflow.trigger_type_enum)
        if default is None:
            logger.warning("No default action for trigger type", trigger_type=workflow.trigger_type)
            outcome = ActionOutcome.fail(
                f"No default action for trigger type: {workflow.trigger_type}"
            )
            return False, ExecutionData(default_action={"action": None, **outcome.model_dump()})

        name, handler = default
        ctx = ActionContext(execution, workflow, target, {}, self.channels, self.clock.now())
        try:
            outcome = await handler(ctx)
        except Exception as e:
            logger.exception("Default action raised", action=name, error=str(e))
            outcome = ActionOutcome.fail(f"Default action {name} failed: {e}")

        logger.info("Default action finished", action=name, success=outcome.success)
        if outcome.success:
            await self._log(execution, LogLevel.INFO, f"Default action {name} succeeded", outcome)
        else:
            await self._log(
                execution, LogLevel.ERROR, f"Default action {name} failed: {outcome.error}", outcome
            )
        return outcome.success, ExecutionData(
            default_action={"action": name, **outcome.model_dump()}
        )

    async def _log(
        self,
        execution: AutomationExecution,
        level: LogLevel,
        message: str,
        outcome: ActionOutcome | None = None,
    ) -> None:
        """Record an execution log entry. A failed write never changes the run's outcome."""
        details = outcome.model_dump(mode="json", exclude_none=True) if outcome else None
        try:
            await self.store.log(execution, level, message, details)
        except Exception as e:
            logger.exception("Could not write execution log", error=str(e))
