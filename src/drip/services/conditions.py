"""Workflow precondition evaluation."""

from typing import Any, Protocol

from src.drip.core.clock import Clock, SystemClock
from src.drip.core.logging import get_logger
from src.drip.models import AutomationWorkflow, Customer

logger = get_logger(__name__)


class ConditionEvaluator(Protocol):
    """Decides whether a workflow should run for a target right now.

    Called at schedule time and again at execution time, so implementations
    must be side-effect free and fast.
    """

    def evaluate(self, workflow: AutomationWorkflow, target: Customer) -> bool: ...


class RuleConditionEvaluator:
    """Evaluate the rule set stored in ``AutomationWorkflow.conditions``.

    Opted-out customers never match. Supported rules, all optional:

    - ``industries``: list of allowed ``Customer.industry`` values
    - ``service_types``: list of allowed ``Customer.service_type`` values
    - ``execution_hours``: ``{"start": h, "end": h}`` inclusive UTC hour
      window; ``start > end`` wraps over midnight
    - ``min_days_since_created``: minimum customer age in whole days
    - ``requires_email``: customer must have an email address
    - ``requires_sms``: customer must be reachable by SMS

    A malformed rule counts as not met.
    """

    def __init__(self, clock: Clock | None = None):
        self.clock = clock or SystemClock()

    def evaluate(self, workflow: AutomationWorkflow, target: Customer) -> bool:
        if target.opted_out:
            return False

        conditions = workflow.conditions or {}
        try:
            return all(self._check(rule, value, target) for rule, value in conditions.items())
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Malformed workflow condition",
                workflow_id=str(workflow.id),
                error=str(e),
            )
            return False

    def _check(self, rule: str, value: Any, target: Customer) -> bool:
        match rule:
            case "industries":
                return target.industry in value
            case "service_types":
                return target.service_type in value
            case "execution_hours":
                hour = self.clock.now().hour
                return _in_hour_window(hour, int(value["start"]), int(value["end"]))
            case "min_days_since_created":
                age = self.clock.now() - target.created_at
                return age.days >= int(value)
            case "requires_email":
                return not value or bool(target.email)
            case "requires_sms":
                return not value or target.can_receive_sms
            case _:
                # Unknown keys (e.g. segment rules owned elsewhere) don't block
                return True


def _in_hour_window(hour: int, start: int, end: int) -> bool:
    if start <= end:
        return start <= hour <= end
    return hour >= start or hour <= end
