"""Action registry and built-in action handlers.

Handlers are looked up by action name; new action types are added with
``@registry.register("name", "alias")`` instead of touching the executor.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from src.drip.core.logging import get_logger
from src.drip.core.notifications import EmailSender, SmsSender, WebhookCaller
from src.drip.models import AutomationExecution, AutomationWorkflow, Customer, TriggerType
from src.drip.schemas import ActionOutcome
from src.drip.services.lookup import TargetLookup

logger = get_logger(__name__)


@dataclass(frozen=True)
class Channels:
    """Collaborators available to action handlers."""

    email: EmailSender
    sms: SmsSender
    webhook: WebhookCaller
    lookup: TargetLookup


@dataclass(frozen=True)
class ActionContext:
    execution: AutomationExecution
    workflow: AutomationWorkflow
    target: Customer
    config: dict[str, Any]
    channels: Channels
    now: datetime


ActionHandler = Callable[[ActionContext], Awaitable[ActionOutcome]]


class ActionRegistry:
    """Map of action name -> handler. Names are case-insensitive."""

    def __init__(self, handlers: dict[str, ActionHandler] | None = None):
        self._handlers: dict[str, ActionHandler] = dict(handlers or {})

    def register(self, *names: str) -> Callable[[ActionHandler], ActionHandler]:
        def decorator(handler: ActionHandler) -> ActionHandler:
            for name in names:
                self._handlers[name.lower()] = handler
            return handler

        return decorator

    def get(self, name: str) -> ActionHandler | None:
        return self._handlers.get(name.lower())

    def names(self) -> list[str]:
        return sorted(self._handlers)

    def copy(self) -> "ActionRegistry":
        return ActionRegistry(self._handlers)

    async def run(self, name: str, ctx: ActionContext) -> ActionOutcome:
        """Run one action. Never raises: handler errors become failed outcomes."""
        handler = self.get(name)
        if handler is None:
            return ActionOutcome.fail(f"Unknown action type: {name}")
        try:
            return await handler(ctx)
        except Exception as e:
            logger.exception("Action handler raised", action=name, error=str(e))
            return ActionOutcome.fail(f"Action {name} failed: {e}")


registry = ActionRegistry()


@registry.register("send_email", "email")
async def send_email(ctx: ActionContext) -> ActionOutcome:
    template_type = ctx.config.get("template_type") or "review_request"
    if not await ctx.channels.email.send_email(ctx.target, template_type):
        return ActionOutcome.fail("Email sending failed")
    return ActionOutcome.ok(
        method="email", template_type=template_type, sent_at=ctx.now.isoformat()
    )


@registry.register("send_sms", "sms")
async def send_sms(ctx: ActionContext) -> ActionOutcome:
    eligibility = ctx.channels.sms.check_eligibility(ctx.target)
    if not eligibility.eligible:
        return ActionOutcome.fail(f"SMS not eligible: {eligibility.reason}")

    message_type = ctx.config.get("message_type", "review_request")
    match message_type:
        case "review_request":
            message_kind = "review_request"
        case "follow_up":
            message_kind = f"follow_up:{ctx.config.get('follow_up_type', 'general')}"
        case _:
            return ActionOutcome.fail(f"Unknown SMS message type: {message_type}")

    result = await ctx.channels.sms.send_sms(ctx.target, message_kind)
    if not result.success:
        return ActionOutcome.fail(f"SMS sending failed: {result.error_reason}")
    return ActionOutcome.ok(
        method="sms",
        message_type=message_type,
        provider_message_id=result.provider_message_id,
        sent_at=ctx.now.isoformat(),
    )


@registry.register("send_review_request", "review_request")
async def send_review_request(ctx: ActionContext) -> ActionOutcome:
    delivery_method = str(ctx.config.get("delivery_method", "EMAIL")).upper()
    match delivery_method:
        case "EMAIL":
            sent = await ctx.channels.email.send_email(ctx.target, "review_request")
            error = None if sent else "Review request email failed"
        case "SMS":
            result = await ctx.channels.sms.send_sms(ctx.target, "review_request")
            error = None if result.success else f"Review request SMS failed: {result.error_reason}"
        case _:
            return ActionOutcome.fail(f"Unknown delivery method: {delivery_method}")

    if error:
        return ActionOutcome.fail(error)
    return ActionOutcome.ok(
        delivery_method=delivery_method,
        template_id=ctx.config.get("template_id"),
        sent_at=ctx.now.isoformat(),
    )


@registry.register("delay")
async def delay(ctx: ActionContext) -> ActionOutcome:
    # Delays are applied when scheduling; here the step is only recorded
    return ActionOutcome.ok(
        delay_days=int(ctx.config.get("delay_days", 0)),
        delay_hours=int(ctx.config.get("delay_hours", 0)),
        processed_at=ctx.now.isoformat(),
    )


@registry.register("webhook")
async def webhook(ctx: ActionContext) -> ActionOutcome:
    url = ctx.config.get("webhook_url") or ctx.config.get("url")
    if not url:
        return ActionOutcome.fail("Webhook URL not configured")
    method = str(ctx.config.get("method", "POST")).upper()

    payload = {
        "execution_id": str(ctx.execution.id),
        "workflow_id": str(ctx.workflow.id),
        "trigger_event": ctx.execution.trigger_event,
        "trigger_data": ctx.execution.trigger_data,
        "customer": ctx.target.to_payload(),
        **ctx.config.get("payload", {}),
    }
    result = await ctx.channels.webhook.call(url, method, payload, ctx.config.get("headers"))
    if not result.success:
        return ActionOutcome.fail(
            f"Webhook call failed: {result.error}",
            status_code=result.status_code,
            attempts=result.attempts,
        )
    return ActionOutcome.ok(
        webhook_url=url,
        method=method,
        status_code=result.status_code,
        attempts=result.attempts,
        executed_at=ctx.now.isoformat(),
    )


@registry.register("update_customer")
async def update_customer(ctx: ActionContext) -> ActionOutcome:
    changes = ctx.config.get("updates")
    if changes is None:
        changes = {k: v for k, v in ctx.config.items() if k != "enabled"}
    applied = await ctx.channels.lookup.update_target(ctx.target.id, changes)
    return ActionOutcome.ok(
        customer_id=str(ctx.target.id), updates=applied, updated_at=ctx.now.isoformat()
    )


# Fallbacks for workflows without an action map


async def welcome(ctx: ActionContext) -> ActionOutcome:
    if not ctx.target.can_receive_email:
        return ActionOutcome.fail("Customer cannot receive email")
    if not await ctx.channels.email.send_email(ctx.target, "welcome"):
        return ActionOutcome.fail("Welcome email failed")
    return ActionOutcome.ok(welcome_email_sent=True)


async def default_review_request(ctx: ActionContext) -> ActionOutcome:
    """Prefer SMS when the customer can receive it, fall back to email."""
    sms_error = None
    if ctx.channels.sms.check_eligibility(ctx.target).eligible:
        result = await ctx.channels.sms.send_sms(ctx.target, "review_request")
        if result.success:
            return ActionOutcome.ok(review_request_method="SMS")
        sms_error = result.error_reason
        logger.warning(
            "Review request SMS failed, trying email",
            customer_id=str(ctx.target.id),
            error=sms_error,
        )

    if ctx.target.can_receive_email:
        if not await ctx.channels.email.send_email(ctx.target, "review_request"):
            return ActionOutcome.fail("Review request email failed")
        if sms_error:
            return ActionOutcome.ok(review_request_method="EMAIL", sms_error=sms_error)
        return ActionOutcome.ok(review_request_method="EMAIL")

    if sms_error:
        return ActionOutcome.fail(f"Review request SMS failed: {sms_error}")
    return ActionOutcome.fail("Customer has no reachable channel")


async def thank_you(ctx: ActionContext) -> ActionOutcome:
    if not ctx.target.can_receive_email:
        return ActionOutcome.fail("Customer cannot receive email")
    if not await ctx.channels.email.send_email(ctx.target, "thank_you"):
        return ActionOutcome.fail("Thank you email failed")
    return ActionOutcome.ok(thank_you_sent=True)


DEFAULT_ACTIONS: dict[TriggerType, tuple[str, ActionHandler]] = {
    TriggerType.CUSTOMER_CREATED: ("welcome", welcome),
    TriggerType.SERVICE_COMPLETED: ("review_request", default_review_request),
    TriggerType.REVIEW_COMPLETED: ("thank_you", thank_you),
}
