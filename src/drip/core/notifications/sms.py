"""SMS sender contract and a log-only default implementation."""

from dataclasses import dataclass
from typing import Protocol

from src.drip.core.logging import get_logger
from src.drip.models import Customer

logger = get_logger(__name__)

SMS_NOT_CONFIGURED = "SMS provider not configured"


@dataclass(frozen=True)
class SmsResult:
    success: bool
    provider_message_id: str | None = None
    error_reason: str | None = None


@dataclass(frozen=True)
class SmsEligibility:
    eligible: bool
    reason: str | None = None


class SmsSender(Protocol):
    """Delivers SMS messages. Retries, if any, are the sender's concern."""

    def check_eligibility(self, target: Customer) -> SmsEligibility: ...

    async def send_sms(self, target: Customer, message_kind: str) -> SmsResult: ...


def default_eligibility(target: Customer) -> SmsEligibility:
    """Opt-out, opt-in and phone number checks shared by every sender."""
    if target.opted_out:
        return SmsEligibility(False, "Customer opted out")
    if not target.phone:
        return SmsEligibility(False, "No phone number")
    if not target.sms_opt_in:
        return SmsEligibility(False, "Customer has not opted in to SMS")
    return SmsEligibility(True)


class LogOnlySmsSender:
    """Logs the message instead of sending it.

    Used until an SMS provider is configured. Every send is reported as
    failed so callers fall back to another channel.
    """

    def check_eligibility(self, target: Customer) -> SmsEligibility:
        return default_eligibility(target)

    async def send_sms(self, target: Customer, message_kind: str) -> SmsResult:
        eligibility = self.check_eligibility(target)
        if not eligibility.eligible:
            return SmsResult(success=False, error_reason=eligibility.reason)

        logger.warning(
            "SMS provider not configured - SMS not sent",
            customer_id=str(target.id),
            message_kind=message_kind,
        )
        return SmsResult(success=False, error_reason=SMS_NOT_CONFIGURED)
