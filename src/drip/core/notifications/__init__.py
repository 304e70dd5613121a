"""Channel senders used by automation actions."""

from src.drip.core.notifications.email import EmailSender, ResendEmailSender
from src.drip.core.notifications.sms import (
    LogOnlySmsSender,
    SmsEligibility,
    SmsResult,
    SmsSender,
)
from src.drip.core.notifications.webhook import HttpxWebhookCaller, WebhookCaller, WebhookResult

__all__ = [
    "EmailSender",
    "HttpxWebhookCaller",
    "LogOnlySmsSender",
    "ResendEmailSender",
    "SmsEligibility",
    "SmsResult",
    "SmsSender",
    "WebhookCaller",
    "WebhookResult",
]
