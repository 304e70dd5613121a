"""Email sender using Resend API."""

import asyncio
import html
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol

import resend

from src.drip.core.config import Settings, get_settings
from src.drip.core.logging import get_logger
from src.drip.models import Customer

logger = get_logger(__name__)

# Thread pool for email sending with timeout support
_email_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="email_sender")

_BODY_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; "
    "line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;"
)

_SUBJECTS = {
    "review_request": "How did we do?",
    "follow_up": "Following up on your recent visit",
    "welcome": "Welcome!",
    "thank_you": "Thank you for your review",
}


class EmailSender(Protocol):
    """Delivers one templated email to a customer."""

    async def send_email(self, target: Customer, template_ref: str) -> bool: ...


class ResendEmailSender:
    """Send emails through Resend.

    Without an API key the email is logged instead of sent and reported
    as delivered, so local environments run workflows end to end.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    async def send_email(self, target: Customer, template_ref: str) -> bool:
        if not target.email:
            logger.warning("Customer has no email address", customer_id=str(target.id))
            return False

        if not self.settings.resend_api_key:
            logger.warning(
                "RESEND_API_KEY not set - email not sent",
                to=target.email,
                email_type=template_ref,
            )
            return True

        resend.api_key = self.settings.resend_api_key
        payload = {
            "from": self.settings.email_from,
            "to": [target.email],
            "subject": _SUBJECTS.get(template_ref, self.settings.app_name),
            "html": _get_email_html(target.name, template_ref),
        }

        try:
            future = _email_executor.submit(resend.Emails.send, payload)
            await asyncio.wait_for(
                asyncio.wrap_future(future),
                timeout=self.settings.email_send_timeout_seconds,
            )
        except TimeoutError:
            logger.error(
                "Email send timed out",
                to=target.email,
                timeout=self.settings.email_send_timeout_seconds,
            )
            return False
        except Exception as e:
            logger.error("Failed to send email", to=target.email, error=str(e))
            return False

        logger.info("Email sent", to=target.email, email_type=template_ref)
        return True


def _get_email_html(customer_name: str, template_ref: str) -> str:
    """Minimal HTML shell; bodies are owned by the template service."""
    safe_name = html.escape(customer_name)
    safe_ref = html.escape(template_ref)
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="{_BODY_STYLE}" data-template="{safe_ref}">
    <p>Hi {safe_name},</p>
</body>
</html>"""
