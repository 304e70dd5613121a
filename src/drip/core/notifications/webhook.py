"""Outbound webhook calls using httpx."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from src.drip.core.config import Settings, get_settings
from src.drip.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class WebhookResult:
    success: bool
    status_code: int | None = None
    attempts: int = 0
    error: str | None = None


class WebhookCaller(Protocol):
    async def call(
        self,
        url: str,
        method: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> WebhookResult: ...


class HttpxWebhookCaller:
    """Call webhooks with bounded exponential-backoff retries.

    Transport errors and 5xx responses are retried up to ``max_retries``
    times; 4xx responses fail immediately.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        settings = settings or get_settings()
        self.timeout = settings.webhook_timeout_seconds
        self.max_retries = settings.webhook_max_retries
        self.retry_delay = settings.webhook_retry_delay_ms / 1000
        self._transport = transport
        self._sleep = sleep

    async def call(
        self,
        url: str,
        method: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> WebhookResult:
        method = method.upper()
        last_error: str | None = None
        status_code: int | None = None
        attempts = 0

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for attempt in range(self.max_retries + 1):
                if attempt:
                    await self._sleep(self.retry_delay * 2 ** (attempt - 1))
                attempts = attempt + 1
                try:
                    if method in ("GET", "DELETE"):
                        response = await client.request(
                            method, url, params=_as_params(payload), headers=headers
                        )
                    else:
                        response = await client.request(method, url, json=payload, headers=headers)
                except httpx.TransportError as e:
                    last_error = f"{type(e).__name__}: {e}"
                    logger.warning(
                        "Webhook transport error", url=url, attempt=attempts, error=last_error
                    )
                    continue

                status_code = response.status_code
                if response.is_success:
                    logger.info("Webhook called", url=url, method=method, status_code=status_code)
                    return WebhookResult(True, status_code=status_code, attempts=attempts)
                last_error = f"HTTP {status_code}"
                if status_code < 500:
                    break
                logger.warning(
                    "Webhook server error", url=url, attempt=attempts, status_code=status_code
                )

        logger.error(
            "Webhook call failed", url=url, method=method, attempts=attempts, error=last_error
        )
        return WebhookResult(False, status_code=status_code, attempts=attempts, error=last_error)


def _as_params(payload: dict[str, Any]) -> dict[str, str]:
    return {key: str(value) for key, value in payload.items() if value is not None}
