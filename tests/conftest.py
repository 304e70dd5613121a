"""Root test fixtures shared across all test types.

Database fixtures live in tests/integration/conftest.py.
"""

import os

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./drip-test.db")
os.environ.setdefault("AUTOMATION_ENGINE_ENABLED", "false")

# ruff: noqa: E402 - Imports must be after env var setup
import pytest

from src.drip.core.config import Settings, get_settings
from tests.helpers import NOW, FakeEmailSender, FakeSmsSender, FakeWebhookCaller, FixedClock

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url=os.environ["DATABASE_URL"],
        automation_engine_enabled=False,
        webhook_retry_delay_ms=0,
    )


@pytest.fixture
def email_sender() -> FakeEmailSender:
    return FakeEmailSender()


@pytest.fixture
def sms_sender() -> FakeSmsSender:
    return FakeSmsSender()


@pytest.fixture
def webhook_caller() -> FakeWebhookCaller:
    return FakeWebhookCaller()
