from functools import lru_cache
from typing import Literal

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Drip Automation Engine"
    app_env: str = "development"  # development, testing, production
    debug: bool = False

    # Database
    database_url: str
    database_pool_size: int = 5
    database_max_overflow: int = 10

    # Shutdown
    shutdown_grace_period: int = 30

    # Temporal
    temporal_host: str = "localhost:7233"
    temporal_namespace: str = "default"
    temporal_task_queue: str = "automation-jobs"

    # Email (Resend)
    resend_api_key: str | None = None  # If not set, emails are logged but not sent
    email_from: str = "noreply@example.com"
    email_send_timeout_seconds: float = 10

    # Webhooks
    webhook_timeout_seconds: float = 10.0
    webhook_max_retries: int = 3
    webhook_retry_delay_ms: int = 500

    # Automation engine
    automation_engine_enabled: bool = True  # Start poller/watchdog/sweeper with the API
    automation_poll_interval_seconds: int = 60
    automation_per_tenant_polling: bool = True
    automation_immediate_window_seconds: int = 60
    automation_max_concurrency: int = 20
    automation_watchdog_interval_seconds: int = 300
    automation_stuck_timeout_minutes: int = 15
    automation_retention_days: int = 30
    automation_sweep_interval_seconds: int = 86400
    automation_business_hours_start: int = 9
    automation_business_hours_end: int = 17

    # "inprocess" runs watchdog + sweeper loops in the API process,
    # "temporal" leaves them to ExecutionMaintenanceWorkflow on a cron schedule.
    automation_maintenance_backend: Literal["inprocess", "temporal"] = "inprocess"
    automation_maintenance_schedule: str = "*/5 * * * *"

    @field_validator(
        "automation_poll_interval_seconds",
        "automation_watchdog_interval_seconds",
        "automation_sweep_interval_seconds",
        "automation_stuck_timeout_minutes",
        "automation_retention_days",
        "automation_max_concurrency",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Automation intervals, timeouts and limits must be >= 1")
        return v

    @field_validator("automation_immediate_window_seconds", "webhook_max_retries")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Value must be >= 0")
        return v

    @field_validator("automation_business_hours_end")
    @classmethod
    def validate_business_hours(cls, v: int, info: ValidationInfo) -> int:
        """Business hours must be a non-empty window inside one day."""
        start = info.data.get("automation_business_hours_start", 9)
        if not 0 <= start < v <= 24:
            raise ValueError(
                f"Invalid business hours window {start}-{v}; "
                "expected 0 <= start < end <= 24"
            )
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
