"""Test doubles for the engine's collaborators."""

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from src.drip.core.notifications import SmsEligibility, SmsResult, WebhookResult
from src.drip.core.notifications.sms import default_eligibility
from src.drip.models import AutomationExecution, Customer, LogLevel

# Monday, 10:00 UTC
NOW = datetime(2026, 3, 2, 10, 0, 0)


class FixedClock:
    """Clock pinned to an explicit instant; move it with :meth:`advance`."""

    def __init__(self, at: datetime):
        self._at = at

    def now(self) -> datetime:
        return self._at

    def set(self, at: datetime) -> None:
        self._at = at

    def advance(self, **delta: float) -> datetime:
        self._at = self._at + timedelta(**delta)
        return self._at


class FakeEmailSender:
    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent: list[tuple[UUID, str]] = []

    async def send_email(self, target: Customer, template_ref: str) -> bool:
        self.sent.append((target.id, template_ref))
        return self.succeed


class FakeSmsSender:
    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent: list[tuple[UUID, str]] = []

    def check_eligibility(self, target: Customer) -> SmsEligibility:
        return default_eligibility(target)

    async def send_sms(self, target: Customer, message_kind: str) -> SmsResult:
        self.sent.append((target.id, message_kind))
        if not self.succeed:
            return SmsResult(success=False, error_reason="carrier rejected")
        return SmsResult(success=True, provider_message_id=f"SM{len(self.sent)}")


class FakeWebhookCaller:
    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.calls: list[dict[str, Any]] = []

    async def call(
        self,
        url: str,
        method: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> WebhookResult:
        self.calls.append({"url": url, "method": method, "payload": payload, "headers": headers})
        if not self.succeed:
            return WebhookResult(False, status_code=500, attempts=4, error="HTTP 500")
        return WebhookResult(True, status_code=200, attempts=1)


class FakeLookup:
    """In-memory TargetLookup for tests that never touch the database."""

    def __init__(self, *entities: Any):
        self.entities = {e.id: e for e in entities}
        self.updates: list[tuple[UUID, dict[str, Any]]] = []

    async def get_target(self, target_id: UUID) -> Customer | None:
        entity = self.entities.get(target_id)
        return entity if isinstance(entity, Customer) else None

    async def get_workflow(self, workflow_id: UUID) -> Any:
        return self.entities.get(workflow_id)

    async def update_target(self, target_id: UUID, changes: dict[str, Any]) -> dict[str, Any]:
        self.updates.append((target_id, changes))
        return changes


class FakeExecutionLog:
    """Stands in for ExecutionStore where only log entries are written."""

    def __init__(self):
        self.entries: list[tuple[UUID, LogLevel, str]] = []

    async def log(
        self,
        execution: AutomationExecution,
        level: LogLevel,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.entries.append((execution.id, level, message))
