"""Injectable time source for the automation engine."""

from datetime import datetime
from typing import Protocol

from src.drip.models.base import utc_now


class Clock(Protocol):
    def now(self) -> datetime:
        """Current time as naive UTC."""
        ...


class SystemClock:
    def now(self) -> datetime:
        return utc_now()
