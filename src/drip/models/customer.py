"""Customer model - the target entity of automation executions."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from src.drip.models.base import JSONType, utc_now


class Customer(SQLModel, table=True):
    """Customer of a tenant's business.

    Owned by the contacts service; the automation engine reads it and only
    writes the fields exposed to the ``update_customer`` action.
    """

    __tablename__ = "customers"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tenant_id: UUID = Field(index=True)
    name: str = Field(max_length=200)
    email: str | None = Field(default=None, max_length=320)
    phone: str | None = Field(default=None, max_length=32)
    sms_opt_in: bool = Field(default=False)
    opted_out: bool = Field(default=False)
    service_type: str | None = Field(default=None, max_length=100)
    industry: str | None = Field(default=None, max_length=100)
    tags: list[str] = Field(default_factory=list, sa_type=JSONType, nullable=False)
    notes: str | None = Field(default=None, max_length=2000)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def can_receive_sms(self) -> bool:
        return bool(self.phone) and self.sms_opt_in and not self.opted_out

    @property
    def can_receive_email(self) -> bool:
        return bool(self.email) and not self.opted_out

    def to_payload(self) -> dict[str, Any]:
        """Minimal customer representation for outbound payloads."""
        return {
            "id": str(self.id),
            "name": self.name,
            "email": self.email or "",
        }
