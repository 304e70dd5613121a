"""FastAPI dependency injection definitions."""

from src.drip.api.dependencies.engine import Engine, get_automation_engine
from src.drip.api.dependencies.tenant import (
    ValidatedTenant,
    get_tenant_slug_from_header,
    get_validated_tenant,
)

__all__ = [
    "Engine",
    "ValidatedTenant",
    "get_automation_engine",
    "get_tenant_slug_from_header",
    "get_validated_tenant",
]
