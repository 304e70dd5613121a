"""Tenant header extraction and validation dependencies."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from src.drip.core.db import get_session
from src.drip.models import Tenant
from src.drip.repositories import TenantRepository


async def get_tenant_slug_from_header(
    x_tenant_slug: Annotated[str | None, Header()] = None,
) -> str:
    """Extract tenant slug from header."""
    if not x_tenant_slug:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-Slug header is required",
        )
    return x_tenant_slug


async def get_validated_tenant(
    request: Request,
    tenant_slug: Annotated[str, Depends(get_tenant_slug_from_header)],
) -> Tenant:
    """Validate tenant exists and is active."""
    async with get_session(getattr(request.app.state, "session_factory", None)) as session:
        tenant = await TenantRepository(session).get_by_slug(tenant_slug)

    if tenant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tenant not found",
        )

    if not tenant.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Tenant is inactive",
        )

    return tenant


ValidatedTenant = Annotated[Tenant, Depends(get_validated_tenant)]
