"""FastAPI dependency-injection helpers for tenant-aware routes."""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from fastapi_tenant_chain.core.context import TenantContext
from fastapi_tenant_chain.core.exceptions import TenantNotFoundError
from fastapi_tenant_chain.core.types import Tenant
from fastapi_tenant_chain.observability.diagnostics import DiagnosticRecord


def get_current_tenant() -> Tenant:
    """Return the tenant set by the middleware, or respond 404.

    Example
    -------
    .. code-block:: python

        @app.get("/users")
        async def list_users(tenant: Annotated[Tenant, Depends(get_current_tenant)]):
            return {"tenant": tenant.identifier}
    """
    try:
        return TenantContext.get()
    except TenantNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No tenant resolved for this request",
        ) from exc


def get_current_tenant_optional() -> Tenant | None:
    """Return the current tenant, or None for tenant-agnostic routes."""
    return TenantContext.get_optional()


async def require_active_tenant(
    tenant: Annotated[Tenant, Depends(get_current_tenant)],
) -> Tenant:
    """Return the current tenant, raising 403 if inactive.

    The middleware already rejects inactive tenants; use this on routes
    that run under a different skip-path configuration.
    """
    if not tenant.is_active():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Tenant {tenant.identifier!r} is {tenant.status.value}",
        )
    return tenant


def get_resolution_diagnostics(request: Request) -> DiagnosticRecord | None:
    """Return the diagnostic record of this request's resolution, if any.

    Useful for "which strategy picked my tenant?" debug endpoints.
    """
    diagnostics = getattr(request.state, "tenant_diagnostics", None)
    if diagnostics is None:
        diagnostics = TenantContext.get_diagnostics()
    return diagnostics


__all__ = [
    "get_current_tenant",
    "get_current_tenant_optional",
    "get_resolution_diagnostics",
    "require_active_tenant",
]
