"""Starlette middleware that wires resolution into the request pipeline."""

from fastapi_tenant_chain.middleware.tenancy import TenancyMiddleware

__all__ = ["TenancyMiddleware"]
