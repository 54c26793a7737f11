"""Tenant registry interface and in-memory implementation."""

from fastapi_tenant_chain.storage.memory import InMemoryTenantStore
from fastapi_tenant_chain.storage.tenant_store import TenantStore

__all__ = ["InMemoryTenantStore", "TenantStore"]
