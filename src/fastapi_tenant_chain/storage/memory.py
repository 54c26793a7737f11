"""In-memory tenant registry for tests, demos and static deployments.

Data lives in process memory only and is lost on restart.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi_tenant_chain.core.exceptions import TenantNotFoundError
from fastapi_tenant_chain.storage.tenant_store import TenantStore

if TYPE_CHECKING:
    from collections.abc import Iterable

    from fastapi_tenant_chain.core.types import Tenant, TenantStatus

logger = logging.getLogger(__name__)


class InMemoryTenantStore(TenantStore):
    """Dictionary-backed :class:`TenantStore`.

    Example:
        ```python
        store = InMemoryTenantStore([
            Tenant(id="t-1", identifier="acme", name="Acme"),
        ])
        tenant = await store.get_by_identifier("acme")
        ```
    """

    def __init__(self, tenants: Iterable[Tenant] | None = None) -> None:
        self._tenants: dict[str, Tenant] = {}
        self._identifier_map: dict[str, str] = {}
        for tenant in tenants or ():
            self._add(tenant)
        logger.info("Initialized in-memory tenant store with %d tenants", len(self._tenants))

    def _add(self, tenant: Tenant) -> None:
        if tenant.id in self._tenants:
            raise ValueError(f"Tenant with ID {tenant.id} already exists")
        if tenant.identifier in self._identifier_map:
            raise ValueError(f"Tenant with identifier {tenant.identifier} already exists")
        self._tenants[tenant.id] = tenant
        self._identifier_map[tenant.identifier] = tenant.id

    async def get_by_id(self, tenant_id: str) -> Tenant:
        tenant = self._tenants.get(tenant_id)
        if tenant is None:
            logger.warning("Tenant not found: %s", tenant_id)
            raise TenantNotFoundError(identifier=tenant_id)
        return tenant

    async def get_by_identifier(self, identifier: str) -> Tenant:
        tenant_id = self._identifier_map.get(identifier)
        if tenant_id is None:
            logger.warning("Tenant not found by identifier: %s", identifier)
            raise TenantNotFoundError(identifier=identifier)
        return self._tenants[tenant_id]

    async def create(self, tenant: Tenant) -> Tenant:
        self._add(tenant)
        logger.info("Created tenant: %s (%s)", tenant.id, tenant.identifier)
        return tenant

    async def delete(self, tenant_id: str) -> None:
        tenant = await self.get_by_id(tenant_id)
        del self._tenants[tenant_id]
        del self._identifier_map[tenant.identifier]
        logger.info("Deleted tenant: %s", tenant_id)

    async def list(
        self,
        skip: int = 0,
        limit: int = 100,
        status: TenantStatus | None = None,
    ) -> list[Tenant]:
        tenants = sorted(self._tenants.values(), key=lambda t: t.created_at)
        if status is not None:
            tenants = [t for t in tenants if t.status == status]
        return tenants[skip : skip + limit]

    async def count(self, status: TenantStatus | None = None) -> int:
        if status is None:
            return len(self._tenants)
        return sum(1 for t in self._tenants.values() if t.status == status)

    def clear(self) -> None:
        """Remove every tenant (test helper)."""
        self._tenants.clear()
        self._identifier_map.clear()


__all__ = ["InMemoryTenantStore"]
