"""Tenant registry interface.

Resolution only produces an identifier; the registry turns it into a
:class:`~fastapi_tenant_chain.core.types.Tenant`.  Persistence is out of
scope for this package, so only the lookup contract and an in-memory
implementation live here.  Applications plug their own database-backed
store in through :class:`TenantStore`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from fastapi_tenant_chain.core.exceptions import TenantNotFoundError

if TYPE_CHECKING:
    from fastapi_tenant_chain.core.types import Tenant, TenantStatus


class TenantStore(ABC):
    """Abstract tenant registry.

    Example:
        ```python
        class SQLTenantStore(TenantStore):
            async def get_by_identifier(self, identifier: str) -> Tenant:
                row = await session.scalar(select(TenantRow).filter_by(slug=identifier))
                if row is None:
                    raise TenantNotFoundError(identifier=identifier)
                return row.to_tenant()
            ...
        ```
    """

    @abstractmethod
    async def get_by_identifier(self, identifier: str) -> Tenant:
        """Return the tenant whose slug is *identifier*.

        Raises:
            TenantNotFoundError: If no such tenant exists
        """

    @abstractmethod
    async def get_by_id(self, tenant_id: str) -> Tenant:
        """Return the tenant with primary key *tenant_id*.

        Raises:
            TenantNotFoundError: If no such tenant exists
        """

    @abstractmethod
    async def create(self, tenant: Tenant) -> Tenant:
        """Register *tenant*.

        Raises:
            ValueError: If the id or identifier is already taken
        """

    @abstractmethod
    async def delete(self, tenant_id: str) -> None:
        """Remove a tenant.

        Raises:
            TenantNotFoundError: If no such tenant exists
        """

    @abstractmethod
    async def list(
        self,
        skip: int = 0,
        limit: int = 100,
        status: TenantStatus | None = None,
    ) -> list[Tenant]:
        """Return tenants ordered by creation, optionally filtered by status."""

    async def exists(self, identifier: str) -> bool:
        try:
            await self.get_by_identifier(identifier)
        except TenantNotFoundError:
            return False
        return True

    async def count(self, status: TenantStatus | None = None) -> int:
        return len(await self.list(skip=0, limit=2**31, status=status))


__all__ = ["TenantStore"]
