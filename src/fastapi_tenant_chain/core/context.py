"""Request-scoped tenant context backed by :mod:`contextvars`.

Holds the resolved :class:`Tenant` and the :class:`DiagnosticRecord` of the
chain invocation that produced it.  Each asyncio task sees its own values,
so concurrent requests never observe each other's tenant.
"""

from __future__ import annotations

from contextvars import ContextVar, Token
from typing import TYPE_CHECKING, Any

from fastapi_tenant_chain.core.exceptions import TenantNotFoundError

if TYPE_CHECKING:
    from fastapi_tenant_chain.core.types import Tenant
    from fastapi_tenant_chain.observability.diagnostics import DiagnosticRecord

_tenant_context: ContextVar[Tenant | None] = ContextVar("tenant", default=None)
_diagnostics_context: ContextVar[DiagnosticRecord | None] = ContextVar(
    "tenant_resolution_diagnostics", default=None
)


class TenantContext:
    """Async-safe accessors for the current tenant and its diagnostics.

    Example:
        ```python
        # In middleware
        TenantContext.set(tenant)
        TenantContext.set_diagnostics(result.diagnostics)

        # In a route handler or service
        tenant = TenantContext.get()

        # In a worker
        async with TenantContext.scope(tenant):
            await process_tenant_data()
        ```
    """

    @staticmethod
    def set(tenant: Tenant) -> Token[Tenant | None]:
        """Set the current tenant; returns a token for :meth:`reset`."""
        return _tenant_context.set(tenant)

    @staticmethod
    def get() -> Tenant:
        """Return the current tenant.

        Raises:
            TenantNotFoundError: If no tenant is set in the current context
        """
        tenant = _tenant_context.get()
        if tenant is None:
            raise TenantNotFoundError(details={"reason": "no tenant in current context"})
        return tenant

    @staticmethod
    def get_optional() -> Tenant | None:
        return _tenant_context.get()

    @staticmethod
    def reset(token: Token[Tenant | None]) -> None:
        _tenant_context.reset(token)

    @staticmethod
    def set_diagnostics(diagnostics: DiagnosticRecord) -> None:
        """Attach the diagnostic record of the current request's resolution."""
        _diagnostics_context.set(diagnostics)

    @staticmethod
    def get_diagnostics() -> DiagnosticRecord | None:
        return _diagnostics_context.get()

    @staticmethod
    def clear() -> None:
        """Clear tenant and diagnostics.  Called by middleware after every request."""
        _tenant_context.set(None)
        _diagnostics_context.set(None)

    class scope:
        """Temporarily set the tenant; restored on exit even after an exception.

        Usable as both ``with`` and ``async with``.
        """

        def __init__(self, tenant: Tenant) -> None:
            self.tenant = tenant
            self.token: Token[Tenant | None] | None = None

        def _enter(self) -> Tenant:
            self.token = _tenant_context.set(self.tenant)
            return self.tenant

        def _exit(self) -> None:
            if self.token is not None:
                _tenant_context.reset(self.token)
                self.token = None

        async def __aenter__(self) -> Tenant:
            return self._enter()

        async def __aexit__(self, *_: Any) -> None:
            self._exit()

        def __enter__(self) -> Tenant:
            return self._enter()

        def __exit__(self, *_: Any) -> None:
            self._exit()


__all__ = ["TenantContext"]
