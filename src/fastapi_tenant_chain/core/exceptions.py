"""Custom exceptions for fastapi-tenant-chain.

All exceptions derive from :class:`TenancyError` so callers can catch the
entire family with a single ``except TenancyError`` clause.

Hierarchy::

    TenancyError
    ├── TenantNotFoundError
    ├── TenantResolutionError
    │   └── AmbiguousTenantResolutionError
    ├── TenantInactiveError
    ├── ConfigurationError
    └── DnsLookupError

Only the chain-terminal errors (:class:`TenantResolutionError` and
:class:`AmbiguousTenantResolutionError`) ever reach the caller of
:meth:`~fastapi_tenant_chain.resolution.chain.ChainTenantResolver.resolve`.
:class:`DnsLookupError` is raised by lookup primitives and converted into an
``error`` outcome by the DNS-TXT strategy.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from fastapi_tenant_chain.observability.diagnostics import DiagnosticRecord


class TenancyError(Exception):
    """Base exception for all fastapi-tenant-chain errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details: dict[str, Any] = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | details={self.details}"
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r})"


class TenantNotFoundError(TenancyError):
    """Raised when a resolved identifier has no record in the tenant registry."""

    def __init__(
        self,
        identifier: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        message = f"Tenant not found: {identifier!r}" if identifier else "Tenant not found"
        super().__init__(message, details)
        self.identifier = identifier


class TenantResolutionError(TenancyError):
    """Raised when the chain cannot produce a tenant for a request.

    Carries the full :class:`DiagnosticRecord` so the calling layer can
    explain which strategies were tried, skipped, or failed.
    """

    def __init__(
        self,
        reason: str,
        strategy: str | None = None,
        details: dict[str, Any] | None = None,
        diagnostics: DiagnosticRecord | None = None,
    ) -> None:
        message = f"Tenant resolution failed: {reason}"
        if strategy:
            message += f" (strategy: {strategy})"
        super().__init__(message, details)
        self.reason = reason
        self.strategy = strategy
        self.diagnostics = diagnostics


class AmbiguousTenantResolutionError(TenantResolutionError):
    """Raised in strict mode when strategies disagree on the tenant.

    ``conflicts`` maps each strategy that produced an identifier to that
    identifier, in configured chain order.
    """

    def __init__(
        self,
        conflicts: Mapping[str, str],
        diagnostics: DiagnosticRecord | None = None,
    ) -> None:
        self.conflicts: dict[str, str] = dict(conflicts)
        reason = (
            "strategies {} returned different tenants: {}".format(
                ", ".join(self.conflicts),
                ", ".join(self.conflicts.values()),
            )
        )
        super().__init__(
            reason=reason,
            details={"conflicts": self.conflicts},
            diagnostics=diagnostics,
        )
        self.message = f"Ambiguous tenant resolution: {reason}"


class TenantInactiveError(TenancyError):
    """Raised when a resolved tenant is not in the ``ACTIVE`` status."""

    def __init__(
        self,
        tenant_id: str,
        status: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"Tenant {tenant_id!r} is {status}", details)
        self.tenant_id = tenant_id
        self.status = status


class ConfigurationError(TenancyError):
    """Raised when a strategy or chain is built from invalid configuration."""

    def __init__(
        self,
        parameter: str,
        reason: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"Invalid configuration for {parameter!r}: {reason}", details)
        self.parameter = parameter
        self.reason = reason


class DnsLookupError(TenancyError):
    """Raised by a TXT lookup primitive on a transport-level failure.

    ``reason`` is one of ``timeout``, ``servfail`` or ``dns_error``.
    A missing record is *not* an error; lookups return an empty list.
    """

    def __init__(
        self,
        query_name: str,
        reason: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"DNS TXT lookup for {query_name!r} failed: {reason}", details)
        self.query_name = query_name
        self.reason = reason


__all__ = [
    "AmbiguousTenantResolutionError",
    "ConfigurationError",
    "DnsLookupError",
    "TenancyError",
    "TenantInactiveError",
    "TenantNotFoundError",
    "TenantResolutionError",
]
