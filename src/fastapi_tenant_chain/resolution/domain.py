"""Exact-domain tenant resolution strategy.

Maps whole host names to tenants (``acme.com`` → ``acme``), for tenants that
bring their own custom domain.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import TYPE_CHECKING

from fastapi_tenant_chain.core.exceptions import ConfigurationError
from fastapi_tenant_chain.core.types import ResolutionStrategy
from fastapi_tenant_chain.resolution.base import BaseTenantResolver
from fastapi_tenant_chain.utils.validation import normalize_host, validate_tenant_identifier

if TYPE_CHECKING:
    from collections.abc import Mapping

    from fastapi_tenant_chain.core.types import ResolutionOutcome, TenantRequest

logger = logging.getLogger(__name__)


def build_domain_mapping(mapping: Mapping[str, str], parameter: str) -> Mapping[str, str]:
    """Normalise host keys and validate identifiers of a static domain map.

    Returns a read-only view so the map can be shared across requests
    without locking.

    Raises:
        ConfigurationError: On an empty host or an invalid identifier
    """
    normalized: dict[str, str] = {}
    for raw_host, identifier in mapping.items():
        host = normalize_host(raw_host)
        if not host:
            raise ConfigurationError(parameter, f"empty host in mapping: {raw_host!r}")
        if not validate_tenant_identifier(identifier):
            raise ConfigurationError(
                parameter, f"invalid tenant identifier {identifier!r} for host {host!r}"
            )
        normalized[host] = identifier
    return MappingProxyType(normalized)


class DomainTenantResolver(BaseTenantResolver):
    """Resolve tenant by exact host lookup.

    Example Usage:
        ```python
        resolver = DomainTenantResolver(
            domain_mapping={"acme.com": "acme", "shop.globex.io": "globex"},
        )
        outcome = await resolver.resolve(request)   # Host: ACME.com:443 → acme
        ```

    Attributes:
        domain_mapping: Read-only normalised host → identifier map
    """

    strategy = ResolutionStrategy.DOMAIN.value

    def __init__(self, domain_mapping: Mapping[str, str], name: str | None = None) -> None:
        super().__init__(name)
        self.domain_mapping = build_domain_mapping(domain_mapping, "domain.domain_mapping")
        logger.info("Initialized DomainTenantResolver with %d domains", len(self.domain_mapping))

    def is_domain_mapped(self, domain: str) -> bool:
        return normalize_host(domain) in self.domain_mapping

    def identifier_for_domain(self, domain: str) -> str | None:
        return self.domain_mapping.get(normalize_host(domain))

    async def resolve(self, request: TenantRequest) -> ResolutionOutcome:
        """Resolve tenant from the request host."""
        host = normalize_host(request.host)
        if not host:
            return self.no_match("host_absent")

        identifier = self.domain_mapping.get(host)
        if identifier is None:
            return self.no_match("domain_not_mapped")
        return self.resolved(identifier, host=host)


__all__ = ["DomainTenantResolver", "build_domain_mapping"]
