"""Subdomain-based tenant resolution strategy.

Resolves tenant from subdomain (e.g., acme.example.com).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi_tenant_chain.core.exceptions import ConfigurationError
from fastapi_tenant_chain.core.types import ResolutionStrategy
from fastapi_tenant_chain.resolution.base import BaseTenantResolver
from fastapi_tenant_chain.utils.validation import normalize_host

if TYPE_CHECKING:
    from collections.abc import Iterable

    from fastapi_tenant_chain.core.types import ResolutionOutcome, TenantRequest

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDED_SUBDOMAINS: frozenset[str] = frozenset({"www", "api", "admin", "mail", "ftp"})


class SubdomainTenantResolver(BaseTenantResolver):
    """Resolve tenant from subdomain.

    This resolver extracts the tenant identifier from the leftmost label of
    the request host, provided the rest of the host is exactly the
    configured base domain.

    Requirements:
    - Wildcard DNS (*.example.com → your-server)
    - SSL certificate for wildcard domain

    Example Requests:
        ```
        https://acme.example.com/dashboard
        → Tenant: acme

        https://acme.example.com:8443/dashboard
        → Tenant: acme (port stripped)

        https://www.example.com/
        → no match (excluded label)

        https://app.acme.example.com/
        → no match (nested subdomain)
        ```

    Example Usage:
        ```python
        resolver = SubdomainTenantResolver(base_domain="example.com")
        outcome = await resolver.resolve(request)
        ```

    Attributes:
        base_domain: Main domain (e.g., 'example.com')
        excluded_subdomains: Labels that never identify a tenant
    """

    strategy = ResolutionStrategy.SUBDOMAIN.value

    def __init__(
        self,
        base_domain: str,
        excluded_subdomains: Iterable[str] | None = None,
        name: str | None = None,
    ) -> None:
        """Initialize subdomain-based resolver.

        Args:
            base_domain: Main domain (a leading dot is tolerated)
            excluded_subdomains: Labels to ignore; defaults to
                ``www, api, admin, mail, ftp``
            name: Optional chain name for this instance

        Raises:
            ConfigurationError: If ``base_domain`` is empty
        """
        super().__init__(name)

        self.base_domain = normalize_host(base_domain).lstrip(".")
        if not self.base_domain:
            raise ConfigurationError("subdomain.base_domain", "base domain must not be empty")

        self.excluded_subdomains: frozenset[str] = (
            DEFAULT_EXCLUDED_SUBDOMAINS
            if excluded_subdomains is None
            else frozenset(label.strip().lower() for label in excluded_subdomains)
        )

        logger.info(
            "Initialized SubdomainTenantResolver base_domain=%r excluded=%s",
            self.base_domain,
            sorted(self.excluded_subdomains),
        )

    def _match(self, host: str) -> tuple[str | None, str]:
        """Split *host* into ``(label, reason)``; label is None when it does not qualify."""
        if not host:
            return None, "host_absent"
        label, dot, rest = host.partition(".")
        if not dot or rest != self.base_domain:
            return None, "host_mismatch"
        if label in self.excluded_subdomains:
            return None, "excluded_subdomain"
        return label, ""

    def extract_label(self, host: str) -> str | None:
        """Return the tenant label of *host*, or None if it does not qualify."""
        label, _ = self._match(normalize_host(host))
        return label

    async def resolve(self, request: TenantRequest) -> ResolutionOutcome:
        """Resolve tenant from subdomain."""
        host = normalize_host(request.host)
        label, reason = self._match(host)
        if label is None:
            if reason == "host_mismatch":
                logger.debug("Host %r is not a direct subdomain of %r", host, self.base_domain)
            return self.no_match(reason)
        return self.resolved_or_no_match(label, host=host)


__all__ = ["DEFAULT_EXCLUDED_SUBDOMAINS", "SubdomainTenantResolver"]
