"""DNS TXT record tenant resolution strategy.

Looks up ``_tenant.<host>`` and treats the first TXT value as the tenant
identifier::

    _tenant.acme.com.            TXT "acme"
    _tenant.client.example.com.  TXT "client_tenant"

Useful when tenants control their own DNS and should be able to point a
custom domain at the platform without a code or config change.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi_tenant_chain.cache.dns_cache import NullDnsCache
from fastapi_tenant_chain.core.exceptions import ConfigurationError, DnsLookupError
from fastapi_tenant_chain.core.types import ResolutionOutcome, ResolutionStrategy
from fastapi_tenant_chain.resolution.base import BaseTenantResolver
from fastapi_tenant_chain.resolution.dns_lookup import DnsPythonTxtLookup
from fastapi_tenant_chain.utils.validation import normalize_host

if TYPE_CHECKING:
    from fastapi_tenant_chain.cache.dns_cache import DnsCache
    from fastapi_tenant_chain.core.types import TenantRequest
    from fastapi_tenant_chain.resolution.dns_lookup import DnsTxtLookup

logger = logging.getLogger(__name__)

DNS_RECORD_PREFIX = "_tenant."
DEFAULT_TIMEOUT = 5.0
MIN_TIMEOUT = 1.0
MAX_TIMEOUT = 30.0


class DnsTxtTenantResolver(BaseTenantResolver):
    """Resolve tenant from a ``_tenant.<host>`` TXT record.

    A missing record or a value that fails the identifier grammar is a
    ``no_match``.  Transport failures become ``error`` outcomes with reason
    ``timeout``, ``servfail`` or ``dns_error`` so the chain can tell them
    apart from an honest absence.

    Args:
        lookup: TXT lookup primitive; defaults to :class:`DnsPythonTxtLookup`.
        timeout: Per-lookup bound in seconds (1 to 30).
        cache: Outcome cache keyed by query name; defaults to no caching.
        name: Optional chain name for this instance.

    Raises:
        ConfigurationError: If ``timeout`` is outside 1 to 30 seconds.
    """

    strategy = ResolutionStrategy.DNS_TXT.value

    def __init__(
        self,
        lookup: DnsTxtLookup | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        cache: DnsCache | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__(name)
        if not MIN_TIMEOUT <= timeout <= MAX_TIMEOUT:
            raise ConfigurationError(
                "dns_txt.timeout",
                f"must be between {MIN_TIMEOUT:g} and {MAX_TIMEOUT:g} seconds, got {timeout}",
            )
        self.timeout = timeout
        self.lookup: DnsTxtLookup = lookup if lookup is not None else DnsPythonTxtLookup()
        self.cache: DnsCache = cache if cache is not None else NullDnsCache()
        logger.info(
            "Initialized DnsTxtTenantResolver timeout=%ss cache=%s",
            timeout,
            type(self.cache).__name__,
        )

    @staticmethod
    def query_name_for(host: str) -> str:
        """Return the TXT query name used for *host*."""
        return DNS_RECORD_PREFIX + normalize_host(host)

    async def _lookup_outcome(self, query_name: str) -> ResolutionOutcome:
        try:
            values = await self.lookup(query_name, self.timeout)
        except DnsLookupError as exc:
            logger.warning("DNS TXT lookup failed for %s: %s", query_name, exc.reason)
            return ResolutionOutcome.error(self.name, exc.reason, query_name=query_name)

        if not values:
            return self.no_match("record_absent", query_name=query_name)

        candidate = values[0].strip().lower()
        return self.resolved_or_no_match(candidate, query_name=query_name)

    async def resolve_host(self, host: str) -> ResolutionOutcome:
        """Resolve *host* directly, consulting the cache."""
        normalized = normalize_host(host)
        if not normalized:
            return self.no_match("host_absent")

        query_name = DNS_RECORD_PREFIX + normalized
        outcome = await self.cache.get_or_resolve(
            query_name, lambda: self._lookup_outcome(query_name)
        )
        return outcome.with_strategy(self.name)

    async def resolve(self, request: TenantRequest) -> ResolutionOutcome:
        """Resolve tenant from the request host's TXT record."""
        return await self.resolve_host(request.host)

    async def identifier_from_dns(self, host: str) -> str | None:
        """Return the identifier published for *host*, or None."""
        outcome = await self.resolve_host(host)
        return outcome.identifier if outcome.is_resolved else None

    async def has_dns_txt_record(self, host: str) -> bool:
        return await self.identifier_from_dns(host) is not None


__all__ = [
    "DEFAULT_TIMEOUT",
    "DNS_RECORD_PREFIX",
    "MAX_TIMEOUT",
    "MIN_TIMEOUT",
    "DnsTxtTenantResolver",
]
