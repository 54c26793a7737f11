"""Factory for creating strategy resolvers and the chain from settings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi_tenant_chain.cache.dns_cache import InMemoryDnsCache, NullDnsCache, RedisDnsCache
from fastapi_tenant_chain.core.exceptions import ConfigurationError
from fastapi_tenant_chain.core.types import ResolutionStrategy
from fastapi_tenant_chain.resolution.chain import ChainTenantResolver

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from fastapi_tenant_chain.cache.dns_cache import DnsCache
    from fastapi_tenant_chain.core.config import ResolverSettings
    from fastapi_tenant_chain.observability.events import EventDispatcher
    from fastapi_tenant_chain.resolution.base import BaseTenantResolver
    from fastapi_tenant_chain.resolution.dns_lookup import DnsTxtLookup

logger = logging.getLogger(__name__)

_BUILTIN_STRATEGIES = frozenset(s.value for s in ResolutionStrategy)


class ResolverFactory:
    """Factory for creating tenant resolver instances."""

    @staticmethod
    def create_cache(settings: ResolverSettings) -> DnsCache:
        """Create the DNS outcome cache selected by ``dns_txt`` settings."""
        dns = settings.dns_txt
        if not dns.enable_cache:
            return NullDnsCache()
        if dns.redis_url:
            return RedisDnsCache(redis_url=dns.redis_url, ttl=dns.cache_ttl)
        return InMemoryDnsCache(ttl=dns.cache_ttl)

    @staticmethod
    def create(
        strategy: ResolutionStrategy | str,
        settings: ResolverSettings,
        *,
        lookup: DnsTxtLookup | None = None,
        cache: DnsCache | None = None,
    ) -> BaseTenantResolver:
        """Create one built-in strategy resolver.

        Raises:
            ConfigurationError: For an unknown strategy or unusable settings
        """
        from fastapi_tenant_chain.resolution.dns_txt import DnsTxtTenantResolver
        from fastapi_tenant_chain.resolution.domain import DomainTenantResolver
        from fastapi_tenant_chain.resolution.header import HeaderTenantResolver
        from fastapi_tenant_chain.resolution.hybrid import HybridDomainSubdomainResolver
        from fastapi_tenant_chain.resolution.path import PathTenantResolver
        from fastapi_tenant_chain.resolution.query import QueryTenantResolver
        from fastapi_tenant_chain.resolution.subdomain import SubdomainTenantResolver

        def _dns_txt() -> BaseTenantResolver:
            from fastapi_tenant_chain.resolution.dns_lookup import DnsPythonTxtLookup

            return DnsTxtTenantResolver(
                lookup=(
                    lookup
                    if lookup is not None
                    else DnsPythonTxtLookup(settings.dns_txt.nameservers or None)
                ),
                timeout=settings.dns_txt.timeout,
                cache=cache if cache is not None else ResolverFactory.create_cache(settings),
            )

        resolvers: dict[ResolutionStrategy, Callable[[], BaseTenantResolver]] = {
            ResolutionStrategy.SUBDOMAIN: lambda: SubdomainTenantResolver(
                base_domain=settings.subdomain.base_domain or "",
                excluded_subdomains=settings.subdomain.excluded_subdomains,
            ),
            ResolutionStrategy.PATH: lambda: PathTenantResolver(
                path_prefix=settings.path.path_prefix,
                segment_index=settings.path.segment_index,
                one_based=settings.path.one_based,
            ),
            ResolutionStrategy.HEADER: lambda: HeaderTenantResolver(
                header_name=settings.header.name,
                allow_list=settings.resolver_chain.header_allow_list,
            ),
            ResolutionStrategy.QUERY: lambda: QueryTenantResolver(
                parameter_name=settings.query.parameter,
            ),
            ResolutionStrategy.DOMAIN: lambda: DomainTenantResolver(
                domain_mapping=settings.domain.domain_mapping,
            ),
            ResolutionStrategy.HYBRID: lambda: HybridDomainSubdomainResolver(
                domain_mapping=settings.hybrid.domain_mapping,
                subdomain_mapping=settings.hybrid.subdomain_mapping,
                excluded_subdomains=settings.hybrid.excluded_subdomains,
            ),
            ResolutionStrategy.DNS_TXT: _dns_txt,
        }

        try:
            key = ResolutionStrategy(strategy)
        except ValueError as exc:
            raise ConfigurationError(
                "resolver_chain.order", f"unsupported resolution strategy: {strategy!r}"
            ) from exc
        return resolvers[key]()

    @staticmethod
    def create_chain(
        settings: ResolverSettings,
        *,
        lookup: DnsTxtLookup | None = None,
        cache: DnsCache | None = None,
        dispatcher: EventDispatcher | None = None,
        custom_resolvers: Mapping[str, BaseTenantResolver] | None = None,
    ) -> ChainTenantResolver:
        """Create the chain for ``settings.resolver_chain.order``.

        Built-in names are constructed from settings; any other name must be
        supplied through ``custom_resolvers`` or it is reported as
        ``not_configured`` on every request.
        """
        custom = dict(custom_resolvers or {})
        resolvers: dict[str, BaseTenantResolver] = {}
        for name in settings.resolver_chain.order:
            if name in custom:
                resolvers[name] = custom[name]
            elif name in _BUILTIN_STRATEGIES:
                resolvers[name] = ResolverFactory.create(
                    name, settings, lookup=lookup, cache=cache
                )
            else:
                logger.warning("No resolver available for chain entry %r", name)

        return ChainTenantResolver.from_config(
            settings.resolver_chain, resolvers, dispatcher=dispatcher
        )


__all__ = ["ResolverFactory"]
