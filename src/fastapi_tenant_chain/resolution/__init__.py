"""Tenant resolution strategies and the chain that reconciles them.

Available strategies:
- Subdomain: leftmost label of ``<tenant>.example.com``
- Path: a configured URL path segment
- Header: an allow-listed HTTP header (X-Tenant-Slug)
- Query: a query parameter (``?tenant=acme``)
- Domain: exact custom-domain map
- Hybrid: custom-domain map, then ``*.suffix`` patterns
- DNS-TXT: ``_tenant.<host>`` TXT record

Example:
    ```python
    from fastapi_tenant_chain.resolution import (
        ChainTenantResolver,
        HeaderTenantResolver,
        SubdomainTenantResolver,
    )

    chain = ChainTenantResolver(
        [SubdomainTenantResolver("example.com"), HeaderTenantResolver()],
        strict=True,
    )
    result = await chain.resolve(tenant_request)
    ```
"""

from fastapi_tenant_chain.resolution.allow_list import HeaderAllowList
from fastapi_tenant_chain.resolution.base import BaseTenantResolver
from fastapi_tenant_chain.resolution.chain import ChainResolution, ChainTenantResolver
from fastapi_tenant_chain.resolution.dns_lookup import DnsPythonTxtLookup, DnsTxtLookup
from fastapi_tenant_chain.resolution.dns_txt import DnsTxtTenantResolver
from fastapi_tenant_chain.resolution.domain import DomainTenantResolver
from fastapi_tenant_chain.resolution.factory import ResolverFactory
from fastapi_tenant_chain.resolution.header import HeaderTenantResolver
from fastapi_tenant_chain.resolution.hybrid import HybridDomainSubdomainResolver
from fastapi_tenant_chain.resolution.path import PathTenantResolver
from fastapi_tenant_chain.resolution.query import QueryTenantResolver
from fastapi_tenant_chain.resolution.subdomain import SubdomainTenantResolver

__all__ = [
    "BaseTenantResolver",
    "ChainResolution",
    "ChainTenantResolver",
    "DnsPythonTxtLookup",
    "DnsTxtLookup",
    "DnsTxtTenantResolver",
    "DomainTenantResolver",
    "HeaderAllowList",
    "HeaderTenantResolver",
    "HybridDomainSubdomainResolver",
    "PathTenantResolver",
    "QueryTenantResolver",
    "ResolverFactory",
    "SubdomainTenantResolver",
]
