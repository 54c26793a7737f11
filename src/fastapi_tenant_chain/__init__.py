"""fastapi-tenant-chain: multi-strategy tenant resolution for FastAPI.

Quick start
-----------
.. code-block:: python

    from fastapi import FastAPI
    from fastapi_tenant_chain import ResolverSettings, TenancyManager

    settings = ResolverSettings.from_mapping({
        "resolver_chain": {"order": ["subdomain", "header"], "strict": True},
        "subdomain": {"base_domain": "example.com"},
    })

    manager = TenancyManager(settings, tenant_store=store)
    app = FastAPI(lifespan=manager.create_lifespan())
    manager.install(app)

Public API
----------
Core types
    Tenant, TenantStatus, TenantRequest, ResolutionOutcome, OutcomeKind,
    ResolutionStrategy

Configuration
    ResolverSettings, ChainConfig

Resolution
    ChainTenantResolver, ChainResolution, ResolverFactory, HeaderAllowList
    and the seven strategy resolvers

DNS cache
    DnsCache, InMemoryDnsCache, NullDnsCache, RedisDnsCache

Observability
    DiagnosticRecord, EventDispatcher, LoggingSubscriber, MetricsSubscriber

Manager, middleware, dependencies
    TenancyManager, TenancyMiddleware, TenantContext, get_current_tenant,
    get_current_tenant_optional, require_active_tenant,
    get_resolution_diagnostics

Storage
    TenantStore (ABC), InMemoryTenantStore

Exceptions
    TenancyError and all its subclasses
"""
from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

try:
    __version__: str = _pkg_version("fastapi-tenant-chain")
except PackageNotFoundError:  # running from source without install
    __version__ = "0.0.0+dev"

# Cache
from fastapi_tenant_chain.cache.dns_cache import (
    DnsCache,
    InMemoryDnsCache,
    NullDnsCache,
    RedisDnsCache,
)

# Configuration
from fastapi_tenant_chain.core.config import ChainConfig, ResolverSettings

# Context
from fastapi_tenant_chain.core.context import TenantContext

# Exceptions
from fastapi_tenant_chain.core.exceptions import (
    AmbiguousTenantResolutionError,
    ConfigurationError,
    DnsLookupError,
    TenancyError,
    TenantInactiveError,
    TenantNotFoundError,
    TenantResolutionError,
)
from fastapi_tenant_chain.core.types import (
    OutcomeKind,
    ResolutionOutcome,
    ResolutionStrategy,
    Tenant,
    TenantRequest,
    TenantStatus,
)

# Dependencies
from fastapi_tenant_chain.dependencies import (
    get_current_tenant,
    get_current_tenant_optional,
    get_resolution_diagnostics,
    require_active_tenant,
)

# Manager
from fastapi_tenant_chain.manager import TenancyManager

# Middleware
from fastapi_tenant_chain.middleware.tenancy import TenancyMiddleware

# Observability
from fastapi_tenant_chain.observability import (
    DiagnosticRecord,
    EventDispatcher,
    LoggingSubscriber,
    MetricsSubscriber,
)

# Resolution
from fastapi_tenant_chain.resolution import (
    BaseTenantResolver,
    ChainResolution,
    ChainTenantResolver,
    DnsTxtTenantResolver,
    DomainTenantResolver,
    HeaderAllowList,
    HeaderTenantResolver,
    HybridDomainSubdomainResolver,
    PathTenantResolver,
    QueryTenantResolver,
    ResolverFactory,
    SubdomainTenantResolver,
)

# Storage
from fastapi_tenant_chain.storage import InMemoryTenantStore, TenantStore

__all__ = [  # noqa: RUF022
    "__version__",
    # Types
    "Tenant",
    "TenantStatus",
    "TenantRequest",
    "ResolutionOutcome",
    "OutcomeKind",
    "ResolutionStrategy",
    # Config
    "ResolverSettings",
    "ChainConfig",
    # Resolution
    "BaseTenantResolver",
    "ChainTenantResolver",
    "ChainResolution",
    "ResolverFactory",
    "HeaderAllowList",
    "SubdomainTenantResolver",
    "PathTenantResolver",
    "HeaderTenantResolver",
    "QueryTenantResolver",
    "DomainTenantResolver",
    "HybridDomainSubdomainResolver",
    "DnsTxtTenantResolver",
    # Cache
    "DnsCache",
    "InMemoryDnsCache",
    "NullDnsCache",
    "RedisDnsCache",
    # Observability
    "DiagnosticRecord",
    "EventDispatcher",
    "LoggingSubscriber",
    "MetricsSubscriber",
    # Context
    "TenantContext",
    # Exceptions
    "TenancyError",
    "TenantNotFoundError",
    "TenantResolutionError",
    "AmbiguousTenantResolutionError",
    "TenantInactiveError",
    "ConfigurationError",
    "DnsLookupError",
    # Manager
    "TenancyManager",
    # Middleware
    "TenancyMiddleware",
    # Dependencies
    "get_current_tenant",
    "get_current_tenant_optional",
    "require_active_tenant",
    "get_resolution_diagnostics",
    # Storage
    "TenantStore",
    "InMemoryTenantStore",
]
