"""Configuration management for fastapi-tenant-chain.

Settings mirror the YAML layout used by most deployments::

    resolver_chain:
      order: [subdomain, header, query]
      strict: true
      header_allow_list: [X-Tenant-Slug]
    subdomain:
      base_domain: example.com
    dns_txt:
      timeout: 5
      enable_cache: true

and can equally be supplied through ``TENANT_CHAIN_`` environment variables,
using ``__`` for nesting (``TENANT_CHAIN_RESOLVER_CHAIN__STRICT=true``).
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fastapi_tenant_chain.core.types import ResolutionStrategy

_BUILTIN_STRATEGIES = frozenset(s.value for s in ResolutionStrategy)


class ChainConfig(BaseModel):
    """Ordered strategy names, consensus mode and header allow-list.

    Immutable once loaded; the chain resolver holds it for its lifetime.

    Attributes:
        order: Strategy names in evaluation order
        strict: Require every resolving strategy to agree
        header_allow_list: Header names trusted for resolution; ``None``
            leaves the decision to each header strategy
        parallel: Dispatch strategies concurrently (same observable result)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    order: tuple[str, ...] = Field(
        default=(ResolutionStrategy.HEADER.value,),
        min_length=1,
        description="Strategy names in evaluation order",
    )
    strict: bool = Field(default=False, description="Require consensus among strategies")
    header_allow_list: tuple[str, ...] | None = Field(
        default=("X-Tenant-Slug",),
        description="Header names permitted to influence resolution",
    )
    parallel: bool = Field(default=False, description="Evaluate strategies concurrently")

    @field_validator("order")
    @classmethod
    def validate_order(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        names = tuple(name.strip() for name in v)
        if any(not name for name in names):
            raise ValueError("order entries must be non-empty")
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"order entries must be unique, duplicated: {duplicates}")
        return names


class SubdomainSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    base_domain: str | None = Field(default=None, description="e.g. 'example.com'")
    excluded_subdomains: tuple[str, ...] | None = Field(
        default=None,
        description="Labels that never identify a tenant (defaults to www, api, admin, mail, ftp)",
    )


class PathSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    path_prefix: str | None = Field(default=None, description="e.g. '/tenants'")
    segment_index: int | None = Field(default=None, ge=0)
    one_based: bool = False


class HeaderSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(default="X-Tenant-Slug", min_length=1)


class QuerySettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    parameter: str = Field(default="tenant", min_length=1)


class DomainSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    domain_mapping: dict[str, str] = Field(default_factory=dict)


class HybridSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    domain_mapping: dict[str, str] = Field(default_factory=dict)
    subdomain_mapping: dict[str, str] = Field(
        default_factory=dict,
        description="'*.suffix' -> 'use_subdomain_as_slug' or a fixed identifier",
    )
    excluded_subdomains: tuple[str, ...] | None = None


class DnsTxtSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    timeout: float = Field(default=5.0, ge=1, le=30, description="Lookup timeout in seconds")
    enable_cache: bool = True
    cache_ttl: int = Field(default=300, ge=0, description="Cache lifetime in seconds")
    redis_url: str | None = Field(
        default=None,
        description="Share the DNS cache across processes through Redis",
    )
    nameservers: tuple[str, ...] = Field(
        default=(),
        description="Explicit nameservers; empty uses the system resolver",
    )


class ResolverSettings(BaseSettings):
    """Main configuration for fastapi-tenant-chain.

    All settings can be configured via environment variables with the
    ``TENANT_CHAIN_`` prefix.  Supports ``.env`` file loading for local
    development.

    Example:
        ```python
        # TENANT_CHAIN_RESOLVER_CHAIN__ORDER='["subdomain", "header"]'
        # TENANT_CHAIN_SUBDOMAIN__BASE_DOMAIN=example.com
        settings = ResolverSettings()

        # Or from an already-parsed YAML tree
        settings = ResolverSettings.from_mapping(yaml.safe_load(fh))
        ```

    Attributes:
        resolver_chain: Chain order, strict mode and header allow-list
        require_tenant: Treat "no tenant" as a resolution failure
        debug_diagnostics: Include diagnostics in error responses
    """

    model_config = SettingsConfigDict(
        env_prefix="TENANT_CHAIN_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def __str__(self) -> str:
        """String representation with masked credentials."""
        return re.sub(r"://([^:/@]+):([^@]+)@", r"://\1:***@", super().__repr__())

    resolver_chain: ChainConfig = Field(default_factory=ChainConfig)

    #########################
    # Strategy Settings     #
    #########################

    subdomain: SubdomainSettings = Field(default_factory=SubdomainSettings)
    path: PathSettings = Field(default_factory=PathSettings)
    header: HeaderSettings = Field(default_factory=HeaderSettings)
    query: QuerySettings = Field(default_factory=QuerySettings)
    domain: DomainSettings = Field(default_factory=DomainSettings)
    hybrid: HybridSettings = Field(default_factory=HybridSettings)
    dns_txt: DnsTxtSettings = Field(default_factory=DnsTxtSettings)

    #########################
    # Caller Policies       #
    #########################

    require_tenant: bool = Field(
        default=False,
        description="Raise when no strategy produced a tenant",
    )
    debug_diagnostics: bool = Field(
        default=False,
        description="Expose diagnostic records in error responses (development only)",
    )
    skip_paths: tuple[str, ...] = Field(
        default=("/health", "/metrics", "/docs", "/redoc", "/openapi.json", "/favicon.ico"),
        description="URL prefixes that bypass tenant resolution",
    )

    @model_validator(mode="after")
    def validate_strategy_requirements(self) -> ResolverSettings:
        """Check that every strategy named in ``order`` is usable."""
        order = self.resolver_chain.order
        if ResolutionStrategy.SUBDOMAIN.value in order and not self.subdomain.base_domain:
            raise ValueError("subdomain strategy requires subdomain.base_domain")
        if ResolutionStrategy.DOMAIN.value in order and not self.domain.domain_mapping:
            raise ValueError("domain strategy requires domain.domain_mapping")
        if (
            ResolutionStrategy.HYBRID.value in order
            and not self.hybrid.domain_mapping
            and not self.hybrid.subdomain_mapping
        ):
            raise ValueError("hybrid strategy requires a domain or subdomain mapping")
        return self

    def unknown_strategies(self) -> list[str]:
        """Names in ``order`` that are not built-in strategies."""
        return [name for name in self.resolver_chain.order if name not in _BUILTIN_STRATEGIES]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ResolverSettings:
        """Build settings from an already-parsed configuration tree.

        Explicit values win over environment variables.
        """
        return cls(**dict(data))


__all__ = [
    "ChainConfig",
    "DnsTxtSettings",
    "DomainSettings",
    "HeaderSettings",
    "HybridSettings",
    "PathSettings",
    "QuerySettings",
    "ResolverSettings",
    "SubdomainSettings",
]
