"""Hybrid domain + subdomain tenant resolution strategy.

Tries an exact domain map first, then wildcard subdomain patterns in
declaration order.  Suited to platforms where most tenants live on
``<tenant>.platform.com`` while a few own custom domains.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from fastapi_tenant_chain.core.exceptions import ConfigurationError
from fastapi_tenant_chain.core.types import ResolutionStrategy
from fastapi_tenant_chain.resolution.base import BaseTenantResolver
from fastapi_tenant_chain.resolution.domain import build_domain_mapping
from fastapi_tenant_chain.utils.validation import (
    normalize_host,
    validate_domain_pattern,
    validate_tenant_identifier,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from fastapi_tenant_chain.core.types import ResolutionOutcome, TenantRequest

logger = logging.getLogger(__name__)

USE_SUBDOMAIN_AS_SLUG = "use_subdomain_as_slug"

DEFAULT_HYBRID_EXCLUDED_SUBDOMAINS: frozenset[str] = frozenset(
    {"www", "api", "admin", "mail", "ftp", "cdn", "static"}
)


@dataclass(frozen=True)
class SubdomainPattern:
    """One compiled ``*.<suffix>`` pattern and what to do on a match.

    ``fixed_identifier`` is None for ``use_subdomain_as_slug`` patterns.
    """

    pattern: str
    suffix: str
    regex: re.Pattern[str]
    fixed_identifier: str | None

    @classmethod
    def compile(cls, pattern: str, action: str) -> SubdomainPattern:
        normalized = pattern.strip().lower()
        if not validate_domain_pattern(normalized):
            raise ConfigurationError(
                "hybrid.subdomain_mapping",
                f"pattern {pattern!r} must look like '*.example.com' with a single wildcard",
            )
        suffix = normalized[2:]
        # [^.]+ captures exactly one label, so nested subdomains never match.
        regex = re.compile(r"^([^.]+)\." + re.escape(suffix) + r"$")

        if action == USE_SUBDOMAIN_AS_SLUG:
            fixed = None
        elif validate_tenant_identifier(action):
            fixed = action
        else:
            raise ConfigurationError(
                "hybrid.subdomain_mapping",
                f"action for {pattern!r} must be {USE_SUBDOMAIN_AS_SLUG!r} "
                f"or a tenant identifier, got {action!r}",
            )
        return cls(pattern=normalized, suffix=suffix, regex=regex, fixed_identifier=fixed)

    def match(self, host: str) -> str | None:
        """Return the captured label if *host* matches, else None."""
        m = self.regex.match(host)
        return m.group(1) if m else None


class HybridDomainSubdomainResolver(BaseTenantResolver):
    """Resolve tenant by exact domain, then by wildcard subdomain pattern.

    Example configuration::

        resolver = HybridDomainSubdomainResolver(
            domain_mapping={"acme-client.com": "acme"},
            subdomain_mapping={
                "*.myplatform.com": "use_subdomain_as_slug",
                "*.shared.net": "shared_tenant",
            },
        )

    * ``acme-client.com`` → ``acme`` (exact domain)
    * ``beta.myplatform.com`` → ``beta`` (captured label)
    * ``anything.shared.net`` → ``shared_tenant`` (fixed identifier)
    * ``www.myplatform.com`` → no match (excluded label)
    * ``a.b.myplatform.com`` → no match (nested subdomain)

    The first matching pattern decides; an excluded label does not fall
    through to later patterns.
    """

    strategy = ResolutionStrategy.HYBRID.value

    def __init__(
        self,
        domain_mapping: Mapping[str, str] | None = None,
        subdomain_mapping: Mapping[str, str] | None = None,
        excluded_subdomains: Iterable[str] | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__(name)
        self.domain_mapping = build_domain_mapping(
            domain_mapping or {}, "hybrid.domain_mapping"
        )
        self.patterns: tuple[SubdomainPattern, ...] = tuple(
            SubdomainPattern.compile(pattern, action)
            for pattern, action in (subdomain_mapping or {}).items()
        )
        self.excluded_subdomains: frozenset[str] = (
            DEFAULT_HYBRID_EXCLUDED_SUBDOMAINS
            if excluded_subdomains is None
            else frozenset(label.strip().lower() for label in excluded_subdomains)
        )
        logger.info(
            "Initialized HybridDomainSubdomainResolver domains=%d patterns=%s",
            len(self.domain_mapping),
            [p.pattern for p in self.patterns],
        )

    def is_domain_mapped(self, domain: str) -> bool:
        return normalize_host(domain) in self.domain_mapping

    def matches_subdomain_pattern(self, host: str) -> bool:
        host = normalize_host(host)
        return any(p.match(host) is not None for p in self.patterns)

    async def resolve(self, request: TenantRequest) -> ResolutionOutcome:
        """Resolve tenant from the request host."""
        host = normalize_host(request.host)
        if not host:
            return self.no_match("host_absent")

        identifier = self.domain_mapping.get(host)
        if identifier is not None:
            return self.resolved(identifier, host=host, matched="domain")

        for pattern in self.patterns:
            label = pattern.match(host)
            if label is None:
                continue
            if label in self.excluded_subdomains:
                logger.debug("Label %r excluded for pattern %r", label, pattern.pattern)
                return self.no_match("excluded_subdomain", pattern=pattern.pattern)
            if pattern.fixed_identifier is not None:
                return self.resolved(
                    pattern.fixed_identifier, host=host, matched=pattern.pattern
                )
            return self.resolved_or_no_match(label, host=host, matched=pattern.pattern)

        return self.no_match("no_pattern_matched")


__all__ = [
    "DEFAULT_HYBRID_EXCLUDED_SUBDOMAINS",
    "USE_SUBDOMAIN_AS_SLUG",
    "HybridDomainSubdomainResolver",
    "SubdomainPattern",
]
