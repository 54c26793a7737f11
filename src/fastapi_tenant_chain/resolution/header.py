"""Header-based tenant resolution strategy.

Resolves the tenant from an HTTP header (default: ``X-Tenant-Slug``).
Because headers are fully client-controlled, the strategy only participates
when its header name is present in the configured
:class:`~fastapi_tenant_chain.resolution.allow_list.HeaderAllowList`.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi_tenant_chain.core.exceptions import ConfigurationError
from fastapi_tenant_chain.core.types import ResolutionOutcome, ResolutionStrategy
from fastapi_tenant_chain.resolution.allow_list import HeaderAllowList
from fastapi_tenant_chain.resolution.base import BaseTenantResolver

if TYPE_CHECKING:
    from collections.abc import Iterable

    from fastapi_tenant_chain.core.types import TenantRequest

logger = logging.getLogger(__name__)

HEADER_NOT_ALLOWED = "header_not_allowed"


class HeaderTenantResolver(BaseTenantResolver):
    """Resolve tenant from an HTTP header.

    Use cases
    ---------
    * API clients and SDKs.
    * Microservice-to-microservice calls behind a gateway that sets the header.

    Example request::

        GET /api/users HTTP/1.1
        Host: api.example.com
        X-Tenant-Slug: acme

    Example usage::

        resolver = HeaderTenantResolver(
            header_name="X-Tenant-Slug",
            allow_list=["X-Tenant-Slug"],
        )
        outcome = await resolver.resolve(request)

    Parameters
    ----------
    header_name:
        Name of the HTTP header that carries the tenant identifier.
        Matching is case-insensitive, standard HTTP behaviour.
    allow_list:
        Header names trusted for resolution.  When omitted, only
        ``header_name`` itself is trusted.  If ``header_name`` is not in the
        list the strategy always returns a ``skipped`` outcome, even when the
        header is present with a valid value.
    """

    strategy = ResolutionStrategy.HEADER.value

    def __init__(
        self,
        header_name: str = "X-Tenant-Slug",
        allow_list: HeaderAllowList | Iterable[str] | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__(name)
        if not header_name or not header_name.strip():
            raise ConfigurationError("header.name", "header name must not be empty")
        self.header_name = header_name.strip()
        if allow_list is None:
            self.allow_list = HeaderAllowList.only(self.header_name)
        elif isinstance(allow_list, HeaderAllowList):
            self.allow_list = allow_list
        else:
            self.allow_list = HeaderAllowList(allow_list)
        logger.info(
            "HeaderTenantResolver header=%r allowed=%s",
            self.header_name,
            self.is_allowed,
        )

    @property
    def is_allowed(self) -> bool:
        """Whether this strategy's header passes the allow-list."""
        return self.allow_list.permits(self.header_name)

    def skipped_outcome(self) -> ResolutionOutcome:
        return ResolutionOutcome.skipped(
            self.name, HEADER_NOT_ALLOWED, header_name=self.header_name
        )

    async def resolve(self, request: TenantRequest) -> ResolutionOutcome:
        """Resolve tenant from the configured header.

        Returns
        -------
        ResolutionOutcome
            ``skipped`` if the header is not allow-listed, ``no_match`` if it
            is absent, empty or malformed, otherwise ``resolved``.
        """
        if not self.is_allowed:
            logger.debug("Header %r is not allow-listed; skipping", self.header_name)
            return self.skipped_outcome()

        value = request.headers.get(self.header_name)
        if value is None:
            return self.no_match("header_absent")

        value = value.strip()
        if not value:
            return self.no_match("header_empty")

        logger.debug("Resolving tenant from header %r", self.header_name)
        return self.resolved_or_no_match(value, header_name=self.header_name)


__all__ = ["HEADER_NOT_ALLOWED", "HeaderTenantResolver"]
