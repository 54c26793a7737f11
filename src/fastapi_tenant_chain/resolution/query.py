"""Query-parameter tenant resolution strategy.

Resolves tenant from a query parameter (e.g., ``/dashboard?tenant=acme``).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi_tenant_chain.core.exceptions import ConfigurationError
from fastapi_tenant_chain.core.types import ResolutionStrategy
from fastapi_tenant_chain.resolution.base import BaseTenantResolver

if TYPE_CHECKING:
    from fastapi_tenant_chain.core.types import ResolutionOutcome, TenantRequest

logger = logging.getLogger(__name__)


class QueryTenantResolver(BaseTenantResolver):
    """Resolve tenant from a query parameter.

    Convenient for previews, support links and local development.  The first
    value wins when the parameter is repeated.

    Attributes:
        parameter_name: Query parameter carrying the tenant identifier
    """

    strategy = ResolutionStrategy.QUERY.value

    def __init__(self, parameter_name: str = "tenant", name: str | None = None) -> None:
        """Initialize query-parameter resolver.

        Args:
            parameter_name: Query parameter carrying the tenant identifier
            name: Optional chain name for this instance
        """
        super().__init__(name)
        if not parameter_name:
            raise ConfigurationError("query.parameter", "parameter name must not be empty")
        self.parameter_name = parameter_name
        logger.info("Initialized QueryTenantResolver with parameter=%r", parameter_name)

    async def resolve(self, request: TenantRequest) -> ResolutionOutcome:
        """Resolve tenant from the query string."""
        # QueryParams.get() returns the last value of a repeated key
        values = request.query_params.getlist(self.parameter_name)
        value = values[0] if values else None
        if value is None or not value.strip():
            return self.no_match("parameter_absent")
        return self.resolved_or_no_match(value.strip(), parameter=self.parameter_name)


__all__ = ["QueryTenantResolver"]
