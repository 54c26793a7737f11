"""Path-based tenant resolution strategy.

Resolves tenant from a URL path segment (e.g., ``/acme/dashboard``).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi_tenant_chain.core.exceptions import ConfigurationError
from fastapi_tenant_chain.core.types import ResolutionStrategy, TenantRequest
from fastapi_tenant_chain.resolution.base import BaseTenantResolver

if TYPE_CHECKING:
    from fastapi_tenant_chain.core.types import ResolutionOutcome

logger = logging.getLogger(__name__)


class PathTenantResolver(BaseTenantResolver):
    """Resolve tenant from URL path.

    This resolver takes the tenant identifier from one position in the URL
    path.  Empty segments (``//``) are ignored when counting.

    Example URLs (defaults):
        /acme/users → tenant: acme
        /widgets-inc/api/orders → tenant: widgets-inc

    With ``path_prefix="/tenants"``:
        /tenants/acme/users → tenant: acme
        /api/acme/users → no match

    With ``segment_index=2, one_based=True``:
        /api/acme/users → tenant: acme

    Attributes:
        path_prefix: Optional URL prefix that must precede the tenant segment
        segment_index: Position of the tenant segment after the prefix;
            ``None`` selects the first segment
        one_based: Interpret ``segment_index`` as 1-based
    """

    strategy = ResolutionStrategy.PATH.value

    def __init__(
        self,
        path_prefix: str | None = None,
        segment_index: int | None = None,
        one_based: bool = False,
        name: str | None = None,
    ) -> None:
        """Initialize path-based resolver.

        Raises:
            ConfigurationError: If ``segment_index`` is below the allowed base
        """
        super().__init__(name)
        self.prefix_segments = TenantRequest.split_path(path_prefix or "")
        self.path_prefix = "/" + "/".join(self.prefix_segments) if self.prefix_segments else ""
        self.one_based = one_based

        if segment_index is None:
            self._position = 0
        else:
            lowest = 1 if one_based else 0
            if segment_index < lowest:
                raise ConfigurationError(
                    "path.segment_index",
                    f"must be >= {lowest} when one_based={one_based}",
                )
            self._position = segment_index - lowest
        self.segment_index = segment_index

        logger.info(
            "Initialized PathTenantResolver prefix=%r position=%d",
            self.path_prefix,
            self._position,
        )

    async def resolve(self, request: TenantRequest) -> ResolutionOutcome:
        """Resolve tenant from URL path."""
        segments = request.path_segments
        prefix_len = len(self.prefix_segments)

        if segments[:prefix_len] != self.prefix_segments:
            return self.no_match("prefix_mismatch")

        remaining = segments[prefix_len:]
        if self._position >= len(remaining):
            return self.no_match("segment_absent")

        return self.resolved_or_no_match(remaining[self._position], position=self._position)


__all__ = ["PathTenantResolver"]
