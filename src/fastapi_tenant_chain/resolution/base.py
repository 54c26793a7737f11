"""Base tenant resolver implementation.

This module provides the base class shared by every resolution strategy.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

from fastapi_tenant_chain.core.types import ResolutionOutcome
from fastapi_tenant_chain.utils.validation import validate_tenant_identifier

if TYPE_CHECKING:
    from fastapi_tenant_chain.core.types import TenantRequest

logger = logging.getLogger(__name__)


class BaseTenantResolver(ABC):
    """Abstract base class for tenant resolution strategies.

    A strategy inspects a :class:`~fastapi_tenant_chain.core.types.TenantRequest`
    and returns a :class:`~fastapi_tenant_chain.core.types.ResolutionOutcome`.
    It never raises for "not found": absence is the ``no_match`` outcome.
    Strategies raise :class:`~fastapi_tenant_chain.core.exceptions.ConfigurationError`
    only from their constructor, when handed configuration they cannot use.

    Strategies are stateless with respect to requests and are shared by every
    concurrent request, so subclasses must not keep per-request state on
    ``self``.

    Example:
        ```python
        class CookieTenantResolver(BaseTenantResolver):
            strategy = "cookie"

            async def resolve(self, request: TenantRequest) -> ResolutionOutcome:
                raw = request.headers.get("cookie", "")
                ...
                return self.resolved_or_no_match(candidate)
        ```

    Attributes:
        strategy: Default strategy name used in ``order`` and diagnostics.
        name: Name of this instance in the chain (defaults to ``strategy``).
    """

    strategy: ClassVar[str] = "custom"

    def __init__(self, name: str | None = None) -> None:
        self.name = name or self.strategy
        logger.debug("Initialized %s name=%s", self.__class__.__name__, self.name)

    @abstractmethod
    async def resolve(self, request: TenantRequest) -> ResolutionOutcome:
        """Inspect *request* and return exactly one outcome."""

    def validate_tenant_identifier(self, identifier: str) -> bool:
        """Return True if *identifier* matches the tenant slug grammar."""
        return validate_tenant_identifier(identifier)

    def resolved(self, identifier: str, **details: Any) -> ResolutionOutcome:
        return ResolutionOutcome.resolved(self.name, identifier, **details)

    def no_match(self, reason: str | None = None, **details: Any) -> ResolutionOutcome:
        return ResolutionOutcome.no_match(self.name, reason, **details)

    def resolved_or_no_match(self, candidate: str | None, **details: Any) -> ResolutionOutcome:
        """Validate *candidate* and wrap it in the matching outcome."""
        if not candidate:
            return self.no_match("absent")
        if not self.validate_tenant_identifier(candidate):
            logger.debug("%s rejected invalid identifier %r", self.name, candidate[:64])
            return self.no_match("invalid_identifier")
        return self.resolved(candidate, **details)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


__all__ = ["BaseTenantResolver"]
