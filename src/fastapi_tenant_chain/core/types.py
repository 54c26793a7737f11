"""Core types and data models for fastapi-tenant-chain.

Two families live here:

* the tenant record (:class:`Tenant`) materialised from the registry *after*
  resolution, and
* the resolution vocabulary shared by every strategy: the read-only
  :class:`TenantRequest` view and the :class:`ResolutionOutcome` each
  strategy returns.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field
from starlette.datastructures import Headers, QueryParams

if TYPE_CHECKING:
    from starlette.requests import HTTPConnection


class TenantStatus(StrEnum):
    """Tenant lifecycle status."""
    ACTIVE = "active"
    SUSPENDED = "suspended"
    DELETED = "deleted"
    PROVISIONING = "provisioning"


class ResolutionStrategy(StrEnum):
    """Names of the built-in resolution strategies, as used in ``order``."""
    SUBDOMAIN = "subdomain"
    PATH = "path"
    HEADER = "header"
    QUERY = "query"
    DOMAIN = "domain"
    HYBRID = "hybrid"
    DNS_TXT = "dns_txt"


class OutcomeKind(StrEnum):
    """What a single strategy invocation concluded."""
    RESOLVED = "resolved"
    NO_MATCH = "no_match"
    SKIPPED = "skipped"
    ERROR = "error"


class Tenant(BaseModel):
    """Immutable tenant record returned by the registry.

    Frozen to prevent accidental mutations; use ``model_copy(update={...})``
    to create modified versions.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique tenant identifier", min_length=1, max_length=255)
    identifier: str = Field(
        ..., description="Slug produced by resolution strategies", min_length=1, max_length=255
    )
    name: str = Field(..., description="Tenant display name", min_length=1, max_length=255)
    status: TenantStatus = Field(default=TenantStatus.ACTIVE, description="Lifecycle status")
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Flexible metadata storage"
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Creation timestamp (UTC)",
    )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tenant):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def is_active(self) -> bool:
        """Return True if tenant status is ACTIVE."""
        return self.status == TenantStatus.ACTIVE


class ResolutionOutcome(BaseModel):
    """Result of one strategy invocation.

    Exactly one of four shapes, built through the classmethod constructors:

    * ``resolved`` carries a validated ``identifier``;
    * ``no_match`` means the strategy found nothing it could use;
    * ``skipped`` means the strategy was not allowed to participate
      (e.g. its header is not allow-listed);
    * ``error`` means the strategy failed for a transport or configuration
      reason; ``reason`` names it (``timeout``, ``servfail`` ...).
    """

    model_config = ConfigDict(frozen=True)

    kind: OutcomeKind
    strategy: str
    identifier: str | None = None
    reason: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def resolved(cls, strategy: str, identifier: str, **details: Any) -> ResolutionOutcome:
        return cls(
            kind=OutcomeKind.RESOLVED,
            strategy=strategy,
            identifier=identifier,
            details=details,
        )

    @classmethod
    def no_match(cls, strategy: str, reason: str | None = None, **details: Any) -> ResolutionOutcome:
        return cls(kind=OutcomeKind.NO_MATCH, strategy=strategy, reason=reason, details=details)

    @classmethod
    def skipped(cls, strategy: str, reason: str, **details: Any) -> ResolutionOutcome:
        return cls(kind=OutcomeKind.SKIPPED, strategy=strategy, reason=reason, details=details)

    @classmethod
    def error(cls, strategy: str, reason: str, **details: Any) -> ResolutionOutcome:
        return cls(kind=OutcomeKind.ERROR, strategy=strategy, reason=reason, details=details)

    @property
    def is_resolved(self) -> bool:
        return self.kind == OutcomeKind.RESOLVED

    def with_strategy(self, strategy: str) -> ResolutionOutcome:
        """Return a copy attributed to *strategy* (used for cached outcomes)."""
        if strategy == self.strategy:
            return self
        return self.model_copy(update={"strategy": strategy})


class TenantRequest(BaseModel):
    """Read-only view of the parts of a request that strategies inspect.

    Strategies never see the framework request object, only this view, so
    they cannot mutate it and are trivially testable without an ASGI app.

    Example::

        request = TenantRequest.build(
            host="acme.example.com:8443",
            path="/api/orders",
            headers={"X-Tenant-Slug": "acme"},
            query={"tenant": "acme"},
        )
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    host: str = ""
    path_segments: tuple[str, ...] = ()
    headers: Headers = Field(default_factory=Headers)
    query_params: QueryParams = Field(default_factory=QueryParams)

    @staticmethod
    def split_path(path: str) -> tuple[str, ...]:
        """Split a URL path into its non-empty segments."""
        return tuple(segment for segment in path.split("/") if segment)

    @classmethod
    def build(
        cls,
        host: str = "",
        path: str = "/",
        headers: Mapping[str, str] | Sequence[tuple[str, str]] | None = None,
        query: Mapping[str, str] | Sequence[tuple[str, str]] | str | None = None,
    ) -> TenantRequest:
        """Build a view from plain values (CLI tools, workers, tests)."""
        if headers is None:
            header_obj = Headers()
        elif isinstance(headers, Mapping):
            header_obj = Headers(headers=dict(headers))
        else:
            header_obj = Headers(
                raw=[(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in headers]
            )
        return cls(
            host=host,
            path_segments=cls.split_path(path),
            headers=header_obj,
            query_params=QueryParams(query or ""),
        )

    @classmethod
    def from_starlette(cls, request: HTTPConnection) -> TenantRequest:
        """Build a view from a Starlette / FastAPI request or websocket."""
        host = request.headers.get("host") or request.url.netloc
        return cls(
            host=host,
            path_segments=cls.split_path(request.url.path),
            headers=request.headers,
            query_params=request.query_params,
        )


__all__ = [
    "OutcomeKind",
    "ResolutionOutcome",
    "ResolutionStrategy",
    "Tenant",
    "TenantRequest",
    "TenantStatus",
]
