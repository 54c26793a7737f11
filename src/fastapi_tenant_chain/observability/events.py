"""Resolution events and the dispatcher that fans them out.

The chain never talks to a logger or metrics backend about *outcomes*
directly; it emits events and lets subscribers decide what to record.
A subscriber that raises is logged and ignored so observability can never
change a resolution decision.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable

    from fastapi_tenant_chain.observability.diagnostics import DiagnosticRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TenantResolvedEvent:
    """A strategy produced an identifier."""
    strategy: str
    identifier: str


@dataclass(frozen=True)
class TenantResolutionFailedEvent:
    """A strategy produced nothing (``no_tenant_found``) or failed."""
    strategy: str
    reason: str
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TenantHeaderRejectedEvent:
    """A header strategy was skipped because its header is not allow-listed."""
    header_name: str


@dataclass(frozen=True)
class ResolutionCompletedEvent:
    """The chain reached a decision; carries the full diagnostic record."""
    diagnostics: DiagnosticRecord


@dataclass(frozen=True)
class TenantContextStartedEvent:
    """Tenant context was set for a request or a scoped block."""
    tenant_id: str


@dataclass(frozen=True)
class TenantContextEndedEvent:
    """Tenant context set by a matching started event was cleared."""
    tenant_id: str


ResolutionEvent = (
    TenantResolvedEvent
    | TenantResolutionFailedEvent
    | TenantHeaderRejectedEvent
    | ResolutionCompletedEvent
    | TenantContextStartedEvent
    | TenantContextEndedEvent
)


@runtime_checkable
class EventSubscriber(Protocol):
    """Anything with an ``on_event`` method can observe resolution."""

    def on_event(self, event: ResolutionEvent) -> None:
        ...


class EventDispatcher:
    """Deliver events to every registered subscriber, in registration order."""

    def __init__(self, subscribers: Iterable[EventSubscriber] | None = None) -> None:
        self._subscribers: list[EventSubscriber] = list(subscribers or [])

    def subscribe(self, subscriber: EventSubscriber) -> None:
        self._subscribers.append(subscriber)

    @property
    def subscribers(self) -> tuple[EventSubscriber, ...]:
        return tuple(self._subscribers)

    def dispatch(self, event: ResolutionEvent) -> None:
        for subscriber in self._subscribers:
            try:
                subscriber.on_event(event)
            except Exception as exc:
                logger.error(
                    "Event subscriber %s failed on %s: %s",
                    type(subscriber).__name__,
                    type(event).__name__,
                    exc,
                    exc_info=True,
                )


class LoggingSubscriber:
    """Log every resolution event through the standard ``logging`` module."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def on_event(self, event: ResolutionEvent) -> None:
        if isinstance(event, TenantResolvedEvent):
            self._log.info(
                "Tenant resolved strategy=%s identifier=%s",
                event.strategy,
                event.identifier,
            )
        elif isinstance(event, TenantResolutionFailedEvent):
            self._log.warning(
                "Tenant resolution failed strategy=%s reason=%s context=%s",
                event.strategy,
                event.reason,
                event.context,
            )
        elif isinstance(event, TenantHeaderRejectedEvent):
            self._log.warning(
                "Tenant header rejected by allow-list header=%s", event.header_name
            )
        elif isinstance(event, ResolutionCompletedEvent):
            diag = event.diagnostics
            self._log.debug(
                "Resolution completed decision=%s identifier=%s strategy=%s attempts=%s",
                diag.decision.value,
                diag.identifier,
                diag.strategy,
                [(a.name, a.kind.value) for a in diag.attempts],
            )
        elif isinstance(event, TenantContextStartedEvent):
            self._log.info("Tenant context started tenant_id=%s", event.tenant_id)
        elif isinstance(event, TenantContextEndedEvent):
            self._log.info("Tenant context ended tenant_id=%s", event.tenant_id)


__all__ = [
    "EventDispatcher",
    "EventSubscriber",
    "LoggingSubscriber",
    "ResolutionCompletedEvent",
    "ResolutionEvent",
    "TenantContextEndedEvent",
    "TenantContextStartedEvent",
    "TenantHeaderRejectedEvent",
    "TenantResolutionFailedEvent",
    "TenantResolvedEvent",
]
