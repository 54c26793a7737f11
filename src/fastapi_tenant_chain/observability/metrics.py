"""Metrics hooks for tenant resolution.

The library does not ship a metrics backend.  Applications plug one in by
implementing :class:`MetricsAdapter` (Prometheus, StatsD, OpenTelemetry ...)
and passing it to :class:`~fastapi_tenant_chain.manager.TenancyManager`.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from fastapi_tenant_chain.observability.events import (
    ResolutionCompletedEvent,
    ResolutionEvent,
    TenantHeaderRejectedEvent,
    TenantResolutionFailedEvent,
    TenantResolvedEvent,
)

RESOLUTION_TOTAL = "tenant_resolution_total"
HEADER_REJECTED_TOTAL = "tenant_header_rejected_total"
RESOLUTION_DURATION_MS = "tenant_resolution_duration_ms"


@runtime_checkable
class MetricsAdapter(Protocol):
    """Minimal metrics backend interface."""

    def counter(self, name: str, labels: dict[str, str] | None = None, value: int = 1) -> None:
        ...

    def histogram(self, name: str, value: float, labels: dict[str, str] | None = None) -> None:
        ...


class NullMetricsAdapter:
    """Adapter that discards everything (the default)."""

    def counter(self, name: str, labels: dict[str, str] | None = None, value: int = 1) -> None:
        return None

    def histogram(self, name: str, value: float, labels: dict[str, str] | None = None) -> None:
        return None


class MetricsSubscriber:
    """Translate resolution events into counters and histograms."""

    def __init__(self, adapter: MetricsAdapter) -> None:
        self.adapter = adapter

    def on_event(self, event: ResolutionEvent) -> None:
        if isinstance(event, TenantResolvedEvent):
            self.adapter.counter(
                RESOLUTION_TOTAL, {"resolver": event.strategy, "status": "ok"}
            )
        elif isinstance(event, TenantResolutionFailedEvent):
            self.adapter.counter(
                RESOLUTION_TOTAL,
                {"resolver": event.strategy, "status": "error", "reason": event.reason},
            )
        elif isinstance(event, TenantHeaderRejectedEvent):
            self.adapter.counter(HEADER_REJECTED_TOTAL, {"header": event.header_name})
        elif isinstance(event, ResolutionCompletedEvent):
            diag = event.diagnostics
            if diag.elapsed_ms is not None:
                self.adapter.histogram(
                    RESOLUTION_DURATION_MS,
                    diag.elapsed_ms,
                    {"decision": diag.decision.value},
                )


__all__ = [
    "HEADER_REJECTED_TOTAL",
    "RESOLUTION_DURATION_MS",
    "RESOLUTION_TOTAL",
    "MetricsAdapter",
    "MetricsSubscriber",
    "NullMetricsAdapter",
]
