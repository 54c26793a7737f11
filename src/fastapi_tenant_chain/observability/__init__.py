"""Diagnostics, events, and metrics hooks for tenant resolution."""

from fastapi_tenant_chain.observability.diagnostics import (
    Decision,
    DiagnosticRecord,
    StrategyAttempt,
)
from fastapi_tenant_chain.observability.events import (
    EventDispatcher,
    EventSubscriber,
    LoggingSubscriber,
    ResolutionCompletedEvent,
    TenantContextEndedEvent,
    TenantContextStartedEvent,
    TenantHeaderRejectedEvent,
    TenantResolutionFailedEvent,
    TenantResolvedEvent,
)
from fastapi_tenant_chain.observability.metrics import (
    MetricsAdapter,
    MetricsSubscriber,
    NullMetricsAdapter,
)

__all__ = [
    "Decision",
    "DiagnosticRecord",
    "EventDispatcher",
    "EventSubscriber",
    "LoggingSubscriber",
    "MetricsAdapter",
    "MetricsSubscriber",
    "NullMetricsAdapter",
    "ResolutionCompletedEvent",
    "StrategyAttempt",
    "TenantContextEndedEvent",
    "TenantContextStartedEvent",
    "TenantHeaderRejectedEvent",
    "TenantResolutionFailedEvent",
    "TenantResolvedEvent",
]
