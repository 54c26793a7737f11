"""Chain resolver: ordered strategies reconciled into one decision.

Two consensus policies, chosen by ``strict``:

* **non-strict** (first match wins): strategies run in configured order and
  the first ``resolved`` outcome is the answer.  Later strategies are not
  consulted.
* **strict** (consensus): every strategy runs.  No identifiers means no
  tenant, one distinct identifier is the answer even when several
  strategies agree, two or more raise
  :class:`~fastapi_tenant_chain.core.exceptions.AmbiguousTenantResolutionError`.

Both modes raise :class:`~fastapi_tenant_chain.core.exceptions.TenantResolutionError`
when every attempted strategy failed with an ``error`` outcome.  Whether
"no tenant" is fatal is left to the caller (see ``require_tenant``).
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from fastapi_tenant_chain.core.config import ChainConfig
from fastapi_tenant_chain.core.exceptions import (
    AmbiguousTenantResolutionError,
    ConfigurationError,
    TenantResolutionError,
)
from fastapi_tenant_chain.core.types import OutcomeKind, ResolutionOutcome
from fastapi_tenant_chain.observability.diagnostics import Decision, DiagnosticRecord
from fastapi_tenant_chain.observability.events import (
    EventDispatcher,
    ResolutionCompletedEvent,
    TenantHeaderRejectedEvent,
    TenantResolutionFailedEvent,
    TenantResolvedEvent,
)
from fastapi_tenant_chain.resolution.allow_list import HeaderAllowList
from fastapi_tenant_chain.resolution.header import HEADER_NOT_ALLOWED, HeaderTenantResolver

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from fastapi_tenant_chain.core.types import TenantRequest
    from fastapi_tenant_chain.resolution.base import BaseTenantResolver

logger = logging.getLogger(__name__)

NOT_CONFIGURED = "not_configured"
UNEXPECTED_ERROR = "unexpected_error"


@dataclass(frozen=True)
class ChainResolution:
    """Final answer of one chain invocation.

    ``identifier`` is None when no strategy produced a tenant.
    ``agreeing_strategies`` lists every strategy that produced the winning
    identifier (one entry in non-strict mode).
    """

    identifier: str | None
    strategy: str | None
    agreeing_strategies: tuple[str, ...]
    diagnostics: DiagnosticRecord

    @property
    def resolved(self) -> bool:
        return self.identifier is not None

    def require(self) -> str:
        """Return the identifier or raise :class:`TenantResolutionError`."""
        if self.identifier is None:
            raise TenantResolutionError(
                reason="no tenant could be resolved by any strategy in the chain",
                details={"attempts": [a.name for a in self.diagnostics.attempts]},
                diagnostics=self.diagnostics,
            )
        return self.identifier


class ChainTenantResolver:
    """Run an ordered list of strategies and apply the consensus policy.

    Example::

        chain = ChainTenantResolver(
            resolvers=[HeaderTenantResolver(), QueryTenantResolver()],
            order=["header", "query"],
            strict=True,
            header_allow_list=["X-Tenant-Slug"],
        )
        result = await chain.resolve(TenantRequest.from_starlette(request))
        result.identifier              # "acme" or None
        result.diagnostics.to_dict()   # which strategies did what

    Parameters
    ----------
    resolvers:
        Strategy instances keyed by name, or an iterable of instances keyed
        by their ``name`` attribute.
    order:
        Names to evaluate, in order.  Defaults to the resolvers' own order.
    strict:
        Select the consensus policy (see module docstring).
    header_allow_list:
        Chain-level allow-list applied to every :class:`HeaderTenantResolver`
        before it runs.  ``None`` leaves the check to each header strategy.
    parallel:
        Run strategies concurrently.  Results are folded in configured
        order, so the decision equals sequential evaluation.
    dispatcher:
        Receives one event per attempt plus a completion event.
    """

    def __init__(
        self,
        resolvers: Mapping[str, BaseTenantResolver] | Iterable[BaseTenantResolver],
        order: Sequence[str] | None = None,
        strict: bool = False,
        header_allow_list: HeaderAllowList | Iterable[str] | None = None,
        parallel: bool = False,
        dispatcher: EventDispatcher | None = None,
    ) -> None:
        if isinstance(resolvers, Mapping):
            self._resolvers: dict[str, BaseTenantResolver] = dict(resolvers)
        else:
            self._resolvers = {}
            for resolver in resolvers:
                if resolver.name in self._resolvers:
                    raise ConfigurationError(
                        "resolver_chain.resolvers", f"duplicate strategy name {resolver.name!r}"
                    )
                self._resolvers[resolver.name] = resolver

        if header_allow_list is None or isinstance(header_allow_list, HeaderAllowList):
            self.allow_list = header_allow_list
        else:
            self.allow_list = HeaderAllowList(header_allow_list)

        try:
            self.config = ChainConfig(
                order=tuple(order) if order is not None else tuple(self._resolvers),
                strict=strict,
                header_allow_list=self.allow_list.names if self.allow_list is not None else None,
                parallel=parallel,
            )
        except ValueError as exc:
            raise ConfigurationError("resolver_chain.order", str(exc)) from exc

        self.dispatcher = dispatcher or EventDispatcher()

        missing = [name for name in self.config.order if name not in self._resolvers]
        if missing:
            logger.warning(
                "Chain order names strategies with no resolver: %s (available: %s)",
                missing,
                list(self._resolvers),
            )
        logger.info(
            "ChainTenantResolver order=%s strict=%s parallel=%s allow_list=%s",
            list(self.config.order),
            self.config.strict,
            self.config.parallel,
            self.config.header_allow_list,
        )

    @classmethod
    def from_config(
        cls,
        config: ChainConfig,
        resolvers: Mapping[str, BaseTenantResolver] | Iterable[BaseTenantResolver],
        dispatcher: EventDispatcher | None = None,
    ) -> ChainTenantResolver:
        return cls(
            resolvers,
            order=config.order,
            strict=config.strict,
            header_allow_list=config.header_allow_list,
            parallel=config.parallel,
            dispatcher=dispatcher,
        )

    @property
    def order(self) -> tuple[str, ...]:
        return self.config.order

    @property
    def strict(self) -> bool:
        return self.config.strict

    @property
    def resolvers(self) -> dict[str, BaseTenantResolver]:
        return dict(self._resolvers)

    async def _attempt(self, name: str, request: TenantRequest) -> ResolutionOutcome:
        """Run one strategy; never raises except on cancellation."""
        resolver = self._resolvers.get(name)
        if resolver is None:
            logger.warning("Strategy %r is in the chain order but not configured", name)
            return ResolutionOutcome.skipped(name, NOT_CONFIGURED)

        if (
            self.allow_list is not None
            and isinstance(resolver, HeaderTenantResolver)
            and not self.allow_list.permits(resolver.header_name)
        ):
            logger.debug(
                "Header strategy %r skipped: %r not in allow-list %s",
                name,
                resolver.header_name,
                list(self.allow_list),
            )
            return resolver.skipped_outcome().with_strategy(name)

        try:
            outcome = await resolver.resolve(request)
        except Exception as exc:
            logger.warning(
                "Strategy %r raised %s: %s", name, type(exc).__name__, exc, exc_info=True
            )
            return ResolutionOutcome.error(
                name, UNEXPECTED_ERROR, exception_class=type(exc).__name__, error=str(exc)
            )
        return outcome.with_strategy(name)

    def _emit(self, outcome: ResolutionOutcome) -> None:
        if outcome.kind == OutcomeKind.RESOLVED and outcome.identifier is not None:
            self.dispatcher.dispatch(TenantResolvedEvent(outcome.strategy, outcome.identifier))
        elif outcome.kind == OutcomeKind.NO_MATCH:
            self.dispatcher.dispatch(
                TenantResolutionFailedEvent(
                    outcome.strategy, "no_tenant_found", {"reason": outcome.reason}
                )
            )
        elif outcome.kind == OutcomeKind.ERROR:
            logger.warning(
                "Strategy %r failed: %s %s", outcome.strategy, outcome.reason, outcome.details
            )
            self.dispatcher.dispatch(
                TenantResolutionFailedEvent(
                    outcome.strategy, outcome.reason or "error", dict(outcome.details)
                )
            )
        elif outcome.reason == HEADER_NOT_ALLOWED:
            self.dispatcher.dispatch(
                TenantHeaderRejectedEvent(str(outcome.details.get("header_name", "")))
            )

    async def _collect(self, request: TenantRequest, diagnostics: DiagnosticRecord) -> None:
        """Evaluate strategies and record outcomes in configured order."""
        strict = self.config.strict
        if self.config.parallel:
            outcomes: Iterable[ResolutionOutcome] = await asyncio.gather(
                *(self._attempt(name, request) for name in self.config.order)
            )
            for outcome in outcomes:
                diagnostics.record(outcome)
                self._emit(outcome)
                if not strict and outcome.is_resolved:
                    break
            return

        for name in self.config.order:
            outcome = await self._attempt(name, request)
            diagnostics.record(outcome)
            self._emit(outcome)
            if not strict and outcome.is_resolved:
                break

    def _finish(
        self,
        diagnostics: DiagnosticRecord,
        start: float,
        decision: Decision,
        identifier: str | None = None,
        strategy: str | None = None,
    ) -> None:
        elapsed_ms = (time.perf_counter() - start) * 1000
        diagnostics.finish(decision, identifier, strategy, round(elapsed_ms, 3))
        self.dispatcher.dispatch(ResolutionCompletedEvent(diagnostics))

    async def resolve(self, request: TenantRequest) -> ChainResolution:
        """Resolve the tenant identifier for *request*.

        Returns:
            The chain's decision with its diagnostic record.

        Raises:
            AmbiguousTenantResolutionError: Strict mode and two or more
                distinct identifiers were produced.
            TenantResolutionError: Every attempted strategy failed.
        """
        start = time.perf_counter()
        diagnostics = DiagnosticRecord(
            strict=self.config.strict,
            header_allow_list=self.config.header_allow_list or (),
        )

        await self._collect(request, diagnostics)

        resolved_by = diagnostics.resolved_by()
        attempted = [a for a in diagnostics.attempts if a.kind != OutcomeKind.SKIPPED]
        if not resolved_by and attempted and all(a.kind == OutcomeKind.ERROR for a in attempted):
            self._finish(diagnostics, start, Decision.FAILED)
            logger.warning("All %d attempted strategies failed", len(attempted))
            raise TenantResolutionError(
                reason="every attempted strategy failed",
                details={"errors": {a.name: a.reason for a in attempted}},
                diagnostics=diagnostics,
            )

        if not resolved_by:
            self._finish(diagnostics, start, Decision.NO_TENANT)
            logger.debug("No strategy resolved a tenant")
            return ChainResolution(None, None, (), diagnostics)

        if self.config.strict:
            distinct = set(resolved_by.values())
            if len(distinct) > 1:
                self._finish(diagnostics, start, Decision.AMBIGUOUS)
                logger.warning("Ambiguous tenant resolution: %s", resolved_by)
                raise AmbiguousTenantResolutionError(resolved_by, diagnostics=diagnostics)
            winner, identifier = next(iter(resolved_by.items()))
            agreeing = tuple(resolved_by)
        else:
            winner, identifier = next(iter(resolved_by.items()))
            agreeing = (winner,)

        self._finish(diagnostics, start, Decision.RESOLVED, identifier, winner)
        logger.debug(
            "Chain resolved identifier=%s strategy=%s agreeing=%s",
            identifier,
            winner,
            agreeing,
        )
        return ChainResolution(identifier, winner, agreeing, diagnostics)

    async def resolve_identifier(self, request: TenantRequest) -> str | None:
        """Shortcut returning only the identifier."""
        return (await self.resolve(request)).identifier


__all__ = ["NOT_CONFIGURED", "UNEXPECTED_ERROR", "ChainResolution", "ChainTenantResolver"]
