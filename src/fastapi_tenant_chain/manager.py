"""Central tenancy manager: lifecycle and component orchestration.

The manager owns the pieces that live for the whole process (the DNS cache,
the event dispatcher, the chain resolver and the tenant registry) and turns
a request into a :class:`~fastapi_tenant_chain.core.types.Tenant`.

Lifecycle
---------
1. **Construct**: stores settings and overrides.  No I/O.
2. **initialize()**: builds the cache, lookup, dispatcher and chain.
3. **shutdown()**: closes the cache (Redis pool when configured).

Typical wiring::

    manager = TenancyManager(settings, tenant_store=store)
    app = FastAPI(lifespan=manager.create_lifespan())
    manager.install(app)
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi_tenant_chain.core.context import TenantContext
from fastapi_tenant_chain.core.exceptions import TenancyError
from fastapi_tenant_chain.core.types import TenantRequest
from fastapi_tenant_chain.observability.events import (
    EventDispatcher,
    LoggingSubscriber,
    TenantContextEndedEvent,
    TenantContextStartedEvent,
)
from fastapi_tenant_chain.observability.metrics import MetricsSubscriber
from fastapi_tenant_chain.resolution.factory import ResolverFactory
from fastapi_tenant_chain.storage.memory import InMemoryTenantStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable, Mapping

    from fastapi import FastAPI
    from starlette.requests import HTTPConnection
    from starlette.types import Lifespan

    from fastapi_tenant_chain.cache.dns_cache import DnsCache
    from fastapi_tenant_chain.core.config import ResolverSettings
    from fastapi_tenant_chain.core.types import Tenant
    from fastapi_tenant_chain.observability.events import EventSubscriber
    from fastapi_tenant_chain.observability.metrics import MetricsAdapter
    from fastapi_tenant_chain.resolution.base import BaseTenantResolver
    from fastapi_tenant_chain.resolution.chain import ChainResolution, ChainTenantResolver
    from fastapi_tenant_chain.resolution.dns_lookup import DnsTxtLookup
    from fastapi_tenant_chain.storage.tenant_store import TenantStore

logger = logging.getLogger(__name__)


class TenancyManager:
    """Orchestrator for tenant resolution.

    Parameters
    ----------
    settings:
        Validated :class:`~fastapi_tenant_chain.core.config.ResolverSettings`.
    tenant_store:
        Registry used to materialise tenants.  Defaults to an empty
        :class:`~fastapi_tenant_chain.storage.memory.InMemoryTenantStore`.
    resolver:
        Pre-built chain; skips building one from settings.
    lookup:
        TXT lookup primitive for the DNS-TXT strategy (tests, custom transports).
    metrics:
        Backend receiving resolution counters and timings.
    subscribers:
        Extra event subscribers, notified after logging and metrics.
    custom_resolvers:
        Resolvers for non built-in names in ``resolver_chain.order``.
    """

    def __init__(
        self,
        settings: ResolverSettings,
        *,
        tenant_store: TenantStore | None = None,
        resolver: ChainTenantResolver | None = None,
        lookup: DnsTxtLookup | None = None,
        metrics: MetricsAdapter | None = None,
        subscribers: Iterable[EventSubscriber] | None = None,
        custom_resolvers: Mapping[str, BaseTenantResolver] | None = None,
    ) -> None:
        self.settings = settings
        self._initialized = False
        self._custom_resolver = resolver
        self._lookup = lookup
        self._metrics = metrics
        self._extra_subscribers = list(subscribers or [])
        self._custom_resolvers = dict(custom_resolvers or {})

        self.tenant_store: TenantStore = tenant_store or InMemoryTenantStore()

        # Set during initialize()
        self.resolver: ChainTenantResolver
        self.dispatcher: EventDispatcher
        self.dns_cache: DnsCache | None = None

        unknown = settings.unknown_strategies()
        missing = [name for name in unknown if name not in self._custom_resolvers]
        if missing and resolver is None:
            logger.warning("Chain order contains unknown strategies: %s", missing)

        logger.info(
            "TenancyManager created order=%s strict=%s",
            list(settings.resolver_chain.order),
            settings.resolver_chain.strict,
        )

    @property
    def initialized(self) -> bool:
        return self._initialized

    def _build_dispatcher(self) -> EventDispatcher:
        dispatcher = EventDispatcher([LoggingSubscriber()])
        if self._metrics is not None:
            dispatcher.subscribe(MetricsSubscriber(self._metrics))
        for subscriber in self._extra_subscribers:
            dispatcher.subscribe(subscriber)
        return dispatcher

    async def initialize(self) -> None:
        """Build cache, dispatcher and chain.  Subsequent calls are no-ops."""
        if self._initialized:
            return

        logger.info("TenancyManager initialising")
        if self._custom_resolver is not None:
            self.resolver = self._custom_resolver
            self.dispatcher = self._custom_resolver.dispatcher
        else:
            self.dispatcher = self._build_dispatcher()
            self.dns_cache = ResolverFactory.create_cache(self.settings)
            self.resolver = ResolverFactory.create_chain(
                self.settings,
                lookup=self._lookup,
                cache=self.dns_cache,
                dispatcher=self.dispatcher,
                custom_resolvers=self._custom_resolvers,
            )

        self._initialized = True
        logger.info("TenancyManager initialised")

    async def shutdown(self) -> None:
        """Release the DNS cache backend."""
        if not self._initialized:
            return
        logger.info("TenancyManager shutting down")
        if self.dns_cache is not None:
            await self.dns_cache.close()
            self.dns_cache = None
        self._initialized = False
        logger.info("TenancyManager shutdown complete")

    async def __aenter__(self) -> TenancyManager:
        await self.initialize()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.shutdown()

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise TenancyError(
                "TenancyManager is not initialised; call initialize() or use create_lifespan()"
            )

    async def resolve(self, request: HTTPConnection | TenantRequest) -> ChainResolution:
        """Run the chain and apply the ``require_tenant`` policy.

        Raises:
            AmbiguousTenantResolutionError: Strict mode disagreement
            TenantResolutionError: All strategies failed, or no tenant while
                ``require_tenant`` is set
        """
        self._ensure_initialized()
        view = request if isinstance(request, TenantRequest) else TenantRequest.from_starlette(request)
        result = await self.resolver.resolve(view)
        if self.settings.require_tenant:
            result.require()
        return result

    async def resolve_tenant(self, request: HTTPConnection | TenantRequest) -> Tenant | None:
        """Resolve and look up the tenant; None when no tenant applies.

        Raises:
            TenantNotFoundError: The identifier is unknown to the registry
        """
        result = await self.resolve(request)
        TenantContext.set_diagnostics(result.diagnostics)
        if result.identifier is None:
            return None
        return await self.tenant_store.get_by_identifier(result.identifier)

    @asynccontextmanager
    async def tenant_scope(self, identifier: str) -> AsyncIterator[Tenant]:
        """Set tenant context for *identifier* outside a request (workers, scripts).

        Context started/ended events are dispatched once the manager is initialised.
        """
        tenant = await self.tenant_store.get_by_identifier(identifier)
        dispatcher = self.dispatcher if self._initialized else None
        async with TenantContext.scope(tenant):
            if dispatcher is not None:
                dispatcher.dispatch(TenantContextStartedEvent(tenant.id))
            try:
                yield tenant
            finally:
                if dispatcher is not None:
                    dispatcher.dispatch(TenantContextEndedEvent(tenant.id))

    async def health_check(self) -> dict[str, Any]:
        """Return health information for managed components."""
        health: dict[str, Any] = {
            "status": "healthy",
            "initialized": self._initialized,
            "components": {},
        }
        if self._initialized:
            health["components"]["resolver"] = {
                "status": "healthy",
                "order": list(self.resolver.order),
                "strict": self.resolver.strict,
            }
            if self.dns_cache is not None:
                stats = getattr(self.dns_cache, "stats", None)
                health["components"]["dns_cache"] = {
                    "status": "healthy",
                    "backend": type(self.dns_cache).__name__,
                    **(stats() if callable(stats) else {}),
                }
        try:
            count = await self.tenant_store.count()
            health["components"]["tenant_store"] = {"status": "healthy", "tenant_count": count}
        except Exception as exc:
            health["status"] = "unhealthy"
            health["components"]["tenant_store"] = {"status": "unhealthy", "error": str(exc)}
        return health

    def install(
        self,
        app: FastAPI,
        *,
        skip_paths: list[str] | None = None,
        debug_headers: bool | None = None,
    ) -> None:
        """Register :class:`TenancyMiddleware` on *app*.

        Call while building the app: Starlette refuses ``add_middleware``
        once the application has started, lifespan included.
        """
        from fastapi_tenant_chain.middleware.tenancy import TenancyMiddleware

        app.add_middleware(
            TenancyMiddleware,
            manager=self,
            skip_paths=skip_paths if skip_paths is not None else list(self.settings.skip_paths),
            debug_headers=(
                debug_headers if debug_headers is not None else self.settings.debug_diagnostics
            ),
        )
        app.state.tenancy_manager = self
        logger.info("TenancyMiddleware installed")

    def create_lifespan(self) -> Lifespan[FastAPI]:
        """Build a FastAPI ``lifespan`` that initialises and shuts down this manager.

        Example::

            manager = TenancyManager(settings, tenant_store=store)
            app = FastAPI(lifespan=manager.create_lifespan())
            manager.install(app)
        """

        @asynccontextmanager
        async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
            app.state.tenancy_manager = self
            app.state.tenancy_settings = self.settings
            await self.initialize()
            app.state.tenant_store = self.tenant_store
            try:
                yield
            finally:
                await self.shutdown()

        return _lifespan


__all__ = ["TenancyManager"]
