"""Tenancy middleware: request-scoped tenant resolution and context management."""
from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from fastapi_tenant_chain.core.context import TenantContext
from fastapi_tenant_chain.core.exceptions import (
    AmbiguousTenantResolutionError,
    TenancyError,
    TenantInactiveError,
    TenantNotFoundError,
    TenantResolutionError,
)
from fastapi_tenant_chain.observability.events import (
    TenantContextEndedEvent,
    TenantContextStartedEvent,
)

if TYPE_CHECKING:
    from starlette.middleware.base import RequestResponseEndpoint

    from fastapi_tenant_chain.manager import TenancyManager

logger = logging.getLogger(__name__)

_DEFAULT_SKIP_PATHS: list[str] = [
    "/health",
    "/metrics",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
]


class TenancyMiddleware(BaseHTTPMiddleware):
    """Resolve the tenant for every request and set async-safe context.

    Processing pipeline
    -------------------
    1. Skip resolution for public paths and OPTIONS requests (preflight).
    2. Run the chain through :meth:`TenancyManager.resolve`.
    3. Look the identifier up in the tenant registry and check it is active.
    4. Set :class:`~fastapi_tenant_chain.core.context.TenantContext` and
       ``request.state.tenant`` / ``request.state.tenant_diagnostics`` and
       dispatch ``TenantContextStartedEvent``.
    5. Clear context in ``finally``, even on exception, dispatching
       ``TenantContextEndedEvent`` when a tenant was set.

    When the chain yields no tenant (and ``require_tenant`` is off) the
    request proceeds without tenant context.

    Error mapping
    -------------
    ============================== ======
    AmbiguousTenantResolutionError 400
    TenantResolutionError          400
    TenantNotFoundError            404
    TenantInactiveError            403
    other TenancyError             500
    ============================== ======

    Parameters
    ----------
    app:
        The ASGI application (injected by Starlette's middleware machinery).
    manager:
        The manager whose chain and registry are used.  Looked up on every
        request, so the middleware may be registered before ``initialize()``.
    skip_paths:
        URL prefixes that bypass tenant resolution.
    debug_headers:
        Add ``X-Tenant-ID`` / ``X-Tenant-Identifier`` / ``X-Tenant-Strategy``
        response headers and include diagnostic records in error bodies.
    """

    def __init__(
        self,
        app: Any,
        *,
        manager: TenancyManager,
        skip_paths: list[str] | None = None,
        debug_headers: bool = False,
    ) -> None:
        super().__init__(app)
        self._manager = manager
        self.skip_paths: list[str] = (
            skip_paths if skip_paths is not None else list(_DEFAULT_SKIP_PATHS)
        )
        self.debug_headers = debug_headers
        logger.info("TenancyMiddleware registered skip_paths=%s", self.skip_paths)

    def _is_path_skipped(self, path: str) -> bool:
        return any(path.startswith(p) for p in self.skip_paths)

    def _should_skip_request(self, request: Request) -> bool:
        if request.method == "OPTIONS":
            return True
        return self._is_path_skipped(request.url.path)

    def _resolution_details(self, exc: TenantResolutionError) -> dict[str, Any]:
        details = dict(exc.details)
        if self.debug_headers and exc.diagnostics is not None:
            details["diagnostics"] = exc.diagnostics.to_dict()
        return details

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()

        if self._should_skip_request(request):
            logger.debug("Skipping tenant resolution for %s", request.url.path)
            return await call_next(request)

        if not self._manager.initialized:
            logger.error("TenancyMiddleware used before TenancyManager.initialize()")
            return self._error_response(
                status.HTTP_503_SERVICE_UNAVAILABLE,
                "service_unavailable",
                "Tenant service is not yet initialised.",
            )

        started: str | None = None
        try:
            result = await self._manager.resolve(request)
            request.state.tenant_diagnostics = result.diagnostics
            TenantContext.set_diagnostics(result.diagnostics)

            if result.identifier is None:
                logger.debug("No tenant for %s %s", request.method, request.url.path)
                return await call_next(request)

            tenant = await self._manager.tenant_store.get_by_identifier(result.identifier)
            if not tenant.is_active():
                raise TenantInactiveError(
                    tenant_id=tenant.id,
                    status=tenant.status.value,
                    details={"identifier": tenant.identifier},
                )

            TenantContext.set(tenant)
            request.state.tenant = tenant
            started = tenant.id
            self._manager.dispatcher.dispatch(TenantContextStartedEvent(tenant.id))
            logger.info(
                "Resolved tenant %s (id=%s) via %s in %.2f ms",
                tenant.identifier,
                tenant.id,
                result.strategy,
                (time.perf_counter() - start) * 1000,
            )

            response = await call_next(request)

            if self.debug_headers:
                response.headers["X-Tenant-ID"] = tenant.id
                response.headers["X-Tenant-Identifier"] = tenant.identifier
                response.headers["X-Tenant-Strategy"] = result.strategy or ""
            return response

        except AmbiguousTenantResolutionError as exc:
            logger.error("Ambiguous tenant resolution: %s", exc.conflicts)
            return self._error_response(
                status.HTTP_400_BAD_REQUEST,
                "ambiguous_tenant",
                exc.message,
                self._resolution_details(exc),
            )

        except TenantResolutionError as exc:
            logger.error("Tenant resolution failed: %s", exc.message)
            return self._error_response(
                status.HTTP_400_BAD_REQUEST,
                "tenant_resolution_failed",
                exc.message,
                self._resolution_details(exc),
            )

        except TenantNotFoundError as exc:
            logger.error("Tenant not found: %s", exc.message)
            return self._error_response(
                status.HTTP_404_NOT_FOUND,
                "tenant_not_found",
                exc.message,
                exc.details,
            )

        except TenantInactiveError as exc:
            logger.warning("Inactive tenant access: %s", exc.message)
            return self._error_response(
                status.HTTP_403_FORBIDDEN,
                "tenant_inactive",
                exc.message,
                exc.details,
            )

        except TenancyError as exc:
            logger.error("Tenancy error: %s", exc.message, exc_info=True)
            return self._error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "tenancy_error",
                "An error occurred processing tenant information",
                exc.details if self.debug_headers else {},
            )

        finally:
            TenantContext.clear()
            if started is not None:
                self._manager.dispatcher.dispatch(TenantContextEndedEvent(started))

    @staticmethod
    def _error_response(
        status_code: int,
        error: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> JSONResponse:
        content: dict[str, Any] = {"error": error, "message": message}
        if details:
            content["details"] = details
        return JSONResponse(status_code=status_code, content=content)


__all__ = ["TenancyMiddleware"]
