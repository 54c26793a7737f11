"""Core types, configuration, errors and request context."""

from fastapi_tenant_chain.core.config import ChainConfig, ResolverSettings
from fastapi_tenant_chain.core.context import TenantContext
from fastapi_tenant_chain.core.exceptions import *  # noqa: F403
from fastapi_tenant_chain.core.exceptions import __all__ as exceptions__all__
from fastapi_tenant_chain.core.types import *  # noqa: F403
from fastapi_tenant_chain.core.types import __all__ as types__all__

__all__ = [
    "ChainConfig",
    "ResolverSettings",
    "TenantContext",
]

__all__ += exceptions__all__
__all__ += types__all__
