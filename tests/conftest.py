"""Shared pytest fixtures for the fastapi-tenant-chain test suite.

Design philosophy
-----------------
- No external services: DNS goes through an in-process fake lookup and Redis
  is patched with ``unittest.mock``.
- Strategies are exercised through :class:`TenantRequest.build`, so most
  tests need no ASGI app at all.
- Scope is "function" everywhere to guarantee full isolation.
"""
from __future__ import annotations

import pytest

from fastapi_tenant_chain.core.context import TenantContext
from fastapi_tenant_chain.core.exceptions import DnsLookupError
from fastapi_tenant_chain.core.types import Tenant, TenantStatus
from fastapi_tenant_chain.storage.memory import InMemoryTenantStore

# ---------------------------------------------------------------------------
# Context isolation: always clear TenantContext between tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def clear_tenant_context():
    TenantContext.clear()
    yield
    TenantContext.clear()


# ---------------------------------------------------------------------------
# Tenant fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tenant_acme() -> Tenant:
    return Tenant(
        id="acme-001",
        identifier="acme",
        name="Acme Corp",
        status=TenantStatus.ACTIVE,
        metadata={"plan": "enterprise"},
    )


@pytest.fixture
def tenant_globex() -> Tenant:
    return Tenant(id="globex-001", identifier="globex", name="Globex")


@pytest.fixture
def tenant_suspended() -> Tenant:
    return Tenant(
        id="suspended-001",
        identifier="suspended-corp",
        name="Suspended Corp",
        status=TenantStatus.SUSPENDED,
    )


@pytest.fixture
def populated_store(
    tenant_acme: Tenant,
    tenant_globex: Tenant,
    tenant_suspended: Tenant,
) -> InMemoryTenantStore:
    return InMemoryTenantStore([tenant_acme, tenant_globex, tenant_suspended])


# ---------------------------------------------------------------------------
# DNS fakes
# ---------------------------------------------------------------------------

class FakeTxtLookup:
    """In-process TXT lookup with a call counter.

    ``records`` maps query names to TXT values; a value that is an exception
    instance is raised instead.
    """

    def __init__(self, records: dict[str, list[str] | Exception] | None = None) -> None:
        self.records = dict(records or {})
        self.calls: list[str] = []

    async def __call__(self, name: str, timeout: float) -> list[str]:
        self.calls.append(name)
        value = self.records.get(name, [])
        if isinstance(value, Exception):
            raise value
        return list(value)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_txt_lookup() -> type[FakeTxtLookup]:
    return FakeTxtLookup


@pytest.fixture
def txt_lookup() -> FakeTxtLookup:
    return FakeTxtLookup(
        {
            "_tenant.acme.com": ["acme"],
            "_tenant.client.example.com": ["  Client_Tenant  "],
            "_tenant.bad.example.com": ["not a slug!"],
            "_tenant.slow.example.com": DnsLookupError("_tenant.slow.example.com", "timeout"),
            "_tenant.broken.example.com": DnsLookupError("_tenant.broken.example.com", "servfail"),
        }
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
