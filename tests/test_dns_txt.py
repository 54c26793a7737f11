"""DNS-TXT strategy and the dnspython lookup primitive."""
from __future__ import annotations

from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, patch

import dns.exception
import dns.resolver
import pytest

from fastapi_tenant_chain.cache.dns_cache import InMemoryDnsCache
from fastapi_tenant_chain.core.exceptions import ConfigurationError, DnsLookupError
from fastapi_tenant_chain.core.types import OutcomeKind, TenantRequest
from fastapi_tenant_chain.resolution.dns_lookup import DnsPythonTxtLookup, DnsTxtLookup
from fastapi_tenant_chain.resolution.dns_txt import DnsTxtTenantResolver


@pytest.fixture
def resolver(txt_lookup: Any) -> DnsTxtTenantResolver:
    return DnsTxtTenantResolver(lookup=txt_lookup, timeout=2)


class TestDnsTxtTenantResolver:

    @pytest.mark.asyncio
    async def test_resolves_record(
        self, resolver: DnsTxtTenantResolver, txt_lookup: Any
    ) -> None:
        outcome = await resolver.resolve(TenantRequest.build(host="acme.com"))
        assert outcome.kind == OutcomeKind.RESOLVED
        assert outcome.identifier == "acme"
        assert outcome.details["query_name"] == "_tenant.acme.com"
        assert txt_lookup.calls == ["_tenant.acme.com"]

    @pytest.mark.asyncio
    async def test_value_trimmed_and_lowercased(self, resolver: DnsTxtTenantResolver) -> None:
        outcome = await resolver.resolve(TenantRequest.build(host="Client.Example.com:443"))
        assert outcome.identifier == "client_tenant"

    @pytest.mark.asyncio
    async def test_missing_record_is_no_match(self, resolver: DnsTxtTenantResolver) -> None:
        outcome = await resolver.resolve(TenantRequest.build(host="unknown.io"))
        assert outcome.kind == OutcomeKind.NO_MATCH
        assert outcome.reason == "record_absent"

    @pytest.mark.asyncio
    async def test_invalid_value_is_no_match(self, resolver: DnsTxtTenantResolver) -> None:
        outcome = await resolver.resolve(TenantRequest.build(host="bad.example.com"))
        assert outcome.kind == OutcomeKind.NO_MATCH
        assert outcome.reason == "invalid_identifier"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("host", "reason"),
        [("slow.example.com", "timeout"), ("broken.example.com", "servfail")],
    )
    async def test_transport_failures_are_errors(
        self, resolver: DnsTxtTenantResolver, host: str, reason: str
    ) -> None:
        outcome = await resolver.resolve(TenantRequest.build(host=host))
        assert outcome.kind == OutcomeKind.ERROR
        assert outcome.reason == reason
        assert outcome.identifier is None

    @pytest.mark.asyncio
    async def test_host_absent_skips_lookup(
        self, resolver: DnsTxtTenantResolver, txt_lookup: Any
    ) -> None:
        outcome = await resolver.resolve(TenantRequest.build())
        assert outcome.reason == "host_absent"
        assert txt_lookup.calls == []

    @pytest.mark.asyncio
    async def test_first_value_wins(self, fake_txt_lookup) -> None:
        lookup = fake_txt_lookup({"_tenant.multi.io": ["first", "second"]})
        outcome = await DnsTxtTenantResolver(lookup=lookup).resolve_host("multi.io")
        assert outcome.identifier == "first"

    @pytest.mark.asyncio
    async def test_cache_avoids_repeat_lookups(
        self, txt_lookup: Any, clock
    ) -> None:
        resolver = DnsTxtTenantResolver(
            lookup=txt_lookup, cache=InMemoryDnsCache(ttl=60, clock=clock), name="dns_primary"
        )
        first = await resolver.resolve_host("acme.com")
        second = await resolver.resolve_host("acme.com")
        assert first.identifier == second.identifier == "acme"
        assert second.strategy == "dns_primary"
        assert txt_lookup.calls == ["_tenant.acme.com"]

    @pytest.mark.asyncio
    async def test_errors_are_retried(self, txt_lookup: Any, clock) -> None:
        resolver = DnsTxtTenantResolver(
            lookup=txt_lookup, cache=InMemoryDnsCache(ttl=60, clock=clock)
        )
        await resolver.resolve_host("slow.example.com")
        await resolver.resolve_host("slow.example.com")
        assert txt_lookup.calls.count("_tenant.slow.example.com") == 2

    @pytest.mark.asyncio
    async def test_helpers(self, resolver: DnsTxtTenantResolver) -> None:
        assert await resolver.identifier_from_dns("acme.com") == "acme"
        assert await resolver.identifier_from_dns("unknown.io") is None
        assert await resolver.has_dns_txt_record("acme.com")
        assert not await resolver.has_dns_txt_record("slow.example.com")

    def test_query_name_for(self) -> None:
        assert DnsTxtTenantResolver.query_name_for("Acme.COM:8443") == "_tenant.acme.com"

    @pytest.mark.parametrize("timeout", [0.5, 31, 0])
    def test_timeout_bounds(self, txt_lookup: Any, timeout: float) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            DnsTxtTenantResolver(lookup=txt_lookup, timeout=timeout)
        assert exc_info.value.parameter == "dns_txt.timeout"

    def test_fake_satisfies_protocol(self, txt_lookup: Any) -> None:
        assert isinstance(txt_lookup, DnsTxtLookup)


# ---------------------------------------------------------------------------
# dnspython-backed lookup
# ---------------------------------------------------------------------------


def _txt(*chunks: bytes) -> SimpleNamespace:
    return SimpleNamespace(strings=chunks)


class TestDnsPythonTxtLookup:

    @pytest.fixture
    def mock_resolver(self):
        with patch("fastapi_tenant_chain.resolution.dns_lookup.dns.asyncresolver.Resolver") as cls:
            instance = cls.return_value
            instance.resolve = AsyncMock()
            yield cls

    @pytest.mark.asyncio
    async def test_joins_character_strings(self, mock_resolver) -> None:
        mock_resolver.return_value.resolve.return_value = [_txt(b"ac", b"me"), _txt(b"other")]
        lookup = DnsPythonTxtLookup()
        assert await lookup("_tenant.acme.com", 3) == ["acme", "other"]
        mock_resolver.return_value.resolve.assert_awaited_once_with(
            "_tenant.acme.com", "TXT", lifetime=3
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("exc", [dns.resolver.NXDOMAIN(), dns.resolver.NoAnswer()])
    async def test_absent_name_returns_empty(self, mock_resolver, exc) -> None:
        mock_resolver.return_value.resolve.side_effect = exc
        assert await DnsPythonTxtLookup()("_tenant.none.io", 3) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("exc", "reason"),
        [
            (dns.exception.Timeout(), "timeout"),
            (TimeoutError(), "timeout"),
            (dns.resolver.NoNameservers(), "servfail"),
            (dns.exception.DNSException("boom"), "dns_error"),
        ],
    )
    async def test_transport_errors(self, mock_resolver, exc, reason: str) -> None:
        mock_resolver.return_value.resolve.side_effect = exc
        with pytest.raises(DnsLookupError) as exc_info:
            await DnsPythonTxtLookup()("_tenant.acme.com", 3)
        assert exc_info.value.reason == reason
        assert exc_info.value.query_name == "_tenant.acme.com"

    def test_explicit_nameservers(self, mock_resolver) -> None:
        lookup = DnsPythonTxtLookup(nameservers=["1.1.1.1"])
        mock_resolver.assert_called_once_with(configure=False)
        assert lookup._resolver.nameservers == ["1.1.1.1"]

    def test_system_configuration_by_default(self, mock_resolver) -> None:
        DnsPythonTxtLookup()
        mock_resolver.assert_called_once_with()
