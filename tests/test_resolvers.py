"""Unit tests for the single-source strategies.

Every strategy is exercised through :meth:`TenantRequest.build`; no ASGI app
is involved.
"""
from __future__ import annotations

import pytest

from fastapi_tenant_chain.core.exceptions import ConfigurationError
from fastapi_tenant_chain.core.types import OutcomeKind, TenantRequest
from fastapi_tenant_chain.resolution.allow_list import HeaderAllowList
from fastapi_tenant_chain.resolution.domain import DomainTenantResolver
from fastapi_tenant_chain.resolution.header import HEADER_NOT_ALLOWED, HeaderTenantResolver
from fastapi_tenant_chain.resolution.path import PathTenantResolver
from fastapi_tenant_chain.resolution.query import QueryTenantResolver
from fastapi_tenant_chain.resolution.subdomain import SubdomainTenantResolver

# ---------------------------------------------------------------------------
# Subdomain
# ---------------------------------------------------------------------------


class TestSubdomainTenantResolver:

    @pytest.fixture
    def resolver(self) -> SubdomainTenantResolver:
        return SubdomainTenantResolver(base_domain="example.com")

    @pytest.mark.asyncio
    async def test_resolves_label(self, resolver: SubdomainTenantResolver) -> None:
        outcome = await resolver.resolve(TenantRequest.build(host="acme.example.com"))
        assert outcome.kind == OutcomeKind.RESOLVED
        assert outcome.identifier == "acme"
        assert outcome.strategy == "subdomain"

    @pytest.mark.asyncio
    async def test_strips_port_and_case(self, resolver: SubdomainTenantResolver) -> None:
        outcome = await resolver.resolve(TenantRequest.build(host="ACME.Example.com:8443"))
        assert outcome.identifier == "acme"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("label", ["www", "api", "admin", "mail", "ftp"])
    async def test_excluded_labels(self, resolver: SubdomainTenantResolver, label: str) -> None:
        outcome = await resolver.resolve(TenantRequest.build(host=f"{label}.example.com"))
        assert outcome.kind == OutcomeKind.NO_MATCH
        assert outcome.reason == "excluded_subdomain"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "host",
        ["example.com", "app.acme.example.com", "acme.other.com", "acme.example.com.evil.io"],
    )
    async def test_host_mismatch(self, resolver: SubdomainTenantResolver, host: str) -> None:
        outcome = await resolver.resolve(TenantRequest.build(host=host))
        assert outcome.kind == OutcomeKind.NO_MATCH
        assert outcome.reason == "host_mismatch"

    @pytest.mark.asyncio
    async def test_host_absent(self, resolver: SubdomainTenantResolver) -> None:
        outcome = await resolver.resolve(TenantRequest.build())
        assert outcome.reason == "host_absent"

    @pytest.mark.asyncio
    async def test_custom_exclusions(self) -> None:
        resolver = SubdomainTenantResolver("example.com", excluded_subdomains=["Staging"])
        staging = await resolver.resolve(TenantRequest.build(host="staging.example.com"))
        www = await resolver.resolve(TenantRequest.build(host="www.example.com"))
        assert staging.reason == "excluded_subdomain"
        assert www.identifier == "www"

    def test_extract_label(self, resolver: SubdomainTenantResolver) -> None:
        assert resolver.extract_label("acme.example.com") == "acme"
        assert resolver.extract_label("www.example.com") is None
        assert resolver.extract_label("") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "host",
        [
            "acme.example.com",
            "ACME.example.com:80",
            "www.example.com",
            "example.com",
            "a.b.example.com",
            "",
        ],
    )
    async def test_extract_label_agrees_with_resolve(
        self, resolver: SubdomainTenantResolver, host: str
    ) -> None:
        outcome = await resolver.resolve(TenantRequest.build(host=host))
        assert resolver.extract_label(host) == outcome.identifier

    def test_leading_dot_in_base_domain(self) -> None:
        assert SubdomainTenantResolver(".Example.com").base_domain == "example.com"

    def test_empty_base_domain_rejected(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            SubdomainTenantResolver(base_domain="  ")
        assert exc_info.value.parameter == "subdomain.base_domain"


# ---------------------------------------------------------------------------
# Path
# ---------------------------------------------------------------------------


class TestPathTenantResolver:

    @pytest.mark.asyncio
    async def test_first_segment_by_default(self) -> None:
        resolver = PathTenantResolver()
        outcome = await resolver.resolve(TenantRequest.build(path="/acme/dashboard"))
        assert outcome.identifier == "acme"
        assert outcome.details["position"] == 0

    @pytest.mark.asyncio
    async def test_empty_segments_ignored(self) -> None:
        outcome = await PathTenantResolver().resolve(TenantRequest.build(path="//acme//users/"))
        assert outcome.identifier == "acme"

    @pytest.mark.asyncio
    async def test_prefix(self) -> None:
        resolver = PathTenantResolver(path_prefix="/tenants/")
        hit = await resolver.resolve(TenantRequest.build(path="/tenants/acme/users"))
        miss = await resolver.resolve(TenantRequest.build(path="/api/acme/users"))
        assert hit.identifier == "acme"
        assert miss.reason == "prefix_mismatch"

    @pytest.mark.asyncio
    async def test_one_based_index(self) -> None:
        resolver = PathTenantResolver(segment_index=2, one_based=True)
        outcome = await resolver.resolve(TenantRequest.build(path="/api/acme/users"))
        assert outcome.identifier == "acme"

    @pytest.mark.asyncio
    async def test_zero_based_index(self) -> None:
        resolver = PathTenantResolver(segment_index=1)
        outcome = await resolver.resolve(TenantRequest.build(path="/api/acme/users"))
        assert outcome.identifier == "acme"

    @pytest.mark.asyncio
    async def test_segment_absent(self) -> None:
        resolver = PathTenantResolver(path_prefix="/tenants")
        outcome = await resolver.resolve(TenantRequest.build(path="/tenants"))
        assert outcome.kind == OutcomeKind.NO_MATCH
        assert outcome.reason == "segment_absent"

    @pytest.mark.asyncio
    async def test_invalid_segment(self) -> None:
        outcome = await PathTenantResolver().resolve(TenantRequest.build(path="/Acme.Corp/x"))
        assert outcome.kind == OutcomeKind.NO_MATCH
        assert outcome.reason == "invalid_identifier"

    def test_one_based_zero_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            PathTenantResolver(segment_index=0, one_based=True)

    def test_negative_index_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            PathTenantResolver(segment_index=-1)


# ---------------------------------------------------------------------------
# Header
# ---------------------------------------------------------------------------


class TestHeaderTenantResolver:

    @pytest.mark.asyncio
    async def test_resolves_allow_listed_header(self) -> None:
        resolver = HeaderTenantResolver("X-Tenant-Slug", allow_list=["X-Tenant-Slug"])
        outcome = await resolver.resolve(TenantRequest.build(headers={"X-Tenant-Slug": "acme"}))
        assert outcome.kind == OutcomeKind.RESOLVED
        assert outcome.identifier == "acme"
        assert outcome.details["header_name"] == "X-Tenant-Slug"

    @pytest.mark.asyncio
    async def test_header_name_case_insensitive(self) -> None:
        resolver = HeaderTenantResolver("X-Tenant-Id", allow_list=["x-tenant-id"])
        outcome = await resolver.resolve(TenantRequest.build(headers={"x-tenant-id": "acme"}))
        assert outcome.identifier == "acme"

    @pytest.mark.asyncio
    async def test_not_allow_listed_is_skipped(self) -> None:
        resolver = HeaderTenantResolver("X-Tenant-Slug", allow_list=["X-Tenant-Id"])
        outcome = await resolver.resolve(TenantRequest.build(headers={"X-Tenant-Slug": "acme"}))
        assert outcome.kind == OutcomeKind.SKIPPED
        assert outcome.reason == HEADER_NOT_ALLOWED
        assert outcome.identifier is None
        assert not resolver.is_allowed

    @pytest.mark.asyncio
    async def test_empty_allow_list_fails_closed(self) -> None:
        resolver = HeaderTenantResolver("X-Tenant-Slug", allow_list=HeaderAllowList())
        outcome = await resolver.resolve(TenantRequest.build(headers={"X-Tenant-Slug": "acme"}))
        assert outcome.kind == OutcomeKind.SKIPPED

    @pytest.mark.asyncio
    async def test_default_trusts_own_header(self) -> None:
        resolver = HeaderTenantResolver("X-Org")
        assert resolver.is_allowed
        outcome = await resolver.resolve(TenantRequest.build(headers={"X-Org": "globex"}))
        assert outcome.identifier == "globex"

    @pytest.mark.asyncio
    async def test_absent_and_empty(self) -> None:
        resolver = HeaderTenantResolver()
        absent = await resolver.resolve(TenantRequest.build())
        empty = await resolver.resolve(TenantRequest.build(headers={"X-Tenant-Slug": "   "}))
        assert absent.reason == "header_absent"
        assert empty.reason == "header_empty"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", ["'; DROP TABLE tenants", "ACME", "a" * 300])
    async def test_malformed_values_do_not_resolve(self, value: str) -> None:
        outcome = await HeaderTenantResolver().resolve(
            TenantRequest.build(headers={"X-Tenant-Slug": value})
        )
        assert outcome.kind == OutcomeKind.NO_MATCH
        assert outcome.reason == "invalid_identifier"

    @pytest.mark.asyncio
    async def test_value_is_trimmed(self) -> None:
        outcome = await HeaderTenantResolver().resolve(
            TenantRequest.build(headers={"X-Tenant-Slug": "  acme  "})
        )
        assert outcome.identifier == "acme"

    def test_empty_header_name_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            HeaderTenantResolver(header_name=" ")


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------


class TestQueryTenantResolver:

    @pytest.mark.asyncio
    async def test_resolves_parameter(self) -> None:
        outcome = await QueryTenantResolver().resolve(TenantRequest.build(query="tenant=acme"))
        assert outcome.identifier == "acme"
        assert outcome.details["parameter"] == "tenant"

    @pytest.mark.asyncio
    async def test_first_value_wins(self) -> None:
        outcome = await QueryTenantResolver().resolve(
            TenantRequest.build(query="tenant=acme&tenant=globex")
        )
        assert outcome.identifier == "acme"

    @pytest.mark.asyncio
    async def test_appended_value_cannot_override(self) -> None:
        outcome = await QueryTenantResolver().resolve(
            TenantRequest.build(query="tenant=globex&other=1&tenant=acme")
        )
        assert outcome.identifier == "globex"

    @pytest.mark.asyncio
    async def test_custom_parameter(self) -> None:
        resolver = QueryTenantResolver(parameter_name="org")
        hit = await resolver.resolve(TenantRequest.build(query={"org": "globex"}))
        miss = await resolver.resolve(TenantRequest.build(query={"tenant": "globex"}))
        assert hit.identifier == "globex"
        assert miss.reason == "parameter_absent"

    @pytest.mark.asyncio
    async def test_blank_parameter(self) -> None:
        outcome = await QueryTenantResolver().resolve(TenantRequest.build(query="tenant="))
        assert outcome.reason == "parameter_absent"

    @pytest.mark.asyncio
    async def test_invalid_value(self) -> None:
        outcome = await QueryTenantResolver().resolve(TenantRequest.build(query="tenant=Bad%20One"))
        assert outcome.reason == "invalid_identifier"


# ---------------------------------------------------------------------------
# Domain
# ---------------------------------------------------------------------------


class TestDomainTenantResolver:

    @pytest.fixture
    def resolver(self) -> DomainTenantResolver:
        return DomainTenantResolver({"acme.com": "acme", "Shop.Globex.io": "globex"})

    @pytest.mark.asyncio
    async def test_exact_match(self, resolver: DomainTenantResolver) -> None:
        outcome = await resolver.resolve(TenantRequest.build(host="acme.com"))
        assert outcome.identifier == "acme"
        assert outcome.details["host"] == "acme.com"

    @pytest.mark.asyncio
    async def test_normalises_host(self, resolver: DomainTenantResolver) -> None:
        outcome = await resolver.resolve(TenantRequest.build(host="SHOP.globex.io:443"))
        assert outcome.identifier == "globex"

    @pytest.mark.asyncio
    async def test_subdomain_of_mapped_host_does_not_match(
        self, resolver: DomainTenantResolver
    ) -> None:
        outcome = await resolver.resolve(TenantRequest.build(host="www.acme.com"))
        assert outcome.reason == "domain_not_mapped"

    @pytest.mark.asyncio
    async def test_host_absent(self, resolver: DomainTenantResolver) -> None:
        outcome = await resolver.resolve(TenantRequest.build())
        assert outcome.reason == "host_absent"

    def test_lookup_helpers(self, resolver: DomainTenantResolver) -> None:
        assert resolver.is_domain_mapped("ACME.com")
        assert resolver.identifier_for_domain("shop.globex.io") == "globex"
        assert resolver.identifier_for_domain("unknown.io") is None

    def test_mapping_is_read_only(self, resolver: DomainTenantResolver) -> None:
        with pytest.raises(TypeError):
            resolver.domain_mapping["evil.com"] = "evil"  # type: ignore[index]

    def test_invalid_identifier_rejected(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            DomainTenantResolver({"acme.com": "Not Valid"})
        assert exc_info.value.parameter == "domain.domain_mapping"
