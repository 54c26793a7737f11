"""Utility functions and helpers."""

from fastapi_tenant_chain.utils.validation import (
    assert_valid_identifier,
    normalize_host,
    validate_domain_pattern,
    validate_tenant_identifier,
)

__all__ = [
    "assert_valid_identifier",
    "normalize_host",
    "validate_domain_pattern",
    "validate_tenant_identifier",
]
