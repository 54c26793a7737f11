"""Validation utilities for tenant identifiers and request hosts.

Every identifier a strategy produces passes through
:func:`validate_tenant_identifier` before it is reported as resolved, so
downstream consumers (registry lookups, storage paths, cache keys) only ever
see slugs from the ``[a-z0-9_-]`` alphabet.
"""
from __future__ import annotations

import re

# ---------------------------------------------------------------------------
# Compiled patterns
# ---------------------------------------------------------------------------
_TENANT_IDENTIFIER_RE = re.compile(r"^[a-z0-9_-]+$")
_HOST_LABEL_RE = re.compile(r"^[a-z0-9_]([a-z0-9_\-]*[a-z0-9_])?$")

_MAX_IDENTIFIER_INPUT = 255  # hard cap before regex to prevent ReDoS on huge inputs


def validate_tenant_identifier(identifier: str) -> bool:
    """Validate a tenant slug: lowercase letters, digits, ``_`` and ``-``.

    Performs an explicit length check *before* the regex so pathologically
    large header or query values are rejected without running the pattern.
    """
    if not identifier or not isinstance(identifier, str):
        return False
    if len(identifier) > _MAX_IDENTIFIER_INPUT:
        return False
    return bool(_TENANT_IDENTIFIER_RE.match(identifier))


def assert_valid_identifier(identifier: str, context: str = "") -> str:
    """Return *identifier* unchanged or raise ``ValueError``.

    Used for identifiers that come from static configuration (domain maps,
    fixed subdomain patterns) where a bad value is an operator mistake.
    """
    if not validate_tenant_identifier(identifier):
        ctx = f" ({context})" if context else ""
        raise ValueError(
            f"Invalid tenant identifier{ctx}: {identifier!r}. "
            "Only lowercase letters, digits, underscores and hyphens are allowed."
        )
    return identifier


def normalize_host(host: str | None) -> str:
    """Lower-case *host*, trim it and strip a trailing ``:port``.

    Bracketed IPv6 literals keep their address::

        >>> normalize_host("Acme.Example.com:8443")
        'acme.example.com'
        >>> normalize_host("[::1]:8080")
        '::1'
    """
    if not host:
        return ""
    host = host.strip().lower()
    if host.startswith("["):
        end = host.find("]")
        return host[1:end] if end != -1 else host[1:]
    if host.count(":") == 1:
        host = host.split(":", 1)[0]
    return host.rstrip(".")


def validate_domain_pattern(pattern: str) -> bool:
    """Return True if *pattern* has the form ``*.<suffix>`` with one wildcard."""
    if not pattern or not isinstance(pattern, str):
        return False
    if not pattern.startswith("*.") or pattern.count("*") != 1:
        return False
    labels = pattern[2:].split(".")
    return all(_HOST_LABEL_RE.match(label) for label in labels)


__all__ = [
    "assert_valid_identifier",
    "normalize_host",
    "validate_domain_pattern",
    "validate_tenant_identifier",
]
