"""DNS-TXT outcome cache backends."""

from fastapi_tenant_chain.cache.dns_cache import (
    DnsCache,
    InMemoryDnsCache,
    NullDnsCache,
    RedisDnsCache,
    is_cacheable,
)

__all__ = [
    "DnsCache",
    "InMemoryDnsCache",
    "NullDnsCache",
    "RedisDnsCache",
    "is_cacheable",
]
