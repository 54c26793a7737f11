"""TXT record lookup primitive used by the DNS-TXT strategy.

The strategy depends only on the :class:`DnsTxtLookup` protocol, so tests and
alternative transports can substitute any ``async (name, timeout)`` callable.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import dns.asyncresolver
import dns.exception
import dns.resolver

from fastapi_tenant_chain.core.exceptions import DnsLookupError

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


@runtime_checkable
class DnsTxtLookup(Protocol):
    """Look up the TXT values published under *name*.

    Implementations return an empty list when the name does not exist or has
    no TXT records, and raise :class:`DnsLookupError` with reason
    ``timeout``, ``servfail`` or ``dns_error`` on transport failure.
    """

    async def __call__(self, name: str, timeout: float) -> list[str]: ...


class DnsPythonTxtLookup:
    """:class:`DnsTxtLookup` backed by ``dnspython``'s asyncio resolver.

    Args:
        nameservers: Explicit nameserver addresses.  When omitted the system
            configuration (``/etc/resolv.conf``) is used.

    Example::

        lookup = DnsPythonTxtLookup(nameservers=["1.1.1.1"])
        values = await lookup("_tenant.acme.com", timeout=5)
    """

    def __init__(self, nameservers: Sequence[str] | None = None) -> None:
        if nameservers:
            self._resolver = dns.asyncresolver.Resolver(configure=False)
            self._resolver.nameservers = list(nameservers)
        else:
            self._resolver = dns.asyncresolver.Resolver()
        logger.info(
            "DnsPythonTxtLookup initialised nameservers=%s",
            list(nameservers) if nameservers else "system",
        )

    async def __call__(self, name: str, timeout: float) -> list[str]:
        try:
            answer = await asyncio.wait_for(
                self._resolver.resolve(name, "TXT", lifetime=timeout),
                timeout=timeout,
            )
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
            logger.debug("No TXT record for %s", name)
            return []
        except (TimeoutError, dns.exception.Timeout) as exc:
            raise DnsLookupError(name, "timeout", {"timeout": timeout}) from exc
        except dns.resolver.NoNameservers as exc:
            raise DnsLookupError(name, "servfail") from exc
        except dns.exception.DNSException as exc:
            raise DnsLookupError(name, "dns_error", {"error": str(exc)}) from exc

        return [
            b"".join(rdata.strings).decode("utf-8", errors="replace") for rdata in answer
        ]


__all__ = ["DnsPythonTxtLookup", "DnsTxtLookup"]
