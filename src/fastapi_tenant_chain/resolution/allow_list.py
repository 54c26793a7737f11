"""Header allow-list guard.

Headers are client-controlled, so a header strategy may only influence
tenant resolution when its header name is explicitly allow-listed.  The
guard fails closed: an empty allow-list permits no header at all.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


class HeaderAllowList:
    """Immutable, case-insensitive set of header names trusted for resolution.

    HTTP header names are case-insensitive (RFC 9110 §5.1), so
    ``X-Tenant-Id`` and ``x-tenant-id`` are the same entry.  The original
    spelling is kept for diagnostics.

    Example::

        guard = HeaderAllowList(["X-Tenant-Id"])
        guard.permits("x-tenant-id")     # True
        guard.permits("X-Tenant-Slug")   # False
    """

    __slots__ = ("_names", "_normalized")

    def __init__(self, names: Iterable[str] = ()) -> None:
        cleaned = tuple(dict.fromkeys(n.strip() for n in names if n and n.strip()))
        self._names: tuple[str, ...] = cleaned
        self._normalized: frozenset[str] = frozenset(n.lower() for n in cleaned)

    @classmethod
    def only(cls, header_name: str) -> HeaderAllowList:
        return cls([header_name])

    def permits(self, header_name: str) -> bool:
        return bool(header_name) and header_name.strip().lower() in self._normalized

    @property
    def names(self) -> tuple[str, ...]:
        return self._names

    def __contains__(self, header_name: object) -> bool:
        return isinstance(header_name, str) and self.permits(header_name)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeaderAllowList):
            return NotImplemented
        return self._normalized == other._normalized

    def __hash__(self) -> int:
        return hash(self._normalized)

    def __repr__(self) -> str:
        return f"HeaderAllowList({list(self._names)!r})"


__all__ = ["HeaderAllowList"]
