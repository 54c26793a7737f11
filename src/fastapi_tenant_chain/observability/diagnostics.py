"""Per-request diagnostic records for the resolver chain.

A :class:`DiagnosticRecord` is built fresh for every call to
:meth:`ChainTenantResolver.resolve`, lists every strategy in configured order
with its outcome, and ends with the chain's decision.  It is what the
"debug tenant resolution" tooling prints and what is attached to
:class:`~fastapi_tenant_chain.core.exceptions.TenantResolutionError`.
"""
from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from fastapi_tenant_chain.core.types import OutcomeKind, ResolutionOutcome


class Decision(StrEnum):
    """Final decision of one chain invocation."""
    PENDING = "pending"
    RESOLVED = "resolved"
    NO_TENANT = "no_tenant"
    AMBIGUOUS = "ambiguous"
    FAILED = "failed"


class StrategyAttempt(BaseModel):
    """One line of the diagnostic record."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: OutcomeKind
    identifier: str | None = None
    reason: str | None = None

    @classmethod
    def from_outcome(cls, outcome: ResolutionOutcome) -> StrategyAttempt:
        return cls(
            name=outcome.strategy,
            kind=outcome.kind,
            identifier=outcome.identifier,
            reason=outcome.reason,
        )


class DiagnosticRecord(BaseModel):
    """Ordered strategy attempts plus the chain's final decision."""

    strict: bool
    header_allow_list: tuple[str, ...] = ()
    attempts: list[StrategyAttempt] = Field(default_factory=list)
    decision: Decision = Decision.PENDING
    identifier: str | None = None
    strategy: str | None = None
    elapsed_ms: float | None = None

    def record(self, outcome: ResolutionOutcome) -> None:
        self.attempts.append(StrategyAttempt.from_outcome(outcome))

    def finish(
        self,
        decision: Decision,
        identifier: str | None = None,
        strategy: str | None = None,
        elapsed_ms: float | None = None,
    ) -> None:
        self.decision = decision
        self.identifier = identifier
        self.strategy = strategy
        self.elapsed_ms = elapsed_ms

    def resolved_by(self) -> dict[str, str]:
        """Map each resolving strategy to its identifier, in chain order."""
        return {
            a.name: a.identifier
            for a in self.attempts
            if a.kind == OutcomeKind.RESOLVED and a.identifier is not None
        }

    def skipped(self) -> list[StrategyAttempt]:
        return [a for a in self.attempts if a.kind == OutcomeKind.SKIPPED]

    def errors(self) -> list[StrategyAttempt]:
        return [a for a in self.attempts if a.kind == OutcomeKind.ERROR]

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict form for structured logging and JSON error bodies."""
        return self.model_dump(mode="json", exclude_none=True)


__all__ = ["Decision", "DiagnosticRecord", "StrategyAttempt"]
