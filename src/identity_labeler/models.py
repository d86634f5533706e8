"""Result types produced by the reconciliation components."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class OutcomeStatus(str, Enum):
    """What happened to a single object during a tick."""

    SKIPPED = "skipped"
    BOUND = "bound"
    RESTARTED = "restarted"
    FAILED = "failed"


@dataclass(frozen=True)
class ItemOutcome:
    """Per-object outcome of an annotate or restart pass."""

    kind: str
    namespace: str
    name: str
    status: OutcomeStatus
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "namespace": self.namespace,
            "name": self.name,
            "status": self.status.value,
            "reason": self.reason,
        }


@dataclass
class AnnotateResult:
    """Result of annotating one batch of ServiceAccounts.

    Attributes:
        changed: Names of ServiceAccounts newly bound, in processing order.
        outcomes: One outcome per ServiceAccount examined.
    """

    changed: list[str] = field(default_factory=list)
    outcomes: list[ItemOutcome] = field(default_factory=list)

    @property
    def failed(self) -> list[ItemOutcome]:
        return [o for o in self.outcomes if o.status == OutcomeStatus.FAILED]


@dataclass
class RestartResult:
    """Result of restarting a batch of Deployments."""

    restarted: list[str] = field(default_factory=list)
    outcomes: list[ItemOutcome] = field(default_factory=list)

    @property
    def failed(self) -> list[ItemOutcome]:
        return [o for o in self.outcomes if o.status == OutcomeStatus.FAILED]


@dataclass
class ReconcileResult:
    """Result of a single reconciliation tick."""

    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    service_accounts_seen: int = 0
    changed_service_accounts: list[str] = field(default_factory=list)
    impacted_deployments: list[str] = field(default_factory=list)
    restarted_deployments: list[str] = field(default_factory=list)
    outcomes: list[ItemOutcome] = field(default_factory=list)
    impact_error: Exception | None = None

    @property
    def duration_seconds(self) -> float:
        """Calculate duration in seconds."""
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    @property
    def failures(self) -> int:
        return sum(1 for o in self.outcomes if o.status == OutcomeStatus.FAILED)

    def to_dict(self) -> dict[str, Any]:
        """Summary suitable for structured logging or JSON output."""
        return {
            "start_time": self.start_time.isoformat().replace("+00:00", "Z"),
            "duration_seconds": self.duration_seconds,
            "service_accounts_seen": self.service_accounts_seen,
            "changed_service_accounts": list(self.changed_service_accounts),
            "impacted_deployments": list(self.impacted_deployments),
            "restarted_deployments": list(self.restarted_deployments),
            "failures": self.failures,
            "impact_error": str(self.impact_error) if self.impact_error else None,
        }
