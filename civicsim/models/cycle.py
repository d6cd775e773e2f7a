"""Per-cycle accumulators and the reports the pipeline returns."""

from __future__ import annotations

import datetime  # noqa: TC003  # Pydantic requires runtime import for datetime fields
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from civicsim.models.enums import RunMode
from civicsim.models.initiative import VoteOutcome  # noqa: TC001
from civicsim.models.ledger import FlushStats, IntentSummary
from civicsim.models.telemetry import PhaseResult  # noqa: TC001


class AuditIssue(BaseModel):
    """A caught phase failure, kept on the summary for the rest of the cycle."""

    cycle: int
    phase: str
    error_type: str = ""
    message: str = ""

    model_config = ConfigDict(frozen=True)


class Summary(BaseModel):
    """The one shared accumulator of a cycle. Owned by the pipeline for the cycle's duration."""

    counters: dict[str, int] = Field(default_factory=dict)
    outputs: dict[str, Any] = Field(default_factory=dict, description="Per-phase return values")
    audit_issues: list[AuditIssue] = Field(default_factory=list)
    initiative_events: list[str] = Field(default_factory=list)
    votes_this_cycle: list[VoteOutcome] = Field(default_factory=list)
    grants_this_cycle: list[VoteOutcome] = Field(default_factory=list)
    positive_initiatives: list[str] = Field(default_factory=list)
    failed_initiatives: list[str] = Field(default_factory=list)
    outcomes: dict[str, str] = Field(
        default_factory=dict, description="Initiative id -> outcome for everything resolved this cycle"
    )

    def bump(self, counter: str, n: int = 1) -> None:
        self.counters[counter] = self.counters.get(counter, 0) + n


class CycleSeedRecord(BaseModel):
    """What a normal cycle stores so it can be replayed later."""

    cycle: int
    seed: int
    timestamp: datetime.datetime
    mode: RunMode = RunMode.NORMAL
    fingerprint: str = ""
    outcomes: dict[str, str] = Field(default_factory=dict)
    intent_counts: dict[str, int] = Field(default_factory=dict)
    errors: int = 0


class CycleReport(BaseModel):
    cycle: int
    mode: RunMode
    seed: int
    timestamp: datetime.datetime
    phases: list[PhaseResult] = Field(default_factory=list)
    audit_issues: list[AuditIssue] = Field(default_factory=list)
    intents: IntentSummary = Field(default_factory=IntentSummary)
    flush: FlushStats = Field(default_factory=FlushStats)
    fingerprint: str = ""
    outcomes: dict[str, str] = Field(default_factory=dict)
    counters: dict[str, int] = Field(default_factory=dict)

    @property
    def error_count(self) -> int:
        return len(self.audit_issues) + len(self.flush.errors)

    @property
    def succeeded(self) -> bool:
        return all(p.success for p in self.phases)


class ReplayReport(BaseModel):
    """Comparison of a replayed cycle against its recorded seed record."""

    cycle: int
    seed: int
    seed_recorded: bool = Field(description="False when no seed record existed and the cycle id was used")
    inputs_restored: bool = Field(description="True when archived pre-cycle inputs were replayed")
    match: bool
    recorded_fingerprint: str = ""
    replayed_fingerprint: str = ""
    differences: list[str] = Field(default_factory=list)
    report: CycleReport
