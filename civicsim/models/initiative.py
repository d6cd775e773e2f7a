"""Initiative records and vote outcomes."""

from __future__ import annotations

from pydantic import BaseModel, Field

from civicsim.models.enums import (
    Faction,
    InitiativeStatus,
    InitiativeType,
    ProbabilitySource,
)


class Initiative(BaseModel):
    """One row of the initiative tracker, mapped at the store boundary."""

    row: int = Field(description="0-based data row in the initiative store")
    initiative_id: str
    name: str
    initiative_type: InitiativeType = InitiativeType.COUNCIL_VOTE
    status: InitiativeStatus = InitiativeStatus.PROPOSED
    budget: str = ""
    vote_requirement: str = Field(default="5-4", description="e.g. '5-4' or '6-3'")
    vote_cycle: int = 0
    projection: str = Field(default="", description="Qualitative projection for the primary swing voter")
    lead_faction: Faction = Faction.OPP
    opposition_faction: Faction = Faction.CRC
    swing_voter: str = ""
    swing_voter_2: str = ""
    swing_voter_2_lean: str = ""
    outcome: str = ""
    consequences: str = ""
    affected_neighborhoods: list[str] = Field(default_factory=list)
    notes: str = ""
    last_updated: str = ""


class SwingVoterDecision(BaseModel):
    """How one swing voter decided, and why."""

    name: str
    vote: bool
    probability: float
    source: ProbabilitySource
    lean: str = ""


class VoteOutcome(BaseModel):
    """Transient result of resolving one initiative in one cycle."""

    initiative_id: str
    name: str
    initiative_type: InitiativeType
    status: InitiativeStatus
    outcome: str = Field(description="PASSED, FAILED, DELAYED, APPROVED, DENIED or COMPLETED")
    tally: str = Field(default="", description="'6-3', or '4 available, 5 needed' when delayed")
    yes_votes: int = 0
    no_votes: int = 0
    required_votes: int = 0
    probability: float | None = Field(default=None, description="Grant approval probability")
    swing_decisions: list[SwingVoterDecision] = Field(default_factory=list)
    consequences: str = ""
    notes: str = ""
    affected_neighborhoods: list[str] = Field(default_factory=list)
    manual: bool = False

    @property
    def is_positive(self) -> bool:
        return self.status in (InitiativeStatus.PASSED, InitiativeStatus.APPROVED)

    @property
    def is_negative(self) -> bool:
        return self.status in (InitiativeStatus.FAILED, InitiativeStatus.DENIED)


class InitiativeDigestEntry(BaseModel):
    initiative_id: str
    name: str
    initiative_type: InitiativeType
    status: InitiativeStatus
    vote_cycle: int
    cycles_until_vote: int | None = None
    outcome: str = ""
    swing_voter: str = ""


class InitiativeDigest(BaseModel):
    """Active, pending and recently resolved initiatives for downstream consumers."""

    cycle: int
    active: list[InitiativeDigestEntry] = Field(default_factory=list)
    pending: list[InitiativeDigestEntry] = Field(default_factory=list)
    recent_outcomes: list[InitiativeDigestEntry] = Field(default_factory=list)
