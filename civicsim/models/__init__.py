"""Data models for the simulation kernel."""

from civicsim.models.council import CouncilSeat, CouncilState
from civicsim.models.cycle import AuditIssue, CycleReport, CycleSeedRecord, ReplayReport, Summary
from civicsim.models.enums import (
    Faction,
    InitiativeStatus,
    InitiativeType,
    RippleCategory,
    RippleDirection,
    RippleStatus,
    RunMode,
    SeatStatus,
)
from civicsim.models.initiative import Initiative, SwingVoterDecision, VoteOutcome
from civicsim.models.ripple import Ripple
from civicsim.models.telemetry import CycleTelemetry, ErrorEntry, PhaseResult
from civicsim.models.world import NeighborhoodDemographics, WorldState

__all__ = [
    "AuditIssue",
    "CouncilSeat",
    "CouncilState",
    "CycleReport",
    "CycleSeedRecord",
    "CycleTelemetry",
    "ErrorEntry",
    "Faction",
    "Initiative",
    "InitiativeStatus",
    "InitiativeType",
    "NeighborhoodDemographics",
    "PhaseResult",
    "ReplayReport",
    "Ripple",
    "RippleCategory",
    "RippleDirection",
    "RippleStatus",
    "RunMode",
    "SeatStatus",
    "Summary",
    "SwingVoterDecision",
    "VoteOutcome",
    "WorldState",
]
