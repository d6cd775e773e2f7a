"""Enums for kernel models."""

from __future__ import annotations

from enum import StrEnum


class RunMode(StrEnum):
    """How a cycle treats its queued ledger writes."""

    NORMAL = "normal"
    DRY_RUN = "dry-run"
    REPLAY = "replay"


class SeatStatus(StrEnum):
    """Condition of a council office holder."""

    ACTIVE = "active"
    HOSPITALIZED = "hospitalized"
    SERIOUS_CONDITION = "serious-condition"
    CRITICAL = "critical"
    INJURED = "injured"
    DECEASED = "deceased"
    RESIGNED = "resigned"
    RETIRED = "retired"
    VACANT = "vacant"


class Faction(StrEnum):
    """Council voting blocs. OPP and CRC vote en bloc; IND members are swing votes."""

    OPP = "OPP"
    CRC = "CRC"
    IND = "IND"


class InitiativeType(StrEnum):
    COUNCIL_VOTE = "council-vote"
    EXTERNAL_GRANT = "external-grant"
    VISIONING = "visioning"

    @classmethod
    def parse(cls, raw: str) -> InitiativeType:
        """Map ledger spellings onto a type. Anything unrecognised is a council vote."""
        key = (raw or "").strip().lower()
        if key in ("grant", "federal-grant", "external", "external-grant"):
            return cls.EXTERNAL_GRANT
        if key in ("visioning", "input"):
            return cls.VISIONING
        return cls.COUNCIL_VOTE


class InitiativeStatus(StrEnum):
    PROPOSED = "proposed"
    ACTIVE = "active"
    PENDING_VOTE = "pending-vote"
    PASSED = "passed"
    FAILED = "failed"
    DELAYED = "delayed"
    APPROVED = "approved"
    DENIED = "denied"
    VISIONING_COMPLETE = "visioning-complete"
    INACTIVE = "inactive"
    RESOLVED = "resolved"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES


_TERMINAL_STATUSES = frozenset({
    InitiativeStatus.PASSED,
    InitiativeStatus.FAILED,
    InitiativeStatus.APPROVED,
    InitiativeStatus.DENIED,
    InitiativeStatus.VISIONING_COMPLETE,
    InitiativeStatus.INACTIVE,
    InitiativeStatus.RESOLVED,
})


class RippleCategory(StrEnum):
    HEALTH = "health"
    TRANSIT = "transit"
    ECONOMIC = "economic"
    HOUSING = "housing"
    SAFETY = "safety"
    ENVIRONMENT = "environment"
    SPORTS = "sports"
    EDUCATION = "education"
    GENERAL = "general"


class RippleDirection(StrEnum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


class RippleStatus(StrEnum):
    ACTIVE = "active"
    EXPIRED = "expired"


class ProbabilitySource(StrEnum):
    """Where a swing voter's probability came from."""

    PROJECTION = "projection"
    LEAN = "lean"
    SENTIMENT = "sentiment"


class IntentKind(StrEnum):
    """Kinds of queued ledger writes."""

    CREATE = "create"
    CELL = "cell"
    APPEND = "append"


class ResolutionStatus(StrEnum):
    """Result of a manual resolve-now request."""

    RESOLVED = "resolved"
    ALREADY_RESOLVED = "already-resolved"
    NOT_FOUND = "not-found"
    INVALID_SCHEMA = "invalid-schema"
