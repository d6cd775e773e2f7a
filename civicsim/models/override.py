"""Result model for operator-triggered initiative resolution."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from civicsim.models.enums import ResolutionStatus
from civicsim.models.initiative import VoteOutcome  # noqa: TC001
from civicsim.models.ledger import FlushStats  # noqa: TC001


class ManualResolution(BaseModel):
    """What happened when an operator asked to resolve one initiative now.

    Refusals come back as a status, never as an exception.
    """

    initiative_id: str = Field(description="Initiative the operator targeted")
    status: ResolutionStatus = Field(description="resolved, already-resolved, not-found or invalid-schema")
    message: str = Field(default="", description="Human-readable explanation")
    cycle: int | None = Field(default=None, description="Cycle the resolution was recorded against")
    outcome: VoteOutcome | None = Field(default=None)
    flush: FlushStats | None = Field(default=None)

    model_config = ConfigDict(frozen=True)

    @property
    def resolved(self) -> bool:
        return self.status == ResolutionStatus.RESOLVED
