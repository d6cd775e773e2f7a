"""Council composition models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from civicsim.models.enums import Faction, SeatStatus

COUNCIL_SIZE = 9


class CouncilSeat(BaseModel):
    """One office from the civic office ledger."""

    office_id: str = Field(description="Office identifier, e.g. COUNCIL-D3 or MAYOR-01")
    title: str = Field(default="")
    seat_type: str = Field(default="elected", description="elected or appointed")
    district: str = Field(default="")
    holder: str = Field(default="", description="Name of the current holder")
    holder_id: str = Field(default="")
    status: SeatStatus = Field(default=SeatStatus.ACTIVE)
    faction: Faction | None = Field(default=None)
    voting_power: bool = Field(default=True)

    model_config = ConfigDict(frozen=True)

    @property
    def is_vacant(self) -> bool:
        return (
            self.status == SeatStatus.VACANT
            or not self.holder.strip()
            or self.holder.strip().upper() == "TBD"
        )

    @property
    def is_available(self) -> bool:
        """Only an active, filled seat with voting power casts a vote."""
        return self.voting_power and not self.is_vacant and self.status == SeatStatus.ACTIVE


class AbsentMember(BaseModel):
    name: str
    reason: SeatStatus

    model_config = ConfigDict(frozen=True)


class CouncilState(BaseModel):
    """Voting seats plus the non-voting executive, as loaded for one cycle."""

    seats: list[CouncilSeat] = Field(default_factory=list)
    executive: CouncilSeat | None = Field(
        default=None, description="Mayor's office: veto power, never a vote"
    )
    total_seats: int = COUNCIL_SIZE

    @property
    def filled(self) -> int:
        return sum(1 for s in self.seats if not s.is_vacant)

    @property
    def vacant(self) -> int:
        return max(0, self.total_seats - self.filled)

    @property
    def available_seats(self) -> list[CouncilSeat]:
        """Seats that will cast a ballot; a seat with no recognised faction never votes."""
        return [s for s in self.seats if s.is_available and s.faction is not None]

    @property
    def available_votes(self) -> int:
        return len(self.available_seats)

    def available_in(self, faction: Faction) -> int:
        return sum(1 for s in self.available_seats if s.faction == faction)

    @property
    def available_independents(self) -> list[str]:
        return [s.holder for s in self.available_seats if s.faction == Faction.IND]

    @property
    def absent_members(self) -> list[AbsentMember]:
        return [
            AbsentMember(name=s.holder, reason=s.status)
            for s in self.seats
            if not s.is_vacant and s.status != SeatStatus.ACTIVE
        ]

    @property
    def president(self) -> str | None:
        for seat in self.seats:
            if "president" in seat.title.lower() and not seat.is_vacant:
                return seat.holder
        return None
