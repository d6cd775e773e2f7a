"""Ripple records: time-boxed, decaying consequences of a resolved initiative."""

from __future__ import annotations

from pydantic import BaseModel, Field

from civicsim.models.enums import RippleCategory, RippleDirection, RippleStatus

DECAY_FLOOR = 0.2
DECAY_SPAN = 0.8


class Ripple(BaseModel):
    ripple_id: str
    initiative_id: str = ""
    initiative_name: str
    category: RippleCategory
    direction: RippleDirection
    strength: float = Field(description="1.0 for positive outcomes, -0.6 for negative")
    effects: dict[str, float] = Field(
        default_factory=dict, description="Effect coefficient per world-state scalar"
    )
    affected_neighborhoods: list[str] = Field(
        default_factory=list, description="Empty means city-wide"
    )
    start_cycle: int
    duration: int
    end_cycle: int
    status: RippleStatus = RippleStatus.ACTIVE
    decay_factor: float = 1.0
    row: int | None = Field(default=None, description="0-based row in the ripple store once persisted")

    @property
    def is_city_wide(self) -> bool:
        return not self.affected_neighborhoods

    def touches(self, neighborhood: str) -> bool:
        if self.is_city_wide:
            return True
        target = neighborhood.strip().lower()
        return any(n.strip().lower() == target for n in self.affected_neighborhoods)

    def decay_at(self, cycle: int) -> float:
        """Linear fade from 1.0 to the 0.2 floor over the ripple's duration."""
        cycles_active = max(0, cycle - self.start_cycle)
        decay = 1.0 - (cycles_active / self.duration) * DECAY_SPAN if self.duration > 0 else DECAY_FLOOR
        return max(DECAY_FLOOR, min(1.0, decay))

    def is_expired_at(self, cycle: int) -> bool:
        return self.status == RippleStatus.EXPIRED or cycle >= self.end_cycle
