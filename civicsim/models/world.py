"""World-state scalars and neighborhood demographics."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from civicsim.models.ripple import Ripple  # noqa: TC001  # Pydantic needs the runtime type

if TYPE_CHECKING:
    from collections.abc import Iterable

# Scalar name -> default value. Ripple effect coefficients use the same names.
SCALAR_DEFAULTS: dict[str, float] = {
    "sentiment": 0.0,
    "community": 1.0,
    "retail": 1.0,
    "traffic": 1.0,
    "nightlife": 1.0,
    "sickness": 0.0,
    "unemployment": 0.0,
}

SENTIMENT_MIN = -1.0
SENTIMENT_MAX = 1.0


def clamp_scalar(key: str, value: float) -> float:
    if key == "sentiment":
        return max(SENTIMENT_MIN, min(SENTIMENT_MAX, value))
    return max(0.0, value)


class NeighborhoodDemographics(BaseModel):
    neighborhood: str
    students: int = 0
    adults: int = 0
    seniors: int = 0
    unemployed: int = 0
    sick: int = 0

    @property
    def population(self) -> int:
        return self.students + self.adults + self.seniors

    def _ratio(self, count: int) -> float:
        return count / self.population if self.population > 0 else 0.0

    @property
    def student_ratio(self) -> float:
        return self._ratio(self.students)

    @property
    def adult_ratio(self) -> float:
        return self._ratio(self.adults)

    @property
    def senior_ratio(self) -> float:
        return self._ratio(self.seniors)

    @property
    def unemployment_rate(self) -> float:
        return self._ratio(self.unemployed)

    @property
    def sickness_rate(self) -> float:
        return self._ratio(self.sick)

    @classmethod
    def aggregate(cls, rows: Iterable[NeighborhoodDemographics], label: str = "aggregate") -> NeighborhoodDemographics:
        total = cls(neighborhood=label)
        for r in rows:
            total = total.model_copy(update={
                "students": total.students + r.students,
                "adults": total.adults + r.adults,
                "seniors": total.seniors + r.seniors,
                "unemployed": total.unemployed + r.unemployed,
                "sick": total.sick + r.sick,
            })
        return total


class WorldState(BaseModel):
    """City and neighborhood scalars the phases read and adjust during a cycle."""

    city: dict[str, float] = Field(default_factory=lambda: dict(SCALAR_DEFAULTS))
    neighborhoods: dict[str, dict[str, float]] = Field(default_factory=dict)
    demographics: dict[str, NeighborhoodDemographics] = Field(default_factory=dict)
    ripples: list[Ripple] = Field(default_factory=list)
    cycle_count: int = Field(default=0, description="Last completed cycle per the world config store")
    loaded: bool = Field(default=False, description="True once read from the ledger; only a loaded state is persisted")

    @property
    def sentiment(self) -> float:
        return self.city.get("sentiment", 0.0)

    def adjust_city(self, key: str, delta: float) -> float:
        value = clamp_scalar(key, self.city.get(key, SCALAR_DEFAULTS.get(key, 0.0)) + delta)
        self.city[key] = value
        return value

    def adjust_neighborhood(self, neighborhood: str, key: str, delta: float) -> float:
        scalars = self.neighborhoods.setdefault(neighborhood, dict(SCALAR_DEFAULTS))
        value = clamp_scalar(key, scalars.get(key, SCALAR_DEFAULTS.get(key, 0.0)) + delta)
        scalars[key] = value
        return value

    def demographics_for(self, names: Iterable[str]) -> list[NeighborhoodDemographics]:
        by_key = {k.strip().lower(): v for k, v in self.demographics.items()}
        return [by_key[n.strip().lower()] for n in names if n.strip().lower() in by_key]
