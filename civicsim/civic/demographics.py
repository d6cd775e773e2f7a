"""Demographic alignment: how affected neighborhoods shift swing probabilities."""

from __future__ import annotations

from typing import TYPE_CHECKING

from civicsim.civic.rules import DEMOGRAPHIC_CAP, DEMOGRAPHIC_RULES, in_family
from civicsim.models.world import NeighborhoodDemographics

if TYPE_CHECKING:
    from collections.abc import Iterable


def demographic_modifier(name: str, neighborhoods: Iterable[NeighborhoodDemographics]) -> float:
    """Bounded adjustment in [-0.15, +0.15] for an initiative named *name*.

    Rules are evaluated against the aggregate of the affected neighborhoods.
    Overlapping keyword families all apply; only the total is clamped.
    """
    rows = list(neighborhoods)
    if not rows:
        return 0.0
    profile = NeighborhoodDemographics.aggregate(rows)
    if profile.population == 0:
        return 0.0

    total = 0.0
    for rule in DEMOGRAPHIC_RULES:
        if in_family(rule.family, name) and getattr(profile, rule.metric) > rule.threshold:
            total += rule.adjustment
    return max(-DEMOGRAPHIC_CAP, min(DEMOGRAPHIC_CAP, total))
