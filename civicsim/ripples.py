"""Ripple engine: resolved initiatives become fading effects on world state."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from civicsim.civic.rules import ripple_rule_for
from civicsim.ledger.schema import INITIATIVE_RIPPLES, RIPPLE_HEADER, ripple_to_row
from civicsim.models.enums import RippleDirection, RippleStatus
from civicsim.models.ripple import Ripple

if TYPE_CHECKING:
    from collections.abc import Iterable

    from civicsim.context import CycleContext
    from civicsim.models.initiative import VoteOutcome

log = logging.getLogger(__name__)

POSITIVE_STRENGTH = 1.0
NEGATIVE_STRENGTH = -0.6
CREATION_JOLT = 0.5
APPLY_RATE = 0.1


class RipplePassResult(BaseModel):
    """What one ripple pass did."""

    applied: list[str] = Field(default_factory=list, description="Ripple ids applied this cycle")
    expired: list[str] = Field(default_factory=list)
    skipped_new: int = Field(default=0, description="Ripples created this cycle, first applied next cycle")


def build_ripple(outcome: VoteOutcome, cycle: int) -> Ripple:
    """Ripple for a passed/approved (positive) or failed/denied (negative) outcome."""
    positive = outcome.is_positive
    rule = ripple_rule_for(outcome.name)
    effects = {key: pos if positive else neg for key, (pos, neg) in rule.effects.items()}
    return Ripple(
        ripple_id=f"RIP-{cycle}-{outcome.initiative_id}",
        initiative_id=outcome.initiative_id,
        initiative_name=outcome.name,
        category=rule.category,
        direction=RippleDirection.POSITIVE if positive else RippleDirection.NEGATIVE,
        strength=POSITIVE_STRENGTH if positive else NEGATIVE_STRENGTH,
        effects=effects,
        affected_neighborhoods=list(outcome.affected_neighborhoods),
        start_cycle=cycle,
        duration=rule.duration,
        end_cycle=cycle + rule.duration,
    )


def create_ripple(ctx: CycleContext, outcome: VoteOutcome) -> Ripple:
    """Build, persist and register a ripple, with a half-strength sentiment jolt to the city."""
    ripple = build_ripple(outcome, ctx.cycle)
    sentiment = ripple.effects.get("sentiment")
    if sentiment:
        ctx.world.adjust_city("sentiment", sentiment * CREATION_JOLT)
    row = ctx.ledger.queue_append_row(INITIATIVE_RIPPLES, ripple_to_row(ripple), header=RIPPLE_HEADER)
    ripple = ripple.model_copy(update={"row": row})
    ctx.world.ripples.append(ripple)
    ctx.summary.bump("ripples_created")
    log.info(
        "Ripple %s: %s -> %s (%s) affecting %s for %d cycles",
        ripple.ripple_id, ripple.initiative_name, ripple.category, ripple.direction,
        ", ".join(ripple.affected_neighborhoods) or "city", ripple.duration,
    )
    return ripple


def _apply(ctx: CycleContext, ripple: Ripple, decay: float) -> None:
    for key, coefficient in ripple.effects.items():
        delta = coefficient * decay * APPLY_RATE
        if ripple.is_city_wide:
            ctx.world.adjust_city(key, delta)
            continue
        for neighborhood in ripple.affected_neighborhoods:
            ctx.world.adjust_neighborhood(neighborhood, key, delta)
        if key == "sentiment":
            ctx.world.adjust_city(key, delta)


def apply_active_ripples(ctx: CycleContext) -> RipplePassResult:
    """Decay and apply every active ripple; expire those past their end cycle."""
    result = RipplePassResult()
    still_active: list[Ripple] = []
    for ripple in ctx.world.ripples:
        if ripple.status == RippleStatus.EXPIRED:
            continue
        if ripple.start_cycle >= ctx.cycle:
            result.skipped_new += 1
            still_active.append(ripple)
            continue
        if ripple.is_expired_at(ctx.cycle):
            result.expired.append(ripple.ripple_id)
            if ripple.row is not None:
                ctx.ledger.queue_cell_write(INITIATIVE_RIPPLES, ripple.row, "Status", RippleStatus.EXPIRED)
            log.info("Ripple %s (%s) expired after %d cycles", ripple.ripple_id, ripple.initiative_name, ripple.duration)
            continue

        decay = min(ripple.decay_factor, ripple.decay_at(ctx.cycle))
        _apply(ctx, ripple, decay)
        ripple = ripple.model_copy(update={"decay_factor": decay})
        if ripple.row is not None:
            ctx.ledger.queue_cell_write(INITIATIVE_RIPPLES, ripple.row, "DecayFactor", round(decay, 6))
        result.applied.append(ripple.ripple_id)
        still_active.append(ripple)

    ctx.world.ripples = still_active
    ctx.summary.bump("ripples_applied", len(result.applied))
    ctx.summary.bump("ripples_expired", len(result.expired))
    if result.applied or result.expired:
        log.info("Ripples: %d applied, %d expired this cycle", len(result.applied), len(result.expired))
    return result


def effects_for_neighborhood(ripples: Iterable[Ripple], neighborhood: str, cycle: int) -> dict[str, float]:
    """Decay-weighted sum of coefficients from active ripples touching *neighborhood*.

    City-wide ripples always count.
    """
    combined: dict[str, float] = {}
    for ripple in ripples:
        if ripple.is_expired_at(cycle) or not ripple.touches(neighborhood):
            continue
        decay = ripple.decay_at(cycle)
        for key, coefficient in ripple.effects.items():
            combined[key] = combined.get(key, 0.0) + coefficient * decay
    return combined
