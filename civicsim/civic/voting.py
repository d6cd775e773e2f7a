"""Resolution algorithms for council votes, external grants and visioning phases.

All randomness comes in through the ``rng`` argument, one draw per decision.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, NamedTuple

from civicsim.civic import rules
from civicsim.models.enums import Faction, InitiativeStatus, ProbabilitySource
from civicsim.models.initiative import SwingVoterDecision, VoteOutcome

if TYPE_CHECKING:
    from civicsim.models.council import CouncilState
    from civicsim.models.initiative import Initiative
    from civicsim.rng import RandomSource

log = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"\s*(\d+)")


class VoteRequirement(NamedTuple):
    needed: int
    supermajority: bool


def parse_requirement(text: str) -> VoteRequirement:
    """'6-3' -> needs 6, supermajority. Unparseable text means a simple majority of 5."""
    match = _LEADING_INT.match(text or "")
    needed = int(match.group(1)) if match else rules.DEFAULT_REQUIRED_VOTES
    if needed <= 0:
        needed = rules.DEFAULT_REQUIRED_VOTES
    return VoteRequirement(needed, needed >= rules.SUPERMAJORITY_VOTES)


def clamp(value: float, low: float = rules.SWING_FLOOR, high: float = rules.SWING_CEILING) -> float:
    return max(low, min(high, value))


def projection_probability(projection: str, sentiment: float, supermajority: bool) -> float:
    """Primary swing voter probability before the demographic modifier."""
    p = rules.first_match(rules.PROJECTION_RULES, projection, rules.BASE_PROBABILITY)
    p += sentiment * rules.PRIMARY_SENTIMENT_WEIGHT
    if supermajority:
        p -= rules.SUPERMAJORITY_PENALTY
    return clamp(p)


def lean_probability(lean: str, sentiment: float) -> float:
    """Secondary swing voter probability before the demographic modifier."""
    p = rules.LEAN_LABELS.get((lean or "").strip().lower(), rules.BASE_PROBABILITY)
    return clamp(p + sentiment * rules.LEAN_SENTIMENT_WEIGHT)


def unnamed_probability(sentiment: float) -> float:
    return clamp(rules.BASE_PROBABILITY + sentiment * rules.UNNAMED_SENTIMENT_WEIGHT)


def _take(pool: list[str], name: str) -> bool:
    """Remove *name* from *pool* (case-insensitive); False when not present."""
    target = name.strip().lower()
    for i, candidate in enumerate(pool):
        if candidate.strip().lower() == target:
            del pool[i]
            return True
    return False


def _decide(name: str, probability: float, source: ProbabilitySource, rng: RandomSource, lean: str = "") -> SwingVoterDecision:
    p = clamp(probability)
    return SwingVoterDecision(name=name, vote=rng() < p, probability=p, source=source, lean=lean)


def resolve_council_vote(
    initiative: Initiative,
    council: CouncilState,
    *,
    sentiment: float,
    demographic: float,
    rng: RandomSource,
) -> VoteOutcome:
    """Faction blocs, then named swing voters, then remaining independents."""
    requirement = parse_requirement(initiative.vote_requirement)
    available = council.available_votes

    if available < requirement.needed:
        log.info(
            "Initiative %s delayed: %d vote(s) available, %d needed",
            initiative.initiative_id, available, requirement.needed,
        )
        return VoteOutcome(
            initiative_id=initiative.initiative_id,
            name=initiative.name,
            initiative_type=initiative.initiative_type,
            status=InitiativeStatus.DELAYED,
            outcome="DELAYED",
            tally=f"{available} available, {requirement.needed} needed",
            required_votes=requirement.needed,
            consequences=rules.DELAYED_CONSEQUENCES,
            notes=(
                f"Vote delayed. Only {available} votes available; {requirement.needed} required. "
                f"{council.vacant} seats vacant."
            ),
            affected_neighborhoods=list(initiative.affected_neighborhoods),
        )

    yes = council.available_in(initiative.lead_faction) if initiative.lead_faction != Faction.IND else 0
    no = 0
    if initiative.opposition_faction not in (Faction.IND, initiative.lead_faction):
        no = council.available_in(initiative.opposition_faction)

    remaining = council.available_independents
    decisions: list[SwingVoterDecision] = []

    primary = initiative.swing_voter
    if primary and _take(remaining, primary):
        p = projection_probability(initiative.projection, sentiment, requirement.supermajority)
        decisions.append(_decide(primary, p + demographic, ProbabilitySource.PROJECTION, rng))

    secondary = initiative.swing_voter_2
    if secondary and secondary.strip().lower() != primary.strip().lower() and _take(remaining, secondary):
        lean = initiative.swing_voter_2_lean
        p = lean_probability(lean, sentiment)
        decisions.append(_decide(secondary, p + demographic, ProbabilitySource.LEAN, rng, lean=lean))

    for name in remaining:
        decisions.append(_decide(name, unnamed_probability(sentiment) + demographic, ProbabilitySource.SENTIMENT, rng))

    for d in decisions:
        if d.vote:
            yes += 1
        else:
            no += 1

    passed = yes >= requirement.needed
    if passed:
        notes = f"Passed {yes}-{no}."
    else:
        notes = f"Failed {yes}-{no}."
        if requirement.supermajority:
            notes += " Supermajority requirement not met."
    for d in decisions:
        if d.source != ProbabilitySource.SENTIMENT:
            notes += f" {d.name} voted {'yes' if d.vote else 'no'}."
    absent = council.absent_members
    if absent:
        notes += f" ({', '.join(m.name for m in absent)} absent)"
    if council.vacant:
        notes += f" [{council.vacant} seats vacant]"

    return VoteOutcome(
        initiative_id=initiative.initiative_id,
        name=initiative.name,
        initiative_type=initiative.initiative_type,
        status=InitiativeStatus.PASSED if passed else InitiativeStatus.FAILED,
        outcome="PASSED" if passed else "FAILED",
        tally=f"{yes}-{no}",
        yes_votes=yes,
        no_votes=no,
        required_votes=requirement.needed,
        swing_decisions=decisions,
        consequences=rules.PASSED_CONSEQUENCES if passed else rules.FAILED_CONSEQUENCES,
        notes=notes,
        affected_neighborhoods=list(initiative.affected_neighborhoods),
    )


def grant_probability(projection: str, sentiment: float) -> float:
    p = rules.first_match(rules.GRANT_RULES, projection, rules.BASE_PROBABILITY)
    return clamp(p + sentiment * rules.GRANT_SENTIMENT_WEIGHT, rules.GRANT_FLOOR, rules.GRANT_CEILING)


def resolve_grant(initiative: Initiative, *, sentiment: float, rng: RandomSource) -> VoteOutcome:
    """An outside funder decides with a single roll."""
    p = grant_probability(initiative.projection, sentiment)
    approved = rng() < p
    return VoteOutcome(
        initiative_id=initiative.initiative_id,
        name=initiative.name,
        initiative_type=initiative.initiative_type,
        status=InitiativeStatus.APPROVED if approved else InitiativeStatus.DENIED,
        outcome="APPROVED" if approved else "DENIED",
        probability=p,
        consequences=rules.GRANT_APPROVED_CONSEQUENCES if approved else rules.GRANT_DENIED_CONSEQUENCES,
        notes=rules.GRANT_APPROVED_NOTES if approved else rules.GRANT_DENIED_NOTES,
        affected_neighborhoods=list(initiative.affected_neighborhoods),
    )


def resolve_visioning(initiative: Initiative) -> VoteOutcome:
    return VoteOutcome(
        initiative_id=initiative.initiative_id,
        name=initiative.name,
        initiative_type=initiative.initiative_type,
        status=InitiativeStatus.VISIONING_COMPLETE,
        outcome="COMPLETED",
        consequences=rules.VISIONING_CONSEQUENCES,
        notes=rules.VISIONING_NOTES,
        affected_neighborhoods=list(initiative.affected_neighborhoods),
    )
