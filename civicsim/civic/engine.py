"""Civic initiative engine: lifecycle advancement, resolution and write-back.

Per initiative, per cycle: terminal statuses are skipped; proposed/active
initiatives advance as their vote approaches; delayed initiatives are
rescheduled for the current cycle; initiatives whose vote cycle is now are
resolved by type. Every change is queued through the ledger adapter.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from civicsim.civic import rules
from civicsim.civic.demographics import demographic_modifier
from civicsim.civic.voting import resolve_council_vote, resolve_grant, resolve_visioning
from civicsim.config import KernelConfig
from civicsim.context import CycleContext
from civicsim.errors import SchemaError
from civicsim.ledger.adapter import LedgerAdapter
from civicsim.ledger.schema import (
    CIVIC_OFFICE_LEDGER,
    INITIATIVE_HEADER,
    INITIATIVE_TRACKER,
    load_council,
    load_initiatives,
)
from civicsim.models.cycle import AuditIssue
from civicsim.models.enums import InitiativeStatus, InitiativeType, ResolutionStatus, RunMode
from civicsim.models.initiative import Initiative, InitiativeDigest, InitiativeDigestEntry, VoteOutcome
from civicsim.models.override import ManualResolution
from civicsim.ripples import create_ripple
from civicsim.rng import CycleRng, cycle_seed, entropy_seed
from civicsim.world import load_world_state, persist_world_state, read_cycle_count

if TYPE_CHECKING:
    from collections.abc import Iterable

    from civicsim.ledger.backends import LedgerBackend
    from civicsim.models.council import CouncilState

log = logging.getLogger(__name__)

PHASE_NAME = "civic-initiatives"
_VOTABLE = (InitiativeStatus.ACTIVE, InitiativeStatus.PENDING_VOTE)


class CivicPassResult(BaseModel):
    """What one civic-initiatives pass did."""

    processed: int = 0
    skipped_terminal: int = 0
    advanced: list[str] = Field(default_factory=list)
    retried: list[str] = Field(default_factory=list)
    resolved: dict[str, str] = Field(default_factory=dict, description="Initiative id -> outcome")
    created_store: bool = False
    aborted: bool = False
    missing_columns: list[str] = Field(default_factory=list)
    digest: InitiativeDigest | None = None


def advance_lifecycle(initiative: Initiative, cycle: int) -> InitiativeStatus:
    """Status after proximity-based advancement (unchanged when nothing applies)."""
    status = initiative.status
    vote_cycle = initiative.vote_cycle
    if status == InitiativeStatus.PROPOSED and vote_cycle > 0 and vote_cycle - cycle <= rules.ACTIVATION_WINDOW:
        status = InitiativeStatus.ACTIVE
    if status == InitiativeStatus.ACTIVE and vote_cycle > 0 and vote_cycle == cycle + 1:
        status = InitiativeStatus.PENDING_VOTE
    return status


def resolve_initiative(
    initiative: Initiative,
    council: CouncilState,
    ctx: CycleContext,
) -> VoteOutcome:
    """Dispatch by initiative type. Every draw comes from the cycle RNG."""
    rng = ctx.rng
    sentiment = ctx.world.sentiment
    if initiative.initiative_type == InitiativeType.EXTERNAL_GRANT:
        return resolve_grant(initiative, sentiment=sentiment, rng=rng)
    if initiative.initiative_type == InitiativeType.VISIONING:
        return resolve_visioning(initiative)
    demographic = demographic_modifier(
        initiative.name, ctx.world.demographics_for(initiative.affected_neighborhoods),
    )
    return resolve_council_vote(initiative, council, sentiment=sentiment, demographic=demographic, rng=rng)


def _appended_notes(existing: str, entry: str) -> str:
    return f"{existing}\n{entry}" if existing else entry


def outcome_updates(initiative: Initiative, outcome: VoteOutcome, cycle: int, *, manual: bool = False) -> dict[str, Any]:
    """Column -> value changes that record *outcome* on the initiative's row."""
    prefix = "MANUAL " if manual else ""
    updates: dict[str, Any] = {
        "Status": outcome.status,
        "Outcome": outcome.outcome,
        "Consequences": outcome.consequences,
    }
    if outcome.notes:
        updates["Notes"] = _appended_notes(initiative.notes, f"{prefix}Cycle {cycle}: {outcome.notes}")
    return updates


def _queue_row(ledger: LedgerAdapter, initiative: Initiative, updates: dict[str, Any], now: datetime) -> None:
    if not updates:
        return
    header = ledger.get_all_rows(INITIATIVE_TRACKER).header
    for column, value in {**updates, "LastUpdated": now}.items():
        if column not in header:
            log.debug("Initiative_Tracker has no %s column; skipping write", column)
            continue
        ledger.queue_cell_write(INITIATIVE_TRACKER, initiative.row, column, value)


def record_outcome(ctx: CycleContext, outcome: VoteOutcome) -> None:
    """Summary bookkeeping, sentiment consequence and ripple hand-off for one outcome."""
    summary = ctx.summary
    summary.outcomes[outcome.initiative_id] = outcome.outcome
    summary.initiative_events.append(f"{outcome.initiative_id} {outcome.outcome} {outcome.tally}".strip())
    summary.bump("initiatives_resolved")
    if outcome.initiative_type == InitiativeType.COUNCIL_VOTE:
        summary.votes_this_cycle.append(outcome)
    elif outcome.initiative_type == InitiativeType.EXTERNAL_GRANT:
        summary.grants_this_cycle.append(outcome)

    if outcome.is_positive:
        ctx.world.adjust_city("sentiment", rules.CONSEQUENCE_SENTIMENT_SHIFT)
        summary.positive_initiatives.append(outcome.name)
    elif outcome.is_negative:
        ctx.world.adjust_city("sentiment", -rules.CONSEQUENCE_SENTIMENT_SHIFT)
        summary.failed_initiatives.append(outcome.name)
    else:
        return
    create_ripple(ctx, outcome)


def _process(ctx: CycleContext, initiative: Initiative, council: CouncilState, result: CivicPassResult) -> Initiative:
    cycle = ctx.cycle
    updates: dict[str, Any] = {}

    status = advance_lifecycle(initiative, cycle)
    if status != initiative.status:
        updates["Status"] = status
        result.advanced.append(initiative.initiative_id)
        log.info("Initiative %s advanced %s -> %s", initiative.initiative_id, initiative.status, status)

    vote_cycle = initiative.vote_cycle
    if status == InitiativeStatus.DELAYED:
        vote_cycle = cycle
        status = InitiativeStatus.PENDING_VOTE
        updates["VoteCycle"] = cycle
        updates["Status"] = status
        result.retried.append(initiative.initiative_id)
        log.info("Retrying delayed initiative %s", initiative.initiative_id)

    current = initiative.model_copy(update={"status": status, "vote_cycle": vote_cycle})
    if vote_cycle == cycle and status in _VOTABLE:
        outcome = resolve_initiative(current, council, ctx)
        updates.update(outcome_updates(current, outcome, cycle))
        current = current.model_copy(update={"status": outcome.status, "outcome": outcome.outcome})
        result.resolved[initiative.initiative_id] = outcome.outcome
        log.info(
            "Initiative %s (%s) resolved: %s %s",
            initiative.initiative_id, initiative.initiative_type, outcome.outcome, outcome.tally,
        )
        _queue_row(ctx.ledger, initiative, updates, ctx.now)
        record_outcome(ctx, outcome)
        return current

    _queue_row(ctx.ledger, initiative, updates, ctx.now)
    return current


def run_civic_initiatives(ctx: CycleContext) -> CivicPassResult:
    """One pass over every initiative in the tracker."""
    ledger = ctx.ledger
    result = CivicPassResult()
    snapshot = ledger.get_all_rows(INITIATIVE_TRACKER)
    if not snapshot.exists:
        log.info("%s does not exist; creating an empty tracker", INITIATIVE_TRACKER)
        ledger.queue_create_store(INITIATIVE_TRACKER, INITIATIVE_HEADER)
        result.created_store = True
        return result

    try:
        initiatives = load_initiatives(snapshot)
    except SchemaError as exc:
        log.error("Civic initiative pass aborted, nothing written: %s", exc)
        ctx.summary.audit_issues.append(
            AuditIssue(cycle=ctx.cycle, phase=PHASE_NAME, error_type=type(exc).__name__, message=str(exc))
        )
        result.aborted = True
        result.missing_columns = exc.missing
        return result

    council = load_council(ledger.get_all_rows(CIVIC_OFFICE_LEDGER))
    current: list[Initiative] = []
    for initiative in initiatives:
        if initiative.status.is_terminal:
            result.skipped_terminal += 1
            current.append(initiative)
            continue
        result.processed += 1
        current.append(_process(ctx, initiative, council, result))

    result.digest = initiative_digest(current, ctx.cycle)
    log.info(
        "Civic initiatives: %d processed, %d resolved, %d advanced, %d retried, %d terminal",
        result.processed, len(result.resolved), len(result.advanced), len(result.retried),
        result.skipped_terminal,
    )
    return result


def initiative_digest(initiatives: Iterable[Initiative], cycle: int) -> InitiativeDigest:
    """Active, pending and recently resolved initiatives, for downstream consumers."""
    digest = InitiativeDigest(cycle=cycle)
    for i in initiatives:
        entry = InitiativeDigestEntry(
            initiative_id=i.initiative_id,
            name=i.name,
            initiative_type=i.initiative_type,
            status=i.status,
            vote_cycle=i.vote_cycle,
            outcome=i.outcome,
            swing_voter=i.swing_voter,
        )
        if i.status == InitiativeStatus.ACTIVE:
            digest.active.append(entry.model_copy(update={"cycles_until_vote": i.vote_cycle - cycle}))
        elif i.status == InitiativeStatus.PENDING_VOTE:
            digest.pending.append(entry)
        elif i.status.is_terminal and i.status != InitiativeStatus.INACTIVE and i.vote_cycle >= cycle - rules.RECENT_WINDOW:
            digest.recent_outcomes.append(entry)
    return digest


def resolve_initiative_now(
    initiative_id: str,
    backend: LedgerBackend,
    *,
    config: KernelConfig | None = None,
    now: datetime | None = None,
) -> ManualResolution:
    """Operator override: resolve one initiative immediately, outside its scheduled cycle.

    Uses the same resolution path as the scheduled pass, against the current
    council, sentiment and demographics. Terminal initiatives are refused.
    Notes are tagged MANUAL. Writes are flushed before returning.
    """
    config = config or KernelConfig()
    ledger = LedgerAdapter(backend)
    cycle = read_cycle_count(ledger)

    snapshot = ledger.get_all_rows(INITIATIVE_TRACKER)
    if not snapshot.exists:
        return ManualResolution(
            initiative_id=initiative_id,
            status=ResolutionStatus.INVALID_SCHEMA,
            message=f"{INITIATIVE_TRACKER} does not exist",
        )
    try:
        initiatives = load_initiatives(snapshot)
    except SchemaError as exc:
        log.error("Manual resolution refused: %s", exc)
        return ManualResolution(initiative_id=initiative_id, status=ResolutionStatus.INVALID_SCHEMA, message=str(exc))

    target = next((i for i in initiatives if i.initiative_id == initiative_id.strip()), None)
    if target is None:
        log.warning("Manual resolution: initiative %s not found", initiative_id)
        return ManualResolution(
            initiative_id=initiative_id,
            status=ResolutionStatus.NOT_FOUND,
            message=f"Initiative not found: {initiative_id}",
        )
    if target.status.is_terminal:
        log.warning("Manual resolution: %s already %s", initiative_id, target.status)
        return ManualResolution(
            initiative_id=initiative_id,
            status=ResolutionStatus.ALREADY_RESOLVED,
            message=f"Initiative {initiative_id} already {target.status} ({target.outcome or 'no outcome'})",
            cycle=cycle,
        )

    seed = cycle_seed(config.base_seed, cycle) if config.base_seed is not None else entropy_seed()
    ctx = CycleContext(
        cycle=cycle,
        now=now or datetime.now(UTC),
        rng=CycleRng(seed),
        seed=seed,
        ledger=ledger,
        mode=RunMode.NORMAL,
    )
    load_world_state(ctx)
    council = load_council(ledger.get_all_rows(CIVIC_OFFICE_LEDGER))

    outcome = resolve_initiative(target, council, ctx).model_copy(update={"manual": True})
    _queue_row(ledger, target, outcome_updates(target, outcome, cycle, manual=True), ctx.now)
    record_outcome(ctx, outcome)
    persist_world_state(ctx)
    flush = ledger.flush()

    log.info("Manual resolution of %s at cycle %d: %s %s", initiative_id, cycle, outcome.outcome, outcome.tally)
    return ManualResolution(
        initiative_id=initiative_id,
        status=ResolutionStatus.RESOLVED,
        message=f"{target.name}: {outcome.outcome} {outcome.tally}".strip(),
        cycle=cycle,
        outcome=outcome,
        flush=flush,
    )
