"""Phase executor: runs the ordered phases of one cycle in normal, dry-run or replay mode."""

from __future__ import annotations

import inspect
import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from civicsim.config import KernelConfig
from civicsim.context import CycleContext
from civicsim.errors import FatalSetupError
from civicsim.ledger.adapter import LedgerAdapter
from civicsim.ledger.backends import InMemoryBackend, LedgerBackend
from civicsim.ledger.schema import (
    CYCLE_SEED_HEADER,
    CYCLE_SEEDS,
    ENGINE_ERRORS,
    ERROR_HEADER,
    VOLATILE_STORES,
)
from civicsim.models.cycle import AuditIssue, CycleReport, CycleSeedRecord, ReplayReport
from civicsim.models.enums import RunMode
from civicsim.models.ledger import FlushStats, StoreSnapshot
from civicsim.models.telemetry import CycleTelemetry, ErrorEntry, PhaseResult, append_telemetry
from civicsim.rng import CycleRng, cycle_seed, entropy_seed

if TYPE_CHECKING:
    from pathlib import Path

log = logging.getLogger(__name__)

PhaseFn = Callable[[CycleContext], Any]
BackendFactory = Callable[[], LedgerBackend]


@dataclass(frozen=True)
class Phase:
    """A named step of the cycle. ``fn`` may be sync or async; its return value lands in ``summary.outputs``."""

    name: str
    fn: PhaseFn


def _describe(output: Any) -> str:
    if isinstance(output, BaseModel):
        return output.model_dump_json(exclude_none=True)[:200]
    if isinstance(output, dict):
        return ", ".join(f"{k}={v}" for k, v in output.items())[:200]
    return str(output)[:200]


def archive_path(archive_dir: Path, cycle: int) -> Path:
    return archive_dir / f"cycle_{cycle}_inputs.json"


def save_archive(archive_dir: Path, cycle: int, snapshots: list[StoreSnapshot]) -> Path:
    """Write the pre-cycle contents of every store a cycle read."""
    archive_dir.mkdir(parents=True, exist_ok=True)
    path = archive_path(archive_dir, cycle)
    with open(path, "w") as f:
        json.dump([s.model_dump(mode="json") for s in snapshots], f, indent=1)
    return path


def load_archive(archive_dir: Path | None, cycle: int) -> list[StoreSnapshot] | None:
    if archive_dir is None:
        return None
    path = archive_path(archive_dir, cycle)
    if not path.exists():
        return None
    with open(path) as f:
        return [StoreSnapshot.model_validate(s) for s in json.load(f)]


def find_seed_record(ledger: LedgerAdapter, cycle: int) -> CycleSeedRecord | None:
    """Most recent seed record stored for *cycle*."""
    found: CycleSeedRecord | None = None
    for rec in ledger.get_all_rows(CYCLE_SEEDS).records():
        try:
            if int(rec.get("CycleID", -1)) != cycle:
                continue
            found = CycleSeedRecord(
                cycle=cycle,
                seed=int(rec["Seed"]),
                timestamp=datetime.fromisoformat(str(rec["Timestamp"])),
                mode=RunMode(str(rec.get("Mode") or RunMode.NORMAL)),
                fingerprint=str(rec.get("Fingerprint", "")),
                outcomes=json.loads(rec.get("Outcomes") or "{}"),
                intent_counts=json.loads(rec.get("IntentCounts") or "{}"),
                errors=int(rec.get("Errors") or 0),
            )
        except (KeyError, TypeError, ValueError) as exc:
            log.warning("Skipping malformed %s row for cycle %d: %s", CYCLE_SEEDS, cycle, exc)
    return found


def compare_to_record(record: CycleSeedRecord, report: CycleReport) -> list[str]:
    """Itemized differences between a recorded cycle and its replay."""
    differences: list[str] = []
    if record.fingerprint != report.fingerprint:
        differences.append(f"fingerprint: recorded {record.fingerprint[:12]}, replayed {report.fingerprint[:12]}")
    for initiative_id in sorted(set(record.outcomes) | set(report.outcomes)):
        before = record.outcomes.get(initiative_id, "-")
        after = report.outcomes.get(initiative_id, "-")
        if before != after:
            differences.append(f"outcome {initiative_id}: recorded {before}, replayed {after}")
    replayed_counts = _simulation_counts(report.intents.by_store)
    for store in sorted(set(record.intent_counts) | set(replayed_counts)):
        before_n = record.intent_counts.get(store, 0)
        after_n = replayed_counts.get(store, 0)
        if before_n != after_n:
            differences.append(f"intents {store}: recorded {before_n}, replayed {after_n}")
    return differences


def _simulation_counts(by_store: dict[str, int]) -> dict[str, int]:
    return {store: n for store, n in by_store.items() if store not in VOLATILE_STORES}


def record_phase_error(ctx: CycleContext, phase: str, exc: BaseException) -> ErrorEntry:
    """Audit-trail and error-ledger record for a caught phase failure."""
    entry = ErrorEntry.from_exception(phase, exc, cycle=ctx.cycle)
    ctx.summary.audit_issues.append(
        AuditIssue(cycle=ctx.cycle, phase=phase, error_type=entry.error_type, message=entry.message)
    )
    ctx.ledger.queue_append_row(ENGINE_ERRORS, entry.to_row(), header=ERROR_HEADER)
    return entry


class PhaseExecutor:
    """Runs a fixed, ordered list of phases once per cycle.

    Each phase is isolated: an exception becomes a failed PhaseResult, an
    audit issue and an error-ledger row, and the next phase still runs.
    FatalSetupError is the exception: it aborts the cycle and propagates.
    Whatever happens, the completion block flushes queued writes and logs
    the error count.
    """

    def __init__(
        self,
        backend_factory: BackendFactory,
        phases: list[Phase] | tuple[Phase, ...],
        config: KernelConfig | None = None,
    ) -> None:
        self.backend_factory = backend_factory
        self.phases = tuple(phases)
        self.config = config or KernelConfig()

    def acquire_backend(self) -> LedgerBackend:
        try:
            return self.backend_factory()
        except FatalSetupError:
            raise
        except Exception as exc:
            raise FatalSetupError(f"cannot acquire ledger backend: {exc}") from exc

    def seed_for(self, cycle: int) -> int:
        if self.config.base_seed is not None:
            return cycle_seed(self.config.base_seed, cycle)
        return entropy_seed()

    async def run_phase(self, phase: Phase, ctx: CycleContext) -> PhaseResult:
        """Invoke one phase and convert its outcome into a PhaseResult."""
        t0 = time.monotonic()
        result = PhaseResult(phase=phase.name)
        log.info("Phase %s: starting (cycle %d)", phase.name, ctx.cycle)
        try:
            output = phase.fn(ctx)
            if inspect.isawaitable(output):
                output = await output
        except FatalSetupError:
            raise
        except Exception as exc:
            log.exception("Phase %s failed (cycle %d)", phase.name, ctx.cycle)
            result.success = False
            result.detail = str(exc)
            result.error_type = type(exc).__name__
            record_phase_error(ctx, phase.name, exc)
        else:
            if output is not None:
                ctx.summary.outputs[phase.name] = output
                result.detail = _describe(output)
        result.duration_seconds = time.monotonic() - t0
        return result

    async def run_cycle(
        self,
        cycle: int,
        *,
        mode: RunMode = RunMode.NORMAL,
        now: datetime | None = None,
        seed: int | None = None,
        backend: LedgerBackend | None = None,
    ) -> CycleReport:
        """Run every phase for *cycle*. Only normal mode commits writes."""
        t0 = time.monotonic()
        telemetry = CycleTelemetry(cycle=cycle, mode=mode)
        ctx: CycleContext | None = None
        phases: list[PhaseResult] = []
        flush = FlushStats()
        try:
            ledger = LedgerAdapter(backend or self.acquire_backend(), dry_run=mode != RunMode.NORMAL)
            seed = self.seed_for(cycle) if seed is None else seed
            ctx = CycleContext(
                cycle=cycle,
                now=now or datetime.now(UTC),
                rng=CycleRng(seed),
                seed=seed,
                ledger=ledger,
                mode=mode,
            )
            telemetry.seed = seed
            log.info("Cycle %d starting (%s, seed %d)", cycle, mode, seed)

            for phase in self.phases:
                phases.append(await self.run_phase(phase, ctx))

            if mode == RunMode.NORMAL:
                self._record_seed(ctx)
                self._archive_inputs(ctx)
        except FatalSetupError as exc:
            log.error("Cycle %d aborted by fatal setup error: %s", cycle, exc)
            telemetry.fatal = True
            telemetry.errors.append(f"fatal: {exc}")
            raise
        finally:
            flush = self._complete(ctx, telemetry, phases, t0)

        return CycleReport(
            cycle=cycle,
            mode=mode,
            seed=ctx.seed,
            timestamp=ctx.now,
            phases=phases,
            audit_issues=list(ctx.summary.audit_issues),
            intents=ctx.ledger.intent_summary(),
            flush=flush,
            fingerprint=ctx.ledger.fingerprint(),
            outcomes=dict(ctx.summary.outcomes),
            counters=dict(ctx.summary.counters),
        )

    async def dry_run(self, cycle: int, *, now: datetime | None = None) -> CycleReport:
        """Full cycle with every write recorded as an intent and nothing committed."""
        return await self.run_cycle(cycle, mode=RunMode.DRY_RUN, now=now)

    async def replay(self, cycle: int) -> ReplayReport:
        """Re-run *cycle* under its recorded seed and compare against the recorded fingerprint."""
        backend = self.acquire_backend()
        record = find_seed_record(LedgerAdapter(backend, dry_run=True), cycle)
        if record is None:
            log.warning("No seed record for cycle %d; replaying with the cycle id as seed", cycle)
        seed = record.seed if record else cycle
        now = record.timestamp if record else None

        archived = load_archive(self.config.archive_dir, cycle)
        replay_backend: LedgerBackend = InMemoryBackend.from_snapshots(archived) if archived else backend
        if archived is None:
            log.warning("No archived inputs for cycle %d; replaying against current ledger state", cycle)

        report = await self.run_cycle(cycle, mode=RunMode.REPLAY, now=now, seed=seed, backend=replay_backend)
        differences = compare_to_record(record, report) if record else ["no seed record for this cycle"]
        match = record is not None and not differences
        log.info("Replay of cycle %d: %s (%d difference(s))", cycle, "match" if match else "MISMATCH", len(differences))
        return ReplayReport(
            cycle=cycle,
            seed=seed,
            seed_recorded=record is not None,
            inputs_restored=archived is not None,
            match=match,
            recorded_fingerprint=record.fingerprint if record else "",
            replayed_fingerprint=report.fingerprint,
            differences=differences,
            report=report,
        )

    # -- internals ------------------------------------------------------------

    def _record_seed(self, ctx: CycleContext) -> None:
        intents = ctx.ledger.intent_summary()
        record = CycleSeedRecord(
            cycle=ctx.cycle,
            seed=ctx.seed,
            timestamp=ctx.now,
            mode=ctx.mode,
            fingerprint=ctx.ledger.fingerprint(),
            outcomes=dict(ctx.summary.outcomes),
            intent_counts=_simulation_counts(intents.by_store),
            errors=len(ctx.summary.audit_issues),
        )
        ctx.ledger.queue_append_row(
            CYCLE_SEEDS,
            [
                record.cycle,
                record.seed,
                record.timestamp.isoformat(),
                record.mode.value,
                record.fingerprint,
                json.dumps(record.outcomes, sort_keys=True),
                json.dumps(record.intent_counts, sort_keys=True),
                record.errors,
            ],
            header=CYCLE_SEED_HEADER,
        )

    def _archive_inputs(self, ctx: CycleContext) -> None:
        if self.config.archive_dir is None:
            return
        try:
            path = save_archive(self.config.archive_dir, ctx.cycle, ctx.ledger.read_snapshots())
            log.info("Archived cycle %d inputs to %s", ctx.cycle, path)
        except OSError:
            log.exception("Could not archive inputs for cycle %d; replay will use live state", ctx.cycle)

    def _complete(
        self,
        ctx: CycleContext | None,
        telemetry: CycleTelemetry,
        phases: list[PhaseResult],
        t0: float,
    ) -> FlushStats:
        flush = FlushStats()
        if ctx is not None:
            flush = ctx.ledger.flush()
            telemetry.errors.extend(f"{i.phase}: {i.message}" for i in ctx.summary.audit_issues)
            telemetry.errors.extend(f"flush: {e}" for e in flush.errors)
            counters = ctx.summary.counters
            telemetry.initiatives_resolved = counters.get("initiatives_resolved", 0)
            telemetry.votes_resolved = len(ctx.summary.votes_this_cycle)
            telemetry.grants_resolved = len(ctx.summary.grants_this_cycle)
            telemetry.ripples_created = counters.get("ripples_created", 0)
            telemetry.ripples_applied = counters.get("ripples_applied", 0)
            telemetry.ripples_expired = counters.get("ripples_expired", 0)
            telemetry.intents = len(ctx.ledger.intents)
            telemetry.fingerprint = ctx.ledger.fingerprint()
        telemetry.writes = flush.writes
        telemetry.appends = flush.appends
        telemetry.phases = phases
        telemetry.finished_at = datetime.now(UTC)
        telemetry.duration_seconds = time.monotonic() - t0

        log.info("Cycle %d completed. Errors logged: %d", telemetry.cycle, len(telemetry.errors))
        if self.config.telemetry_path is not None and telemetry.mode == RunMode.NORMAL:
            try:
                append_telemetry(self.config.telemetry_path, telemetry)
            except OSError:
                log.exception("Failed to write telemetry for cycle %d", telemetry.cycle)
        return flush
