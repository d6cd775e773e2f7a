"""Session runner: CLI entrypoint for running, dry-running and replaying cycles."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

import anyio

from civicsim.civic.engine import resolve_initiative_now
from civicsim.config import KernelConfig
from civicsim.errors import KernelError
from civicsim.ledger.adapter import LedgerAdapter
from civicsim.ledger.backends import JsonDirectoryBackend
from civicsim.models.cycle import CycleReport
from civicsim.models.telemetry import load_telemetry
from civicsim.phases import DEFAULT_PHASES
from civicsim.pipeline import PhaseExecutor
from civicsim.seed import seed_ledger
from civicsim.world import read_cycle_count


def next_cycle(config: KernelConfig) -> int:
    """The cycle after the last one recorded in World_Config."""
    return read_cycle_count(LedgerAdapter(JsonDirectoryBackend(config.ledger_dir), dry_run=True)) + 1


def print_report(report: CycleReport) -> None:
    print(f"Cycle {report.cycle} ({report.mode}, seed {report.seed})")
    for phase in report.phases:
        mark = "ok" if phase.success else "FAILED"
        print(f"  {phase.phase:<22} {mark:<7} {phase.duration_seconds:.3f}s  {phase.detail[:80]}")
    for initiative_id, outcome in sorted(report.outcomes.items()):
        print(f"  {initiative_id}: {outcome}")
    print(f"  Intents: {report.intents.total} across {', '.join(report.intents.stores) or 'no stores'}")
    if report.mode == "normal":
        print(f"  Flushed: {report.flush.writes} write(s), {report.flush.appends} append(s)")
    print(f"  Fingerprint: {report.fingerprint}")
    print(f"  Errors: {report.error_count}")


def resolve_now(initiative_id: str, config: KernelConfig) -> int:
    result = resolve_initiative_now(initiative_id, JsonDirectoryBackend(config.ledger_dir), config=config)
    print(f"{result.initiative_id}: {result.status}: {result.message}")
    return 0 if result.resolved else 1


def print_status(config: KernelConfig, last_n: int) -> int:
    """Summarise the most recent cycles from the telemetry log."""
    if config.telemetry_path is None:
        print("Telemetry is disabled (CIVICSIM_TELEMETRY_PATH is empty)")
        return 1
    entries = load_telemetry(config.telemetry_path, last_n=last_n)
    if not entries:
        print(f"No telemetry recorded in {config.telemetry_path}")
        return 0
    for entry in entries:
        failed = [p.phase for p in entry.phases if not p.success]
        print(
            f"Cycle {entry.cycle} ({entry.started_at:%Y-%m-%d %H:%M}, seed {entry.seed}): "
            f"{entry.initiatives_resolved} resolved, {entry.ripples_created} ripple(s), "
            f"{len(entry.errors)} error(s)" + (f", failed: {', '.join(failed)}" if failed else "")
        )
    return 0


async def run_session(args: argparse.Namespace, config: KernelConfig) -> int:
    executor = PhaseExecutor(lambda: JsonDirectoryBackend(config.ledger_dir), DEFAULT_PHASES, config)

    if args.command == "replay":
        replay = await executor.replay(args.cycle)
        print_report(replay.report)
        print(f"Replay {'MATCH' if replay.match else 'MISMATCH'} (inputs restored: {replay.inputs_restored})")
        for difference in replay.differences:
            print(f"  - {difference}")
        return 0 if replay.match else 2

    cycle = args.cycle if args.cycle is not None else next_cycle(config)
    if args.dry_run:
        report = await executor.dry_run(cycle)
    else:
        report = await executor.run_cycle(cycle)
    print_report(report)
    return 0 if report.error_count == 0 else 1


def main() -> None:
    """CLI entrypoint."""
    parser = argparse.ArgumentParser(description="Advance the simulated city one cycle at a time")
    parser.add_argument("--ledger-dir", type=Path, default=None, help="Directory holding the ledger stores")
    parser.add_argument("--base-seed", type=lambda s: int(s, 0), default=None, help="Base RNG seed")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Create the starter ledger stores")

    run = sub.add_parser("run", help="Run one cycle")
    run.add_argument("--cycle", type=int, default=None, help="Cycle id (default: next after World_Config)")
    run.add_argument("--dry-run", action="store_true", help="Record write intents without committing them")

    replay = sub.add_parser("replay", help="Replay a recorded cycle and compare fingerprints")
    replay.add_argument("--cycle", type=int, required=True)

    resolve = sub.add_parser("resolve", help="Resolve one initiative now (operator override)")
    resolve.add_argument("initiative_id")

    status = sub.add_parser("status", help="Show recent cycles from the telemetry log")
    status.add_argument("--last", type=int, default=10, help="Number of cycles to show")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    config = KernelConfig()
    overrides = {}
    if args.ledger_dir is not None:
        overrides["ledger_dir"] = args.ledger_dir
    if args.base_seed is not None:
        overrides["base_seed"] = args.base_seed
    if overrides:
        config = dataclasses.replace(config, **overrides)

    if args.command == "init":
        created = seed_ledger(JsonDirectoryBackend(config.ledger_dir, create=True))
        print(f"Seeded {len(created)} store(s) in {config.ledger_dir}: {', '.join(created) or 'none'}")
        return

    if args.command == "status":
        sys.exit(print_status(config, args.last))

    try:
        if args.command == "resolve":
            code = resolve_now(args.initiative_id, config)
        else:
            code = anyio.run(run_session, args, config)
    except KernelError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(3)
    except KeyboardInterrupt:
        print("\nSession interrupted.")
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
