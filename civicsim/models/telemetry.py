"""Telemetry models for cycle instrumentation and JSONL I/O."""

from __future__ import annotations

import logging
import traceback as _tb
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, ValidationError

from civicsim.models.enums import RunMode

if TYPE_CHECKING:
    from pathlib import Path

log = logging.getLogger(__name__)

_DEFAULT_MAX_AGE_DAYS = 30
STACK_EXCERPT_CHARS = 500


class PhaseResult(BaseModel):
    """Result of a single phase within a cycle."""

    phase: str = Field(description="Phase name, e.g. civic-initiatives")
    success: bool = Field(default=True)
    duration_seconds: float = Field(default=0.0)
    detail: str = Field(default="")
    error_type: str | None = Field(default=None)


class CycleTelemetry(BaseModel):
    """One telemetry entry per cycle, serialized as JSONL."""

    cycle: int
    mode: RunMode = RunMode.NORMAL
    seed: int | None = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None
    duration_seconds: float = 0.0

    # Civic initiatives
    initiatives_resolved: int = 0
    votes_resolved: int = 0
    grants_resolved: int = 0

    # Ripples
    ripples_created: int = 0
    ripples_applied: int = 0
    ripples_expired: int = 0

    # Ledger
    writes: int = 0
    appends: int = 0
    intents: int = 0
    fingerprint: str = ""

    phases: list[PhaseResult] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    fatal: bool = False


class ErrorEntry(BaseModel):
    """One caught phase error, written to the error ledger."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    cycle: int | None = None
    phase: str
    error_type: str = ""
    message: str = ""
    traceback: str = ""

    @classmethod
    def from_exception(cls, phase: str, exc: BaseException, *, cycle: int | None = None) -> ErrorEntry:
        """Build an ErrorEntry from a caught exception."""
        return cls(
            phase=phase,
            cycle=cycle,
            error_type=type(exc).__name__,
            message=str(exc),
            traceback="".join(_tb.format_exception(exc)),
        )

    @property
    def stack_excerpt(self) -> str:
        return self.traceback[:STACK_EXCERPT_CHARS]

    def to_row(self) -> list[Any]:
        """Values in error-ledger column order."""
        return [
            self.timestamp.isoformat(),
            self.cycle if self.cycle is not None else "",
            self.phase,
            self.error_type,
            self.message,
            self.stack_excerpt,
        ]



# ---------------------------------------------------------------------------
# JSONL I/O
# ---------------------------------------------------------------------------


def _parse_line(line: str) -> CycleTelemetry | None:
    try:
        return CycleTelemetry.model_validate_json(line)
    except ValidationError:
        return None


def append_telemetry(path: Path, entry: CycleTelemetry, *, max_age_days: int = _DEFAULT_MAX_AGE_DAYS) -> None:
    """Append one cycle as a JSON line, dropping cycles that started more than *max_age_days* ago.

    Lines that do not parse as a cycle entry are kept as they are.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    cutoff = datetime.now(UTC) - timedelta(days=max_age_days)
    kept: list[str] = []
    if path.exists():
        for line in path.read_text().splitlines():
            if not line.strip():
                continue
            previous = _parse_line(line)
            if previous is None or previous.started_at >= cutoff:
                kept.append(line)
    kept.append(entry.model_dump_json())
    path.write_text("\n".join(kept) + "\n")


def load_telemetry(path: Path, *, last_n: int = 0) -> list[CycleTelemetry]:
    """Cycle entries from a JSONL file, oldest first; ``last_n`` > 0 keeps only the newest N."""
    if not path.exists():
        return []
    entries: list[CycleTelemetry] = []
    for number, line in enumerate(path.read_text().splitlines(), start=1):
        if not line.strip():
            continue
        entry = _parse_line(line)
        if entry is None:
            log.warning("Skipping unreadable telemetry line %d in %s", number, path)
            continue
        entries.append(entry)
    return entries[-last_n:] if last_n > 0 else entries
