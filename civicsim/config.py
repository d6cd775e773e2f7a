"""Central configuration for the simulation kernel."""

import os
from dataclasses import dataclass, field
from pathlib import Path

# Paths
PROJECT_ROOT = Path(__file__).parent.parent
OUTPUT_DIR = PROJECT_ROOT / "output"
DATA_DIR = PROJECT_ROOT / "data"
LEDGER_DIR = DATA_DIR / "ledger"


def _optional_int(name: str) -> int | None:
    raw = os.environ.get(name, "").strip()
    return int(raw, 0) if raw else None


def _optional_path(name: str, default: Path) -> Path | None:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return Path(raw) if raw.strip() else None


@dataclass(frozen=True)
class KernelConfig:
    """Configuration shared by the pipeline, the CLI and the manual override.

    ``base_seed`` of None means every normal cycle draws a fresh seed, which
    is still recorded so the cycle can be replayed.
    """

    ledger_dir: Path = field(
        default_factory=lambda: Path(os.environ.get("CIVICSIM_LEDGER_DIR", str(LEDGER_DIR)))
    )
    base_seed: int | None = field(default_factory=lambda: _optional_int("CIVICSIM_BASE_SEED"))
    telemetry_path: Path | None = field(
        default_factory=lambda: _optional_path("CIVICSIM_TELEMETRY_PATH", OUTPUT_DIR / "telemetry.jsonl")
    )
    archive_dir: Path | None = field(
        default_factory=lambda: _optional_path("CIVICSIM_ARCHIVE_DIR", OUTPUT_DIR / "archive")
    )
