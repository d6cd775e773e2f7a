"""The per-cycle context every phase receives."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from civicsim.models.cycle import Summary
from civicsim.models.enums import RunMode
from civicsim.models.world import WorldState

if TYPE_CHECKING:
    from datetime import datetime

    from civicsim.ledger.adapter import LedgerAdapter
    from civicsim.rng import RandomSource


@dataclass
class CycleContext:
    """Everything one cycle owns. Created by the executor, never reused across cycles."""

    cycle: int
    now: datetime
    rng: RandomSource
    seed: int
    ledger: LedgerAdapter
    mode: RunMode = RunMode.NORMAL
    summary: Summary = field(default_factory=Summary)
    world: WorldState = field(default_factory=WorldState)

    @property
    def dry_run(self) -> bool:
        return self.mode != RunMode.NORMAL
