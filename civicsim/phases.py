"""The default phase order for one simulation cycle."""

from __future__ import annotations

from civicsim.civic.engine import run_civic_initiatives
from civicsim.pipeline import Phase
from civicsim.ripples import apply_active_ripples
from civicsim.world import load_world_state, persist_world_state

# Later phases read what earlier ones wrote into the context; order matters.
DEFAULT_PHASES: tuple[Phase, ...] = (
    Phase("load-world-state", load_world_state),
    Phase("civic-initiatives", run_civic_initiatives),
    Phase("initiative-ripples", apply_active_ripples),
    Phase("persist-world-state", persist_world_state),
)
