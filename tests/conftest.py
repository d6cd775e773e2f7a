"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest

from civicsim.context import CycleContext
from civicsim.ledger import schema
from civicsim.ledger.adapter import LedgerAdapter
from civicsim.ledger.backends import InMemoryBackend
from civicsim.models.council import CouncilState
from civicsim.models.enums import RunMode
from civicsim.rng import CycleRng
from civicsim.world import load_world_state

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class SequenceRng:
    """Random source that returns a scripted sequence of draws."""

    def __init__(self, values: list[float]) -> None:
        self.values = list(values)
        self.draws = 0

    def __call__(self) -> float:
        value = self.values[self.draws]
        self.draws += 1
        return value


def office_row(
    office_id: str,
    holder: str,
    faction: str,
    *,
    status: str = "active",
    voting: str = "yes",
    title: str = "",
) -> list[Any]:
    return [office_id, title or f"Councilmember {office_id}", "elected", "", holder, f"POP-{office_id}", status, faction, voting]


def initiative_row(**fields: Any) -> list[Any]:
    """Initiative tracker row in canonical column order, from column-name keyword overrides."""
    defaults: dict[str, Any] = {
        "InitiativeID": "INIT-100",
        "Name": "Civic Center Renovation",
        "Type": "vote",
        "Status": "pending-vote",
        "Budget": "$1M",
        "VoteRequirement": "5-4",
        "VoteCycle": 100,
        "Projection": "",
        "LeadFaction": "OPP",
        "OppositionFaction": "CRC",
        "SwingVoter": "",
        "SwingVoter2": "",
        "SwingVoter2Lean": "",
        "Outcome": "",
        "Consequences": "",
        "AffectedNeighborhoods": "",
        "Notes": "",
        "LastUpdated": "",
    }
    defaults.update(fields)
    return [defaults[c] for c in schema.INITIATIVE_HEADER]


# 4 OPP, 3 CRC, 2 IND: every seat available.
SCENARIO_A_OFFICES: list[list[Any]] = [
    office_row("MAYOR-01", "Avery Santana", "", voting="no", title="Mayor"),
    office_row("COUNCIL-D1", "Denise Carter", "OPP"),
    office_row("COUNCIL-D2", "Janae Rivers", "OPP", title="Council President"),
    office_row("COUNCIL-D3", "Rose Delgado", "OPP"),
    office_row("COUNCIL-D4", "Terrence Mobley", "OPP"),
    office_row("COUNCIL-D5", "Warren Ashford", "CRC"),
    office_row("COUNCIL-D6", "Nina Chen", "CRC"),
    office_row("COUNCIL-D7", "Elliott Crane", "CRC"),
    office_row("COUNCIL-D8", "Ramon Vega", "IND"),
    office_row("COUNCIL-D9", "Leonard Tran", "IND"),
]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def sequence_rng() -> type[SequenceRng]:
    return SequenceRng


@pytest.fixture
def make_initiative_row() -> Callable[..., list[Any]]:
    return initiative_row


@pytest.fixture
def make_office_row() -> Callable[..., list[Any]]:
    return office_row


@pytest.fixture
def council_offices() -> list[list[Any]]:
    return [list(r) for r in SCENARIO_A_OFFICES]


@pytest.fixture
def council_state(council_offices: list[list[Any]]) -> CouncilState:
    backend = InMemoryBackend({schema.CIVIC_OFFICE_LEDGER: (schema.OFFICE_HEADER, council_offices)})
    return schema.load_council(backend.read(schema.CIVIC_OFFICE_LEDGER))


@pytest.fixture
def make_backend(council_offices: list[list[Any]]) -> Callable[..., InMemoryBackend]:
    def _make(
        initiatives: list[list[Any]] | None = None,
        *,
        offices: list[list[Any]] | None = None,
        demographics: list[list[Any]] | None = None,
        cycle_count: int | None = None,
    ) -> InMemoryBackend:
        stores: dict[str, tuple[list[str], list[list[Any]]]] = {
            schema.CIVIC_OFFICE_LEDGER: (schema.OFFICE_HEADER, offices if offices is not None else council_offices),
        }
        if initiatives is not None:
            stores[schema.INITIATIVE_TRACKER] = (schema.INITIATIVE_HEADER, initiatives)
        if demographics is not None:
            stores[schema.NEIGHBORHOOD_DEMOGRAPHICS] = (schema.DEMOGRAPHICS_HEADER, demographics)
        if cycle_count is not None:
            stores[schema.WORLD_CONFIG] = (schema.KEY_VALUE_HEADER, [[schema.CYCLE_COUNT_KEY, cycle_count]])
        return InMemoryBackend(stores)

    return _make


@pytest.fixture
def make_context() -> Callable[..., CycleContext]:
    def _make(
        backend: InMemoryBackend,
        *,
        cycle: int = 100,
        rng: Callable[[], float] | None = None,
        mode: RunMode = RunMode.NORMAL,
        sentiment: float | None = None,
    ) -> CycleContext:
        ctx = CycleContext(
            cycle=cycle,
            now=FIXED_NOW,
            rng=rng or CycleRng(cycle),
            seed=cycle,
            ledger=LedgerAdapter(backend, dry_run=mode != RunMode.NORMAL),
            mode=mode,
        )
        load_world_state(ctx)
        if sentiment is not None:
            ctx.world.city["sentiment"] = sentiment
        return ctx

    return _make
