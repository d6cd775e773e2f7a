"""Tests for resolve-now, the operator override."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from civicsim.civic.engine import resolve_initiative_now
from civicsim.config import KernelConfig
from civicsim.ledger import schema
from civicsim.ledger.backends import InMemoryBackend
from civicsim.models.enums import InitiativeStatus, ResolutionStatus

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def config(tmp_path: Path) -> KernelConfig:
    return KernelConfig(ledger_dir=tmp_path, base_seed=1, telemetry_path=None, archive_dir=None)


@pytest.fixture
def decided_offices(make_office_row) -> list[list]:
    """Five OPP and four CRC members: every lead-OPP vote passes 5-4 without a draw."""
    opp = [make_office_row(f"COUNCIL-D{n}", f"Opp Member {n}", "OPP") for n in range(1, 6)]
    crc = [make_office_row(f"COUNCIL-D{n}", f"Crc Member {n}", "CRC") for n in range(6, 10)]
    return opp + crc


class TestResolveInitiativeNow:
    def test_resolves_and_persists(self, make_backend, make_initiative_row, decided_offices, config, fixed_now) -> None:
        backend = make_backend(
            [make_initiative_row(Status="proposed", VoteCycle=90)], offices=decided_offices, cycle_count=77,
        )

        result = resolve_initiative_now("INIT-100", backend, config=config, now=fixed_now)

        assert result.resolved
        assert result.status == ResolutionStatus.RESOLVED
        assert result.cycle == 77
        assert result.outcome is not None
        assert result.outcome.manual
        assert result.outcome.outcome == "PASSED"
        assert result.flush is not None and result.flush.errors == []

        [record] = backend.read(schema.INITIATIVE_TRACKER).records()
        assert record["Status"] == InitiativeStatus.PASSED.value
        assert record["Outcome"] == "PASSED"
        assert record["Notes"] == "MANUAL Cycle 77: Passed 5-4."
        assert record["LastUpdated"] == fixed_now.isoformat()

        city = schema.load_city_scalars(backend.read(schema.CITY_DYNAMICS))
        assert city["sentiment"] > 0
        assert len(backend.read(schema.INITIATIVE_RIPPLES).rows) == 1

    def test_does_not_advance_cycle_count(self, make_backend, make_initiative_row, decided_offices, config, fixed_now) -> None:
        backend = make_backend([make_initiative_row()], offices=decided_offices, cycle_count=77)

        resolve_initiative_now("INIT-100", backend, config=config, now=fixed_now)

        assert backend.read(schema.WORLD_CONFIG).rows == [[schema.CYCLE_COUNT_KEY, 77]]

    def test_not_found(self, make_backend, make_initiative_row, config) -> None:
        result = resolve_initiative_now("INIT-999", make_backend([make_initiative_row()]), config=config)
        assert result.status == ResolutionStatus.NOT_FOUND
        assert not result.resolved

    def test_already_resolved(self, make_backend, make_initiative_row, config) -> None:
        backend = make_backend([make_initiative_row(Status="failed", Outcome="FAILED")])

        result = resolve_initiative_now("INIT-100", backend, config=config)

        assert result.status == ResolutionStatus.ALREADY_RESOLVED
        assert "FAILED" in result.message
        assert backend.read(schema.INITIATIVE_TRACKER).records()[0]["Status"] == "failed"

    def test_invalid_schema(self, council_offices, config) -> None:
        header = [c for c in schema.INITIATIVE_HEADER if c != "LastUpdated"]
        backend = InMemoryBackend({
            schema.INITIATIVE_TRACKER: (header, []),
            schema.CIVIC_OFFICE_LEDGER: (schema.OFFICE_HEADER, council_offices),
        })

        result = resolve_initiative_now("INIT-100", backend, config=config)

        assert result.status == ResolutionStatus.INVALID_SCHEMA
        assert "LastUpdated" in result.message

    def test_missing_tracker(self, make_backend, config) -> None:
        result = resolve_initiative_now("INIT-100", make_backend(), config=config)
        assert result.status == ResolutionStatus.INVALID_SCHEMA
