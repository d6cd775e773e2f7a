"""Tests for the demographic swing modifier."""

from __future__ import annotations

import pytest

from civicsim.civic.demographics import demographic_modifier
from civicsim.civic.rules import DEMOGRAPHIC_CAP
from civicsim.models.world import NeighborhoodDemographics


def _hood(name: str = "Temescal", **counts: int) -> NeighborhoodDemographics:
    return NeighborhoodDemographics(neighborhood=name, **counts)


class TestDemographicModifier:
    def test_health_initiative_in_older_sicker_neighborhood(self) -> None:
        temescal = _hood(students=10, adults=60, seniors=30, sick=10)
        assert demographic_modifier("Temescal Community Health Center", [temescal]) == pytest.approx(0.14)

    def test_overlapping_families_add(self) -> None:
        hood = _hood(students=20, adults=50, seniors=30, unemployed=11)
        # housing (rent): seniors +0.05; jobs (business): unemployment +0.08
        assert demographic_modifier("Small Business Rent Relief", [hood]) == pytest.approx(0.13)

    def test_capped(self) -> None:
        hood = _hood(adults=60, seniors=40, sick=10)
        assert demographic_modifier("Senior Health Clinic", [hood]) == pytest.approx(DEMOGRAPHIC_CAP)

    def test_negative_adjustment(self) -> None:
        hood = _hood(adults=70, seniors=30)
        assert demographic_modifier("Alternative Response Pilot", [hood]) == pytest.approx(-0.03)

    def test_aggregates_neighborhoods(self) -> None:
        a = _hood("A", adults=90, seniors=10)
        b = _hood("B", adults=50, seniors=50)
        # 60 of 200 residents are seniors
        assert demographic_modifier("Hospital Expansion", [a, b]) == pytest.approx(0.08)

    def test_no_neighborhoods(self) -> None:
        assert demographic_modifier("Temescal Community Health Center", []) == 0.0

    def test_empty_population(self) -> None:
        assert demographic_modifier("Temescal Community Health Center", [_hood(sick=5)]) == 0.0

    def test_unrelated_name(self) -> None:
        hood = _hood(students=50, adults=20, seniors=30, unemployed=30, sick=30)
        assert demographic_modifier("Civic Center Renovation", [hood]) == 0.0
