"""Tests for ripple creation, decay, application and expiry."""

from __future__ import annotations

import pytest

from civicsim.ledger import schema
from civicsim.models.enums import (
    InitiativeStatus,
    InitiativeType,
    IntentKind,
    RippleCategory,
    RippleDirection,
    RippleStatus,
)
from civicsim.models.initiative import VoteOutcome
from civicsim.models.ripple import Ripple
from civicsim.ripples import (
    apply_active_ripples,
    build_ripple,
    create_ripple,
    effects_for_neighborhood,
)


def _outcome(name: str, status: InitiativeStatus = InitiativeStatus.PASSED, hoods: list[str] | None = None) -> VoteOutcome:
    return VoteOutcome(
        initiative_id="INIT-9",
        name=name,
        initiative_type=InitiativeType.COUNCIL_VOTE,
        status=status,
        outcome=status.value.upper(),
        affected_neighborhoods=hoods or [],
    )


def _stadium(**kw) -> Ripple:
    fields = {
        "ripple_id": "RIP-100-INIT-9",
        "initiative_id": "INIT-9",
        "initiative_name": "Waterfront Stadium",
        "category": RippleCategory.SPORTS,
        "direction": RippleDirection.POSITIVE,
        "strength": 1.0,
        "effects": {"retail": 0.12, "traffic": 0.20, "nightlife": 0.15, "sentiment": 0.05},
        "start_cycle": 100,
        "duration": 20,
        "end_cycle": 120,
    }
    fields.update(kw)
    return Ripple(**fields)


class TestBuildRipple:
    def test_positive_stadium(self) -> None:
        ripple = build_ripple(_outcome("Waterfront Stadium Deal", hoods=["Jack London"]), 100)
        assert ripple.ripple_id == "RIP-100-INIT-9"
        assert ripple.category == RippleCategory.SPORTS
        assert ripple.strength == 1.0
        assert (ripple.duration, ripple.end_cycle) == (20, 120)
        assert ripple.effects["retail"] == pytest.approx(0.12)
        assert ripple.affected_neighborhoods == ["Jack London"]

    def test_negative_uses_negative_coefficients(self) -> None:
        ripple = build_ripple(_outcome("Affordable Housing Bond", InitiativeStatus.FAILED), 50)
        assert ripple.category == RippleCategory.HOUSING
        assert ripple.direction == RippleDirection.NEGATIVE
        assert ripple.strength == pytest.approx(-0.6)
        assert ripple.effects == {"sentiment": -0.08, "community": -0.05}

    def test_first_matching_category_wins(self) -> None:
        # "health" precedes "transit" in the table
        assert build_ripple(_outcome("Transit Health Corridor"), 1).category == RippleCategory.HEALTH

    def test_unmatched_is_general(self) -> None:
        ripple = build_ripple(_outcome("Civic Center Renovation"), 1)
        assert ripple.category == RippleCategory.GENERAL
        assert ripple.duration == 6


class TestDecay:
    def test_stadium_timeline(self) -> None:
        ripple = _stadium()
        assert ripple.decay_at(100) == pytest.approx(1.0)
        assert ripple.decay_at(110) == pytest.approx(0.6)
        assert not ripple.is_expired_at(119)
        assert ripple.is_expired_at(120)

    def test_monotonic_with_floor(self) -> None:
        ripple = _stadium()
        values = [ripple.decay_at(c) for c in range(100, 140)]
        assert values == sorted(values, reverse=True)
        assert min(values) == pytest.approx(0.2)


class TestCreateRipple:
    def test_jolt_and_persist(self, make_backend, make_context) -> None:
        ctx = make_context(make_backend())

        ripple = create_ripple(ctx, _outcome("Waterfront Stadium Deal"))

        assert ctx.world.sentiment == pytest.approx(0.025)
        assert ripple.row == 0
        assert ctx.world.ripples == [ripple]
        assert ctx.summary.counters["ripples_created"] == 1
        kinds = [(i.store, i.kind) for i in ctx.ledger.intents]
        assert kinds == [
            (schema.INITIATIVE_RIPPLES, IntentKind.CREATE),
            (schema.INITIATIVE_RIPPLES, IntentKind.APPEND),
        ]


class TestApplyActiveRipples:
    def test_city_wide_application(self, make_backend, make_context) -> None:
        ctx = make_context(make_backend(), cycle=110)
        ctx.world.ripples = [_stadium(row=0)]

        result = apply_active_ripples(ctx)

        assert result.applied == ["RIP-100-INIT-9"]
        assert ctx.world.city["retail"] == pytest.approx(1.0 + 0.12 * 0.6 * 0.1)
        assert ctx.world.city["sentiment"] == pytest.approx(0.05 * 0.6 * 0.1)
        assert ctx.world.ripples[0].decay_factor == pytest.approx(0.6)
        [write] = ctx.ledger.intents
        assert (write.column, write.value) == ("DecayFactor", 0.6)

    def test_decay_never_increases(self, make_backend, make_context) -> None:
        ctx = make_context(make_backend(), cycle=101)
        ctx.world.ripples = [_stadium(decay_factor=0.5)]

        apply_active_ripples(ctx)

        assert ctx.world.ripples[0].decay_factor == pytest.approx(0.5)

    def test_expired_marked(self, make_backend, make_context) -> None:
        ctx = make_context(make_backend(), cycle=120)
        ctx.world.ripples = [_stadium(row=4)]

        result = apply_active_ripples(ctx)

        assert result.expired == ["RIP-100-INIT-9"]
        assert ctx.world.ripples == []
        assert ctx.world.city["retail"] == 1.0
        [write] = ctx.ledger.intents
        assert (write.row, write.column, write.value) == (4, "Status", RippleStatus.EXPIRED.value)

    def test_new_ripple_waits_a_cycle(self, make_backend, make_context) -> None:
        ctx = make_context(make_backend(), cycle=100)
        ctx.world.ripples = [_stadium()]

        result = apply_active_ripples(ctx)

        assert result.skipped_new == 1
        assert result.applied == []
        assert ctx.world.city["retail"] == 1.0

    def test_scoped_application(self, make_backend, make_context) -> None:
        ctx = make_context(make_backend(), cycle=110)
        ctx.world.ripples = [_stadium(affected_neighborhoods=["Jack London"])]

        apply_active_ripples(ctx)

        assert ctx.world.city["retail"] == 1.0
        assert ctx.world.neighborhoods["Jack London"]["retail"] == pytest.approx(1.0072)
        # sentiment also moves the city
        assert ctx.world.city["sentiment"] == pytest.approx(0.003)

    def test_counters(self, make_backend, make_context) -> None:
        ctx = make_context(make_backend(), cycle=110)
        ctx.world.ripples = [_stadium(), _stadium(ripple_id="OLD", start_cycle=80, end_cycle=100)]

        apply_active_ripples(ctx)

        assert ctx.summary.counters["ripples_applied"] == 1
        assert ctx.summary.counters["ripples_expired"] == 1


class TestEffectsForNeighborhood:
    def test_combines_touching_ripples(self) -> None:
        ripples = [
            _stadium(affected_neighborhoods=["Jack London"]),
            _stadium(ripple_id="CITY", effects={"retail": 0.1}),
            _stadium(ripple_id="ELSEWHERE", affected_neighborhoods=["Fruitvale"]),
        ]
        effects = effects_for_neighborhood(ripples, "jack london", 110)
        assert effects["retail"] == pytest.approx((0.12 + 0.1) * 0.6)
        assert effects["nightlife"] == pytest.approx(0.15 * 0.6)

    def test_expired_excluded(self) -> None:
        assert effects_for_neighborhood([_stadium()], "Jack London", 120) == {}
