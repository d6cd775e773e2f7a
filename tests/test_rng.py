"""Tests for the per-cycle random source."""

from __future__ import annotations

import zlib

from civicsim.rng import MASK, CycleRng, cycle_seed, entropy_seed


class TestCycleRng:
    def test_same_seed_same_sequence(self) -> None:
        a = CycleRng(12345)
        b = CycleRng(12345)
        assert [a() for _ in range(50)] == [b() for _ in range(50)]

    def test_different_seeds_diverge(self) -> None:
        a = CycleRng(1)
        b = CycleRng(2)
        assert [a() for _ in range(10)] != [b() for _ in range(10)]

    def test_values_in_unit_interval(self) -> None:
        rng = CycleRng(0)
        for _ in range(2000):
            value = rng()
            assert 0.0 <= value < 1.0

    def test_counts_draws(self) -> None:
        rng = CycleRng(7)
        for _ in range(3):
            rng()
        assert rng.draws == 3
        assert "draws=3" in repr(rng)

    def test_seed_is_masked_to_32_bits(self) -> None:
        rng = CycleRng(2**40 + 5)
        assert rng.seed == (2**40 + 5) & MASK


class TestDerive:
    def test_same_tag_same_stream(self) -> None:
        a = CycleRng(99).derive("ripples")
        b = CycleRng(99).derive("ripples")
        assert [a() for _ in range(20)] == [b() for _ in range(20)]

    def test_tag_salts_seed(self) -> None:
        assert CycleRng(99).derive("ripples").seed == 99 ^ zlib.crc32(b"ripples")
        assert CycleRng(99).derive("ripples").seed != CycleRng(99).derive("weather").seed

    def test_parent_not_advanced(self) -> None:
        parent = CycleRng(99)
        child = parent.derive("ripples")
        child()
        assert parent.draws == 0
        assert parent() == CycleRng(99)()


class TestCycleSeed:
    def test_xor_with_cycle(self) -> None:
        assert cycle_seed(42, 78) == 42 ^ 78

    def test_unsigned(self) -> None:
        assert cycle_seed(-1, 0) == MASK

    def test_entropy_seed_fits_32_bits(self) -> None:
        assert 0 <= entropy_seed() <= MASK
