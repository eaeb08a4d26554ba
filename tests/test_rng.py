"""Tests for seeded pseudo-randomness."""

from __future__ import annotations

import pytest

from mealgen.templates.rng import SplitMix64, derive_seed


class TestDeriveSeed:
    """Tests for sub-seed derivation."""

    def test_stable(self):
        """Same inputs always give the same sub-seed."""
        assert derive_seed(42, "2026-01-05", "lunch") == derive_seed(42, "2026-01-05", "lunch")

    def test_depends_on_every_part(self):
        """Seed, date and slot all change the sub-seed."""
        base = derive_seed(0, "2026-01-05", "lunch")
        assert derive_seed(1, "2026-01-05", "lunch") != base
        assert derive_seed(0, "2026-01-06", "lunch") != base
        assert derive_seed(0, "2026-01-05", "dinner") != base

    def test_fits_in_64_bits(self):
        value = derive_seed(123, "2026-01-05", "dinner")
        assert 0 <= value < 2**64


class TestSplitMix64:
    """Tests for the splitmix64 generator."""

    def test_reference_sequence(self):
        """Matches the published splitmix64 output for seed 1234567."""
        rng = SplitMix64(1234567)
        assert rng.next_u64() == 6457827717110365317
        assert rng.next_u64() == 3203168211198807973

    def test_same_seed_same_sequence(self):
        a, b = SplitMix64(7), SplitMix64(7)
        assert [a.next_u64() for _ in range(5)] == [b.next_u64() for _ in range(5)]

    def test_draws_counter(self):
        rng = SplitMix64(1)
        rng.randbelow(10)
        rng.choice(["a", "b"])
        assert rng.draws == 2

    def test_randbelow_range(self):
        rng = SplitMix64(99)
        values = [rng.randbelow(3) for _ in range(200)]
        assert set(values) == {0, 1, 2}

    def test_randbelow_rejects_non_positive(self):
        with pytest.raises(ValueError):
            SplitMix64(1).randbelow(0)

    def test_randint_inclusive(self):
        """Both bounds are reachable."""
        rng = SplitMix64(5)
        values = {rng.randint(2, 4) for _ in range(200)}
        assert values == {2, 3, 4}

    def test_randint_single_value(self):
        assert SplitMix64(5).randint(3, 3) == 3

    def test_randint_empty_range(self):
        with pytest.raises(ValueError):
            SplitMix64(5).randint(4, 3)

    def test_choice_empty(self):
        with pytest.raises(IndexError):
            SplitMix64(5).choice([])

    def test_sample_distinct(self):
        """Sample returns k distinct elements from the sequence."""
        rng = SplitMix64(11)
        items = ["a", "b", "c", "d", "e"]
        picked = rng.sample(items, 3)
        assert len(picked) == 3
        assert len(set(picked)) == 3
        assert set(picked) <= set(items)

    def test_sample_clamps_k(self):
        rng = SplitMix64(11)
        assert sorted(rng.sample(["a", "b"], 5)) == ["a", "b"]
        assert rng.sample(["a", "b"], 0) == []

    def test_sample_does_not_mutate_input(self):
        items = ["a", "b", "c"]
        SplitMix64(3).sample(items, 2)
        assert items == ["a", "b", "c"]
