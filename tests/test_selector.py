"""Tests for capped template and ingredient selection."""

from __future__ import annotations

from collections import Counter
from datetime import date, timedelta

import pytest
from helpers import flavor, ingredient, make_template

from mealgen.templates.rng import SplitMix64
from mealgen.templates.selector import (
    UsageHistory,
    is_fat_like,
    least_recently_used,
    pick_distinct,
    pick_fat,
    pick_flavors,
    pick_protein,
    pick_template,
    pick_with_cap,
)

DAY = date(2026, 1, 5)


class TestUsageHistory:
    """Tests for the trailing usage window."""

    def test_window_counts_trailing_seven_days(self):
        """Uses older than 7 days fall out of the window."""
        history = UsageHistory()
        history.add(DAY, "bowl", "chicken")
        history.add(DAY + timedelta(days=6), "bowl", "chicken")
        assert history.window_counts("template_id", DAY + timedelta(days=6))["bowl"] == 2
        assert history.window_counts("template_id", DAY + timedelta(days=7))["bowl"] == 1

    def test_last_used_tracks_fill_order(self):
        history = UsageHistory()
        history.add(DAY, "bowl", "chicken")
        history.add(DAY, "wok", "tofu")
        history.add(DAY + timedelta(days=1), "bowl", "egg")
        assert history.last_used("template_id") == {"bowl": 2, "wok": 1}

    def test_total_counts(self):
        history = UsageHistory()
        history.add(DAY, "bowl", "chicken")
        history.add(DAY, "wok", "chicken")
        assert history.total_counts("protein_key") == Counter({"chicken": 2})


class TestPickWithCap:
    """Tests for uniform capped picking."""

    def test_least_recently_used_prefers_never_used(self):
        items = ["a", "b", "c"]
        assert least_recently_used(items, str, {"a": 3, "c": 1}) == "b"

    def test_least_recently_used_oldest(self):
        items = ["a", "b", "c"]
        assert least_recently_used(items, str, {"a": 3, "b": 5, "c": 1}) == "c"

    def test_skips_capped_candidates(self):
        """Only candidates under the cap are eligible."""
        counts = Counter({"a": 2, "b": 2})
        for seed in range(20):
            pick = pick_with_cap(["a", "b", "c"], str, counts, 2, {}, SplitMix64(seed))
            assert pick.item == "c"
            assert not pick.forced

    def test_relaxes_when_all_capped(self):
        """All capped: least recently used is taken and flagged as forced."""
        counts = Counter({"a": 2, "b": 2})
        pick = pick_with_cap(["a", "b"], str, counts, 2, {"a": 4, "b": 1}, SplitMix64(0))
        assert pick.item == "b"
        assert pick.forced

    def test_pick_template_under_cap(self):
        templates = (make_template("bowl"), make_template("wok", "Wok"))
        history = UsageHistory()
        for i in range(3):
            history.add(DAY + timedelta(days=i), "bowl", "chicken")
        pick = pick_template(templates, history, DAY + timedelta(days=3), 3, SplitMix64(1))
        assert pick.item.id == "wok"
        assert not pick.forced

    def test_pick_protein_forced(self):
        pool = (ingredient("chicken"), ingredient("tofu"))
        history = UsageHistory()
        history.add(DAY, "bowl", "tofu")
        history.add(DAY, "bowl", "chicken")
        pick = pick_protein(pool, history, DAY, 1, SplitMix64(3))
        assert pick.forced
        assert pick.item.key == "tofu"


class TestPickDistinct:
    """Tests for distinct ingredient picking within a meal."""

    def test_avoids_used_keys(self):
        pool = (ingredient("broccoli"), ingredient("carrot"))
        for seed in range(10):
            assert pick_distinct(pool, {"broccoli"}, SplitMix64(seed)).key == "carrot"

    def test_falls_back_to_full_pool(self):
        pool = (ingredient("broccoli"),)
        assert pick_distinct(pool, {"broccoli"}, SplitMix64(0)).key == "broccoli"


class TestPickFat:
    """Tests for avoiding two fat sources in one meal."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Avocado", True),
            ("Olijfolie", True),
            ("Gemengde noten", True),
            ("Kokosmelk", True),
            ("Tahini", True),
            ("Roomboter", True),
            ("Citroen", False),
            ("Kipfilet", False),
        ],
    )
    def test_is_fat_like(self, name, expected):
        assert is_fat_like(name) is expected

    def test_avoids_second_fat_source(self):
        pool = (ingredient("olijfolie"), ingredient("citroen"))
        meal = (ingredient("avocado"), ingredient("broccoli"), ingredient("carrot"))
        for seed in range(10):
            assert pick_fat(pool, meal, set(), SplitMix64(seed)).key == "citroen"

    def test_any_fat_without_fat_source(self):
        pool = (ingredient("olijfolie"), ingredient("citroen"))
        meal = (ingredient("chicken"), ingredient("broccoli"), ingredient("carrot"))
        picked = {pick_fat(pool, meal, set(), SplitMix64(seed)).key for seed in range(30)}
        assert picked == {"olijfolie", "citroen"}

    def test_falls_back_when_all_fats_are_fat_like(self):
        pool = (ingredient("olijfolie"), ingredient("walnoten"))
        meal = (ingredient("avocado"), ingredient("broccoli"), ingredient("carrot"))
        assert pick_fat(pool, meal, set(), SplitMix64(0)).key in ("olijfolie", "walnoten")


class TestPickFlavors:
    """Tests for flavor item picking."""

    def test_at_most_max_items(self):
        pool = tuple(flavor(k) for k in ("garlic", "ginger", "lemon", "parsley"))
        for seed in range(30):
            picked = pick_flavors(pool, 2, set(), SplitMix64(seed))
            assert len(picked) <= 2
            assert len({f.key for f in picked}) == len(picked)

    def test_zero_max_items(self):
        pool = (flavor("garlic"),)
        assert pick_flavors(pool, 0, set(), SplitMix64(0)) == []

    def test_excluded_keys(self):
        pool = (flavor("garlic"), flavor("ginger"))
        for seed in range(20):
            picked = pick_flavors(pool, 2, {"garlic"}, SplitMix64(seed))
            assert all(f.key == "ginger" for f in picked)

    def test_empty_pool(self):
        assert pick_flavors((), 2, set(), SplitMix64(0)) == []
