"""Tests for admin/catalog pool merging."""

from __future__ import annotations

from mealgen.data.pool_merger import merge_pools, pool_item_identity
from mealgen.data.pool_sanitizer import Candidate, CandidatePool, PoolMetrics
from mealgen.templates.models import PoolItem


def _item(category: str, key: str, name: str, nevo_code=None, **kwargs) -> PoolItem:
    return PoolItem(
        diet_key="default", category=category, item_key=key, name=name, nevo_code=nevo_code, **kwargs
    )


def _admin() -> dict:
    return {
        "protein": (_item("protein", "chicken", "Kipfilet", "1433"), _item("protein", "tofu", "Tofu")),
        "veg": (_item("veg", "broccoli", "Broccoli"),),
        "fat": (_item("fat", "olive_oil", "Olijfolie"),),
        "flavor": (_item("flavor", "garlic", "Knoflook", min_grams=2, default_grams=5, max_grams=10),),
    }


class TestMergePools:
    """Tests for merge_pools."""

    def test_admin_only(self):
        pools = merge_pools(_admin())
        assert [p.key for p in pools.protein] == ["chicken", "tofu"]
        assert all(p.source == "admin" for p in pools.protein)
        assert pools.flavor[0].default_grams == 5
        assert pools.metrics is None

    def test_union_with_catalog(self):
        catalog = CandidatePool(
            proteins=(Candidate("Kalkoen"),),
            vegetables=(Candidate("Paprika"),),
            fruits=(Candidate("Appel"),),
        )
        pools = merge_pools(_admin(), catalog)
        assert [p.name for p in pools.protein] == ["Kipfilet", "Tofu", "Kalkoen"]
        assert [p.name for p in pools.veg] == ["Broccoli", "Paprika", "Appel"]
        assert pools.protein[2].key == "name:kalkoen"
        assert pools.protein[2].source == "catalog"

    def test_admin_wins_on_same_identity(self):
        """A catalog candidate with the admin item's NEVO code is not added again."""
        catalog = CandidatePool(proteins=(Candidate("Kipfilet gegrild", "1433", 150.0),))
        pools = merge_pools(_admin(), catalog)
        assert [p.key for p in pools.protein] == ["chicken", "tofu"]
        assert pools.protein[0].kcal_per_100g is None

    def test_admin_wins_on_same_name(self):
        catalog = CandidatePool(proteins=(Candidate("tofu"),))
        pools = merge_pools(_admin(), catalog)
        assert len(pools.protein) == 2

    def test_flavor_from_admin_only(self):
        pools = merge_pools({}, CandidatePool(proteins=(Candidate("Kalkoen"),)))
        assert pools.flavor == ()
        assert len(pools.protein) == 1

    def test_inactive_admin_items_skipped(self):
        admin = {"fat": (_item("fat", "butter", "Boter", is_active=False),)}
        assert merge_pools(admin).fat == ()

    def test_exclude_terms_remove_admin_items(self):
        pools = merge_pools(_admin(), exclude_terms=["kip"])
        assert [p.key for p in pools.protein] == ["tofu"]
        assert pools.metrics == {"removed_admin_items": 1}

    def test_metrics_carried(self):
        metrics = PoolMetrics(before={"proteins": 2}, after={"proteins": 1}, removed_duplicates=1)
        pools = merge_pools(_admin(), CandidatePool(), metrics=metrics)
        assert pools.metrics["removed_duplicates"] == 1
        assert pools.metrics["after"] == {"proteins": 1}
        assert "removed_admin_items" not in pools.metrics

    def test_counts(self):
        assert merge_pools(_admin()).counts() == {"protein": 2, "veg": 1, "fat": 1, "flavor": 1}


class TestIdentity:
    def test_identity_uses_nevo_code(self):
        assert pool_item_identity(_item("protein", "chicken", "Kipfilet", "1433")) == "nevo:1433"
        assert pool_item_identity(_item("protein", "tofu", "Tofu")) == "name:tofu"
