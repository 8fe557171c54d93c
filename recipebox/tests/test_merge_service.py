"""Tests for merge_service.merge_collection()."""

import logging

import pytest

from recipebox.services import merge_service, recipe_service
from recipebox.services.exceptions import (
    CollectionNotOpen,
    DatabaseError,
    IntegrityCheckFailed,
    ValidationError,
)
from recipebox.services.merge_service import merge_collection
from recipebox.services.search_service import SearchCriteria, search_recipes

from conftest import make_recipe


def _kitchen_recipe(name, author, ingredients, tags):
    return make_recipe(
        name,
        ingredients,
        tags,
        author=author,
        description=f"A delicious recipe for {name}",
        source="Test Kitchen",
        instructions=["Step 1: Prep", "Step 2: Cook", "Step 3: Serve"],
    )


@pytest.fixture
def pizza_target(collection_factory):
    target = collection_factory("main.db")
    recipe_service.add_recipe(
        target, _kitchen_recipe("Pizza", "Papa John", ["Dough", "Cheese", "Tomato"], ["italian"])
    )
    return target


@pytest.fixture
def pizza_source(collection_factory):
    source = collection_factory("other.db")
    for recipe in (
        _kitchen_recipe("Burger", "Ronald", ["Bun", "Beef", "Lettuce"], ["american"]),
        _kitchen_recipe("Pizza", "Papa John", ["Dough", "Cheese", "Tomato"], ["italian", "party"]),
        _kitchen_recipe("Pizza", "Pizza Hut", ["Dough", "Cheese", "Pepperoni"], ["fast-food"]),
    ):
        recipe_service.add_recipe(source, recipe)
    return source


class TestMergeCollection:
    """Tests for merge_service.merge_collection()."""

    def test_duplicate_is_ignored(self, pizza_target, pizza_source):
        result = merge_collection(pizza_target, pizza_source)

        assert result.recipes_added == 2
        assert result.duplicates_found == 1
        assert len(search_recipes(pizza_target, SearchCriteria())) == 3
        assert len(search_recipes(pizza_target, SearchCriteria(exact_author="Papa John"))) == 1

    def test_merge_from_path(self, pizza_target, pizza_source, tmp_path):
        pizza_source.close()

        result = merge_collection(pizza_target, tmp_path / "other.db")

        assert result.recipes_added == 2
        assert recipe_service.get_recipe_count(pizza_target) == 3

    def test_recipe_count_is_n_plus_m_minus_d(self, collection_factory):
        target = collection_factory("target.db")
        source = collection_factory("source.db")
        for name in ("Soup", "Stew"):
            recipe_service.add_recipe(target, make_recipe(name, ["Water"], source="Book"))
        for name in ("Soup", "Salad", "Curry"):
            recipe_service.add_recipe(source, make_recipe(name, ["Water"], source="Book"))

        result = merge_collection(target, source)

        assert result.duplicates_found == 1
        assert recipe_service.get_recipe_count(target) == 2 + 3 - 1

    def test_new_ids_are_offset_by_target_max(self, pizza_target, pizza_source):
        result = merge_collection(pizza_target, pizza_source)

        # target max id is 1; source ids 1..3, of which 2 is the duplicate
        assert result.recipe_id_map == {1: 2, 2: 1, 3: 4}
        burger = recipe_service.get_recipe(pizza_target, 2)
        assert burger.name == "Burger"
        assert burger.instructions == ["Step 1: Prep", "Step 2: Cook", "Step 3: Serve"]
        assert sorted(burger.ingredient_names) == ["Beef", "Bun", "Lettuce"]

    def test_copied_recipe_keeps_date_added(self, pizza_target, pizza_source):
        original = recipe_service.get_recipe(pizza_source, 1)
        merge_collection(pizza_target, pizza_source)
        assert recipe_service.get_recipe(pizza_target, 2).date_added == original.date_added

    def test_duplicate_gains_source_tags(self, pizza_target, pizza_source):
        result = merge_collection(pizza_target, pizza_source)

        assert result.tag_links_added == 1
        assert sorted(recipe_service.get_recipe(pizza_target, 1).tags) == ["italian", "party"]

    def test_vocabulary_union_ignores_case(self, collection_factory):
        target = collection_factory("target.db")
        source = collection_factory("source.db")
        recipe_service.add_recipe(target, make_recipe("Fries", ["Salt", "Potato"], ["Snack"]))
        recipe_service.add_recipe(source, make_recipe("Chips", ["salt", "Corn"], ["snack"]))

        result = merge_collection(target, source)

        assert result.ingredients_added == 1
        assert result.tags_added == 0
        assert recipe_service.get_ingredient_names(target) == ["Corn", "Potato", "Salt"]
        chips = recipe_service.get_recipe(target, result.recipe_id_map[1])
        assert sorted(chips.ingredient_names) == ["Corn", "Salt"]
        assert chips.tags == ["Snack"]

    def test_duplicate_match_ignores_case(self, collection_factory):
        target = collection_factory("target.db")
        source = collection_factory("source.db")
        recipe_service.add_recipe(target, make_recipe("Apple Pie", ["Apple", "Flour"], author="Gran"))
        recipe_service.add_recipe(source, make_recipe("apple pie", ["FLOUR", "apple"], author="GRAN"))

        result = merge_collection(target, source)

        assert result.duplicates_found == 1
        assert result.recipe_id_map == {1: 1}

    def test_same_name_without_provenance_is_not_a_duplicate(self, collection_factory):
        target = collection_factory("target.db")
        source = collection_factory("source.db")
        recipe_service.add_recipe(target, make_recipe("Toast", ["Bread"]))
        recipe_service.add_recipe(source, make_recipe("Toast", ["Bread"]))

        result = merge_collection(target, source)

        assert result.duplicates_found == 0
        assert recipe_service.get_recipe_count(target) == 2

    def test_lowest_target_id_wins(self, collection_factory):
        target = collection_factory("target.db")
        source = collection_factory("source.db")
        for _ in range(2):
            recipe_service.add_recipe(target, make_recipe("Toast", ["Bread"], author="Me"))
        recipe_service.add_recipe(source, make_recipe("Toast", ["Bread"], ["quick"], author="Me"))

        result = merge_collection(target, source)

        assert result.recipe_id_map == {1: 1}
        assert recipe_service.get_recipe(target, 1).tags == ["quick"]
        assert recipe_service.get_recipe(target, 2).tags == []

    def test_merge_into_empty_target(self, collection_factory, pizza_source):
        target = collection_factory("empty.db")
        result = merge_collection(target, pizza_source)

        assert result.recipe_id_map == {1: 1, 2: 2, 3: 3}
        assert search_recipes(target, SearchCriteria(keywords="pepperoni")) == [3]

    def test_merged_recipes_are_searchable(self, pizza_target, pizza_source):
        merge_collection(pizza_target, pizza_source)
        assert search_recipes(pizza_target, SearchCriteria(keywords="burger")) == [2]
        assert search_recipes(pizza_target, SearchCriteria(tags=["party"])) == [1]

    def test_source_is_unchanged(self, pizza_target, pizza_source):
        before = [r.name for r in recipe_service.list_recipes(pizza_source)]
        merge_collection(pizza_target, pizza_source)
        assert [r.name for r in recipe_service.list_recipes(pizza_source)] == before

    def test_failed_integrity_check_rolls_back(self, pizza_target, pizza_source, monkeypatch):
        monkeypatch.setattr(
            merge_service,
            "_foreign_key_violations",
            lambda session: [("recipe_tags", 5, "tags", 0)],
        )

        with pytest.raises(IntegrityCheckFailed, match="1 violation"):
            merge_collection(pizza_target, pizza_source)

        assert recipe_service.get_recipe_count(pizza_target) == 1
        assert recipe_service.get_ingredient_names(pizza_target) == ["Cheese", "Dough", "Tomato"]
        assert recipe_service.get_recipe(pizza_target, 1).tags == ["italian"]
        assert recipe_service.get_recipe_count(pizza_source) == 3

    def test_self_merge_rejected(self, pizza_target, tmp_path):
        with pytest.raises(ValidationError, match="into itself"):
            merge_collection(pizza_target, pizza_target)
        with pytest.raises(ValidationError, match="into itself"):
            merge_collection(pizza_target, tmp_path / "main.db")

    def test_missing_source_path_raises(self, pizza_target, tmp_path):
        with pytest.raises(DatabaseError, match="does not exist"):
            merge_collection(pizza_target, tmp_path / "nope.db")

    def test_closed_target_raises(self, pizza_target, pizza_source):
        pizza_target.close()
        with pytest.raises(CollectionNotOpen):
            merge_collection(pizza_target, pizza_source)

    def test_merge_is_logged(self, pizza_target, pizza_source, caplog):
        with caplog.at_level(logging.INFO, logger="recipebox.services"):
            merge_collection(pizza_target, pizza_source)

        records = [r for r in caplog.records if getattr(r, "operation", None) == "merge_collection"]
        assert records[-1].outcome == "success"
        assert records[-1].recipes_added == 2
