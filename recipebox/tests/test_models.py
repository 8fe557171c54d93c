"""Tests for the ORM models."""

from recipebox.models import Ingredient, Instruction, Recipe, RecipeIngredient, RecipeTag, Tag
from recipebox.services import recipe_service


class TestRecipeModel:
    """Tests for Recipe and its relationships."""

    def test_relationships_load(self, collection, pancakes):
        recipe_id = recipe_service.add_recipe(collection, pancakes)

        with collection.session_scope() as session:
            recipe = session.get(Recipe, recipe_id)
            assert set(recipe.ingredient_names) == set(pancakes.ingredient_names)
            assert sorted(recipe.tag_names) == ["breakfast", "easy"]
            assert [s.step_number for s in recipe.instructions] == [1, 2, 3]
            assert all(isinstance(ri, RecipeIngredient) for ri in recipe.recipe_ingredients)
            assert all(isinstance(rt, RecipeTag) for rt in recipe.recipe_tags)

    def test_to_dict(self, collection, pancakes):
        recipe_id = recipe_service.add_recipe(collection, pancakes)

        with collection.session_scope() as session:
            data = session.get(Recipe, recipe_id).to_dict()

        assert data["id"] == recipe_id
        assert data["name"] == "Classic Pancakes"
        assert data["cook_time_minutes"] == 15
        assert isinstance(data["date_added"], str)

    def test_repr(self):
        assert repr(Recipe(id=3, name="Toast")) == "Recipe(id=3, name='Toast')"
        assert repr(Ingredient(id=1, name="Salt")) == "Ingredient(id=1, name='Salt')"
        assert repr(Tag(name="quick")) == "Tag(name='quick')"
        assert repr(Instruction(recipe_id=3, step_number=2)) == (
            "Instruction(recipe_id=3, step_number=2)"
        )
