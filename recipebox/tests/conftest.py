"""Pytest configuration and fixtures for service layer tests."""

import pytest

from recipebox.services.database import Collection
from recipebox.services.dto import RecipeData, RecipeIngredientData
from recipebox.utils.config import reset_config


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep every test away from the user's real database location."""
    monkeypatch.setenv("RECIPEBOX_DB_PATH", str(tmp_path / "default.db"))
    reset_config()
    yield
    reset_config()


@pytest.fixture(scope="function")
def collection():
    """Provide a clean in-memory collection for each test function."""
    coll = Collection(":memory:").open()
    yield coll
    coll.close()


@pytest.fixture(scope="function")
def collection_factory(tmp_path):
    """Open file-backed collections under tmp_path; all are closed afterwards.

    Usage:
        target = collection_factory("target.db")
    """
    opened = []

    def _factory(filename: str = "recipes.db") -> Collection:
        coll = Collection(tmp_path / filename).open()
        opened.append(coll)
        return coll

    yield _factory

    for coll in opened:
        coll.close()


def make_recipe(name: str, ingredients=(), tags=(), **fields) -> RecipeData:
    """Build a RecipeData with one instruction; ingredients given by name."""
    fields.setdefault("instructions", [f"Make the {name}."])
    return RecipeData(
        name=name,
        ingredients=[
            ing if isinstance(ing, RecipeIngredientData) else RecipeIngredientData(ing)
            for ing in ingredients
        ],
        tags=list(tags),
        **fields,
    )


@pytest.fixture
def pancakes() -> RecipeData:
    return RecipeData(
        name="Classic Pancakes",
        description="Fluffy and delicious pancakes, a breakfast favorite.",
        prep_time_minutes=10,
        cook_time_minutes=15,
        servings=4,
        is_favorite=True,
        source="Family Recipe",
        source_url="http://example.com/pancakes",
        author="Mom",
        ingredients=[
            RecipeIngredientData("All-purpose flour", 1.5, "cups"),
            RecipeIngredientData("Salt", 0.5, "teaspoon"),
            RecipeIngredientData("Milk", 1.25, "cups", "whole milk recommended"),
            RecipeIngredientData("Vanilla extract", 1, "teaspoon", "optional", optional=True),
        ],
        tags=["breakfast", "easy"],
        instructions=[
            "Whisk the dry ingredients.",
            "Whisk in the milk.",
            "Cook on a hot griddle.",
        ],
    )
