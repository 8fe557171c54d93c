"""Data Transfer Objects for the service layer.

Plain dataclasses used to pass whole recipes into and out of the services,
so callers never hold ORM objects bound to a closed session.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from recipebox.utils.constants import UNSPECIFIED_QUANTITY


@dataclass
class RecipeIngredientData:
    """One ingredient line of a recipe.

    Attributes:
        name: Ingredient name (shared vocabulary entry)
        quantity: Amount, or -1 when unspecified
        unit: Unit for the quantity (e.g., "cups", "grams")
        notes: Optional notes (e.g., "sifted")
        optional: Whether the ingredient can be left out
    """

    name: str
    quantity: float = UNSPECIFIED_QUANTITY
    unit: str = ""
    notes: str = ""
    optional: bool = False


@dataclass
class RecipeData:
    """A complete recipe: the unit of creation, replacement and retrieval.

    `id` and `date_added` are filled in on records returned by the services
    and ignored on input.

    Example:
        RecipeData(
            name="Classic Pancakes",
            author="Mom",
            ingredients=[RecipeIngredientData("Flour", 1.5, "cups")],
            tags=["breakfast"],
            instructions=["Whisk the dry ingredients.", "Cook on a griddle."],
        )
    """

    name: str
    description: str = ""
    prep_time_minutes: int = 0
    cook_time_minutes: int = 0
    servings: int = 0
    is_favorite: bool = False
    source: str = ""
    source_url: str = ""
    author: str = ""
    ingredients: List[RecipeIngredientData] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    instructions: List[str] = field(default_factory=list)
    id: Optional[int] = None
    date_added: Optional[datetime] = None

    @property
    def ingredient_names(self) -> List[str]:
        return [ingredient.name for ingredient in self.ingredients]

    @classmethod
    def from_model(cls, recipe) -> "RecipeData":
        """
        Build a RecipeData from a loaded Recipe model.

        Instructions come back ordered by step number; ingredient and tag
        order follows the link rows.
        """
        return cls(
            id=recipe.id,
            name=recipe.name,
            description=recipe.description or "",
            prep_time_minutes=recipe.prep_time_minutes or 0,
            cook_time_minutes=recipe.cook_time_minutes or 0,
            servings=recipe.servings or 0,
            is_favorite=bool(recipe.is_favorite),
            source=recipe.source or "",
            source_url=recipe.source_url or "",
            author=recipe.author or "",
            date_added=recipe.date_added,
            ingredients=[
                RecipeIngredientData(
                    name=ri.ingredient.name,
                    quantity=ri.quantity,
                    unit=ri.unit or "",
                    notes=ri.notes or "",
                    optional=bool(ri.optional),
                )
                for ri in recipe.recipe_ingredients
            ],
            tags=[rt.tag.name for rt in recipe.recipe_tags],
            instructions=[
                step.instruction
                for step in sorted(recipe.instructions, key=lambda s: s.step_number)
            ],
        )
