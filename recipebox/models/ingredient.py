"""
Vocabulary models shared by reference across recipes.

Ingredient and Tag rows are unique by exact (case-sensitive) name and are
garbage-collected once no recipe links to them.
"""

from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from .base import BaseModel


class Ingredient(BaseModel):
    """
    Ingredient vocabulary entry.

    Attributes:
        name: Unique ingredient name (e.g., "All-purpose flour")
    """

    __tablename__ = "ingredients"

    name = Column(String(200), nullable=False, unique=True)

    recipe_ingredients = relationship(
        "RecipeIngredient", back_populates="ingredient", lazy="select"
    )


class Tag(BaseModel):
    """
    Tag vocabulary entry.

    Attributes:
        name: Unique tag name (e.g., "breakfast")
    """

    __tablename__ = "tags"

    name = Column(String(200), nullable=False, unique=True)

    recipe_tags = relationship("RecipeTag", back_populates="tag", lazy="select")
