"""
Database models package.

This package contains all SQLAlchemy ORM models for the application.
"""

from .base import Base, BaseModel
from .ingredient import Ingredient, Tag
from .recipe import Recipe, RecipeIngredient, RecipeTag, Instruction

__all__ = [
    "Base",
    "BaseModel",
    "Ingredient",
    "Tag",
    "Recipe",
    "RecipeIngredient",
    "RecipeTag",
    "Instruction",
]
