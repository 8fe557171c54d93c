"""
Recipe models.

This module contains:
- Recipe: Main recipe model with metadata
- RecipeIngredient: Junction table linking recipes to ingredients
- RecipeTag: Junction table linking recipes to tags
- Instruction: Ordered preparation steps of a recipe
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import Base, BaseModel
from recipebox.utils.datetime_utils import utc_now


class Recipe(BaseModel):
    """
    Recipe model.

    Identities use SQLite AUTOINCREMENT so a freed id is never handed out
    again; merging relies on new ids staying above the current maximum.

    Attributes:
        name: Recipe name (required)
        description: Free-form description
        prep_time_minutes: Preparation time in minutes
        cook_time_minutes: Cooking time in minutes
        servings: Number of servings
        is_favorite: Whether the recipe is marked as a favorite
        source: Where the recipe came from (e.g., "Grandma's cookbook")
        source_url: URL of the source
        author: Author of the recipe
        date_added: When the recipe was added (immutable)
    """

    __tablename__ = "recipes"

    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    prep_time_minutes = Column(Integer, nullable=False, default=0)
    cook_time_minutes = Column(Integer, nullable=False, default=0)
    servings = Column(Integer, nullable=False, default=0)
    is_favorite = Column(Boolean, nullable=False, default=False)

    source = Column(String(500), nullable=True)
    source_url = Column(String(500), nullable=True)
    author = Column(String(200), nullable=True)

    date_added = Column(DateTime, nullable=False, default=utc_now)

    # Relationships (children are removed by ON DELETE CASCADE as well)
    recipe_ingredients = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    recipe_tags = relationship(
        "RecipeTag",
        back_populates="recipe",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    instructions = relationship(
        "Instruction",
        back_populates="recipe",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Instruction.step_number",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_recipe_name", "name"),
        Index("idx_recipe_author", "author"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return f"Recipe(id={self.id}, name='{self.name}')"

    @property
    def ingredient_names(self) -> list:
        """Names of the linked ingredients."""
        return [ri.ingredient.name for ri in self.recipe_ingredients]

    @property
    def tag_names(self) -> list:
        """Names of the linked tags."""
        return [rt.tag.name for rt in self.recipe_tags]


class RecipeIngredient(Base):
    """
    Junction table linking a recipe to an ingredient.

    Attributes:
        recipe_id: Foreign key to Recipe
        ingredient_id: Foreign key to Ingredient
        quantity: Amount needed (-1 when unspecified)
        unit: Unit of measurement
        notes: Optional notes (e.g., "sifted", "melted")
        optional: Whether the ingredient can be left out
    """

    __tablename__ = "recipe_ingredients"

    recipe_id = Column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True
    )
    ingredient_id = Column(
        Integer, ForeignKey("ingredients.id", ondelete="RESTRICT"), primary_key=True
    )

    quantity = Column(Float, nullable=False, default=-1.0)
    unit = Column(String(50), nullable=True)
    notes = Column(String(500), nullable=True)
    optional = Column(Boolean, nullable=False, default=False)

    recipe = relationship("Recipe", back_populates="recipe_ingredients")
    ingredient = relationship("Ingredient", back_populates="recipe_ingredients", lazy="joined")

    __table_args__ = (Index("idx_recipe_ingredient_ingredient", "ingredient_id"),)

    def __repr__(self) -> str:
        return (
            f"RecipeIngredient(recipe_id={self.recipe_id}, "
            f"ingredient_id={self.ingredient_id}, quantity={self.quantity})"
        )


class RecipeTag(Base):
    """Junction table linking a recipe to a tag."""

    __tablename__ = "recipe_tags"

    recipe_id = Column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True
    )
    tag_id = Column(Integer, ForeignKey("tags.id", ondelete="RESTRICT"), primary_key=True)

    recipe = relationship("Recipe", back_populates="recipe_tags")
    tag = relationship("Tag", back_populates="recipe_tags", lazy="joined")

    __table_args__ = (Index("idx_recipe_tag_tag", "tag_id"),)

    def __repr__(self) -> str:
        return f"RecipeTag(recipe_id={self.recipe_id}, tag_id={self.tag_id})"


class Instruction(BaseModel):
    """
    A single preparation step.

    Attributes:
        recipe_id: Foreign key to Recipe
        step_number: 1-based position; gaps are tolerated, order is kept
        instruction: Step text
    """

    __tablename__ = "instructions"

    recipe_id = Column(
        Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )
    step_number = Column(Integer, nullable=False)
    instruction = Column(Text, nullable=False)

    recipe = relationship("Recipe", back_populates="instructions")

    __table_args__ = (
        UniqueConstraint("recipe_id", "step_number", name="uq_instruction_step"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return f"Instruction(recipe_id={self.recipe_id}, step_number={self.step_number})"
