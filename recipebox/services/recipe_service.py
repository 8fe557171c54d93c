"""
Recipe Service - Business logic for recipe management.

This service provides:
- Atomic creation of a recipe with its ingredients, tags and instructions
- Retrieval as RecipeData transfer objects
- Whole-record replacement and deletion
- Garbage collection of unreferenced ingredients and tags

Session Management Pattern:
- Every function takes the Collection to operate on
- Functions that write accept an optional `session`; when given, the caller
  owns the transaction, otherwise a session_scope is opened for the call
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from recipebox.models import Ingredient, Instruction, Recipe, RecipeIngredient, RecipeTag, Tag
from recipebox.services.database import Collection
from recipebox.services.dto import RecipeData
from recipebox.services.exceptions import (
    ConstraintViolation,
    DatabaseError,
    RecipeNotFound,
    ValidationError,
)
from recipebox.services.logging_utils import get_service_logger, log_operation
from recipebox.utils.validators import validate_recipe_data

logger = get_service_logger(__name__)


# ============================================================================
# Vocabulary Helpers
# ============================================================================


def get_or_create_ingredient(session: Session, name: str) -> Ingredient:
    """
    Get an ingredient by exact name, creating it if it doesn't exist.

    Args:
        session: Database session
        name: Ingredient name (surrounding whitespace is ignored)

    Returns:
        Ingredient instance with an id
    """
    name = name.strip()
    ingredient = session.query(Ingredient).filter(Ingredient.name == name).first()
    if ingredient is None:
        ingredient = Ingredient(name=name)
        session.add(ingredient)
        session.flush()
    return ingredient


def get_or_create_tag(session: Session, name: str) -> Tag:
    """
    Get a tag by exact name, creating it if it doesn't exist.

    Args:
        session: Database session
        name: Tag name (surrounding whitespace is ignored)

    Returns:
        Tag instance with an id
    """
    name = name.strip()
    tag = session.query(Tag).filter(Tag.name == name).first()
    if tag is None:
        tag = Tag(name=name)
        session.add(tag)
        session.flush()
    return tag


def collect_unused_vocabulary(session: Session) -> Tuple[int, int]:
    """
    Delete ingredients and tags that no recipe links to.

    Args:
        session: Database session

    Returns:
        Tuple of (ingredients_removed, tags_removed)
    """
    ingredients_removed = session.execute(
        delete(Ingredient)
        .where(Ingredient.id.not_in(select(RecipeIngredient.ingredient_id).distinct()))
        .execution_options(synchronize_session=False)
    ).rowcount
    tags_removed = session.execute(
        delete(Tag)
        .where(Tag.id.not_in(select(RecipeTag.tag_id).distinct()))
        .execution_options(synchronize_session=False)
    ).rowcount
    return ingredients_removed, tags_removed


# ============================================================================
# Internal Helpers
# ============================================================================


def _recipe_fields(recipe_data: RecipeData) -> dict:
    """Scalar columns of a recipe row (everything but id and date_added)."""
    return {
        "name": recipe_data.name.strip(),
        "description": recipe_data.description,
        "prep_time_minutes": recipe_data.prep_time_minutes,
        "cook_time_minutes": recipe_data.cook_time_minutes,
        "servings": recipe_data.servings,
        "is_favorite": bool(recipe_data.is_favorite),
        "source": recipe_data.source,
        "source_url": recipe_data.source_url,
        "author": recipe_data.author,
    }


def _insert_children(session: Session, recipe_id: int, recipe_data: RecipeData) -> None:
    """
    Link ingredients and tags and add the instruction steps of a recipe.

    Links are inserted directly so a repeated ingredient or tag surfaces as a
    constraint violation from the store.
    """
    for ing_data in recipe_data.ingredients:
        ingredient = get_or_create_ingredient(session, ing_data.name)
        session.execute(
            insert(RecipeIngredient).values(
                recipe_id=recipe_id,
                ingredient_id=ingredient.id,
                quantity=float(ing_data.quantity),
                unit=ing_data.unit,
                notes=ing_data.notes,
                optional=bool(ing_data.optional),
            )
        )

    for tag_name in recipe_data.tags:
        tag = get_or_create_tag(session, tag_name)
        session.execute(insert(RecipeTag).values(recipe_id=recipe_id, tag_id=tag.id))

    for step_number, text in enumerate(recipe_data.instructions, start=1):
        session.execute(
            insert(Instruction).values(
                recipe_id=recipe_id, step_number=step_number, instruction=text
            )
        )


def _validate(recipe_data: RecipeData, operation: str) -> None:
    is_valid, errors = validate_recipe_data(recipe_data)
    if not is_valid:
        log_operation(
            logger,
            operation=operation,
            outcome="validation_failed",
            level=logging.WARNING,
            errors=errors,
        )
        raise ValidationError(errors)


# ============================================================================
# CRUD Operations
# ============================================================================


def add_recipe(
    collection: Collection,
    recipe_data: RecipeData,
    session: Optional[Session] = None,
) -> int:
    """
    Add a recipe with its ingredients, tags and instructions.

    The recipe row, every link and every instruction are written in one
    transaction: either all of them persist or none do. Instructions are
    numbered 1..n in the order given.

    Args:
        collection: Collection to write to
        recipe_data: The recipe to add
        session: Optional session; the caller then owns commit/rollback

    Returns:
        The new recipe id

    Raises:
        ValidationError: If a required field is empty or out of range
        CollectionNotOpen: If the collection is closed
        ConstraintViolation: If a link breaks a uniqueness rule (e.g. the
            same ingredient listed twice)
        DatabaseError: If the database operation fails
    """
    _validate(recipe_data, "add_recipe")

    def _impl(sess: Session) -> int:
        recipe = Recipe(**_recipe_fields(recipe_data))
        sess.add(recipe)
        sess.flush()

        _insert_children(sess, recipe.id, recipe_data)
        sess.flush()
        return recipe.id

    try:
        if session is not None:
            recipe_id = _impl(session)
        else:
            with collection.session_scope() as sess:
                recipe_id = _impl(sess)
    except IntegrityError as e:
        log_operation(
            logger, operation="add_recipe", outcome="constraint_violation",
            level=logging.WARNING, error=str(e.orig),
        )
        raise ConstraintViolation(f"Failed to add recipe '{recipe_data.name}'", e)
    except SQLAlchemyError as e:
        log_operation(
            logger, operation="add_recipe", outcome="error", level=logging.ERROR, error=str(e)
        )
        raise DatabaseError(f"Failed to add recipe '{recipe_data.name}'", e)

    log_operation(logger, operation="add_recipe", outcome="success", recipe_id=recipe_id)
    return recipe_id


def get_recipe(collection: Collection, recipe_id: int) -> RecipeData:
    """
    Retrieve a recipe by ID.

    Args:
        collection: Collection to read from
        recipe_id: Recipe ID

    Returns:
        RecipeData with ingredients, tags and ordered instructions

    Raises:
        RecipeNotFound: If recipe doesn't exist
        CollectionNotOpen: If the collection is closed
        DatabaseError: If database operation fails
    """
    if recipe_id is None or recipe_id <= 0:
        raise RecipeNotFound(recipe_id)

    try:
        with collection.session_scope() as session:
            recipe = session.get(Recipe, recipe_id)
            if recipe is None:
                raise RecipeNotFound(recipe_id)
            return RecipeData.from_model(recipe)

    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to retrieve recipe {recipe_id}", e)


def list_recipes(collection: Collection) -> List[RecipeData]:
    """
    Retrieve every recipe, ordered by id.

    Raises:
        CollectionNotOpen: If the collection is closed
        DatabaseError: If database operation fails
    """
    try:
        with collection.session_scope() as session:
            recipes = session.query(Recipe).order_by(Recipe.id).all()
            return [RecipeData.from_model(recipe) for recipe in recipes]

    except SQLAlchemyError as e:
        raise DatabaseError("Failed to retrieve recipes", e)


def get_recipe_count(collection: Collection) -> int:
    """Return the number of recipes in the collection."""
    try:
        with collection.session_scope() as session:
            return session.query(func.count(Recipe.id)).scalar() or 0

    except SQLAlchemyError as e:
        raise DatabaseError("Failed to count recipes", e)


def get_ingredient_names(collection: Collection) -> List[str]:
    """Return all ingredient names in the collection, sorted."""
    try:
        with collection.session_scope() as session:
            return [row[0] for row in session.query(Ingredient.name).order_by(Ingredient.name)]

    except SQLAlchemyError as e:
        raise DatabaseError("Failed to retrieve ingredients", e)


def get_tag_names(collection: Collection) -> List[str]:
    """Return all tag names in the collection, sorted."""
    try:
        with collection.session_scope() as session:
            return [row[0] for row in session.query(Tag.name).order_by(Tag.name)]

    except SQLAlchemyError as e:
        raise DatabaseError("Failed to retrieve tags", e)


def replace_recipe(
    collection: Collection,
    recipe_id: int,
    recipe_data: RecipeData,
    session: Optional[Session] = None,
) -> RecipeData:
    """
    Replace a recipe as a whole record.

    All fields, links and instructions are swapped for those in recipe_data.
    The id and date_added are kept. Vocabulary left unreferenced by the
    replacement is removed.

    Args:
        collection: Collection to write to
        recipe_id: Recipe ID
        recipe_data: The new contents of the recipe
        session: Optional session; the caller then owns commit/rollback

    Returns:
        The stored recipe after replacement

    Raises:
        RecipeNotFound: If recipe doesn't exist
        ValidationError: If data validation fails
        ConstraintViolation: If a link breaks a uniqueness rule
        DatabaseError: If database operation fails
    """
    if recipe_id is None or recipe_id <= 0:
        raise RecipeNotFound(recipe_id)
    _validate(recipe_data, "replace_recipe")

    def _impl(sess: Session) -> RecipeData:
        exists = sess.query(Recipe.id).filter(Recipe.id == recipe_id).first()
        if exists is None:
            raise RecipeNotFound(recipe_id)

        sess.execute(
            update(Recipe)
            .where(Recipe.id == recipe_id)
            .values(**_recipe_fields(recipe_data))
            .execution_options(synchronize_session=False)
        )
        for model in (RecipeIngredient, RecipeTag, Instruction):
            sess.execute(
                delete(model)
                .where(model.recipe_id == recipe_id)
                .execution_options(synchronize_session=False)
            )

        _insert_children(sess, recipe_id, recipe_data)
        collect_unused_vocabulary(sess)
        sess.flush()
        sess.expire_all()

        return RecipeData.from_model(sess.get(Recipe, recipe_id))

    try:
        if session is not None:
            result = _impl(session)
        else:
            with collection.session_scope() as sess:
                result = _impl(sess)
    except IntegrityError as e:
        raise ConstraintViolation(f"Failed to replace recipe {recipe_id}", e)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to replace recipe {recipe_id}", e)

    log_operation(logger, operation="replace_recipe", outcome="success", recipe_id=recipe_id)
    return result


def delete_recipe(
    collection: Collection,
    recipe_id: int,
    session: Optional[Session] = None,
) -> bool:
    """
    Delete a recipe, its links and instructions.

    Ingredients and tags no longer used by any recipe are removed in the
    same transaction.

    Args:
        collection: Collection to write to
        recipe_id: Recipe ID
        session: Optional session; the caller then owns commit/rollback

    Returns:
        True if deleted successfully

    Raises:
        RecipeNotFound: If recipe doesn't exist
        CollectionNotOpen: If the collection is closed
        DatabaseError: If database operation fails
    """
    if recipe_id is None or recipe_id <= 0:
        raise RecipeNotFound(recipe_id)

    def _impl(sess: Session) -> Tuple[int, int]:
        recipe = sess.get(Recipe, recipe_id)
        if recipe is None:
            raise RecipeNotFound(recipe_id)

        # Cascade removes recipe_ingredients, recipe_tags and instructions
        sess.delete(recipe)
        sess.flush()
        return collect_unused_vocabulary(sess)

    try:
        if session is not None:
            removed = _impl(session)
        else:
            with collection.session_scope() as sess:
                removed = _impl(sess)
    except SQLAlchemyError as e:
        log_operation(
            logger, operation="delete_recipe", outcome="error", level=logging.ERROR,
            recipe_id=recipe_id, error=str(e),
        )
        raise DatabaseError(f"Failed to delete recipe {recipe_id}", e)

    log_operation(
        logger,
        operation="delete_recipe",
        outcome="success",
        recipe_id=recipe_id,
        ingredients_removed=removed[0],
        tags_removed=removed[1],
    )
    return True
