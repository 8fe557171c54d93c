"""
Merge Service - folds one recipe collection into another.

The source collection is read through a read-only handle and never written
to. Everything that happens to the target runs in a single transaction:
- ingredients and tags are unioned case-insensitively
- source recipes already present in the target (same name, same ingredient
  set, and a matching author, source or source URL) are reported as
  duplicates and only contribute their tags
- every other source recipe is copied under a fresh id above the target's
  current maximum, with its links and instructions
- a foreign key check runs before commit; any violation aborts the merge

Usage:
    from recipebox.services.merge_service import merge_collection

    result = merge_collection(collection, "friends_recipes.db")
    print(result.recipes_added, result.duplicates_found)
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, List, Sequence, Tuple, Union

from sqlalchemy import func, insert, select, text
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from recipebox.models import Ingredient, Instruction, Recipe, RecipeIngredient, RecipeTag, Tag
from recipebox.services.database import Collection, attached_collection
from recipebox.services.exceptions import (
    CollectionNotOpen,
    ConstraintViolation,
    DatabaseError,
    IntegrityCheckFailed,
    ValidationError,
)
from recipebox.services.logging_utils import get_service_logger, log_operation

logger = get_service_logger(__name__)

_PROVENANCE_FIELDS = ("author", "source", "source_url")


@dataclass
class MergeResult:
    """
    Outcome of a merge.

    Attributes:
        ingredients_added: New ingredient vocabulary rows in the target
        tags_added: New tag vocabulary rows in the target
        recipes_added: Source recipes copied as new recipes
        duplicates_found: Source recipes matched to an existing target recipe
        tag_links_added: Tag links added to existing target recipes
        recipe_id_map: Source recipe id -> target recipe id, for every
            source recipe (new or duplicate)
    """

    ingredients_added: int = 0
    tags_added: int = 0
    recipes_added: int = 0
    duplicates_found: int = 0
    tag_links_added: int = 0
    recipe_id_map: Dict[int, int] = field(default_factory=dict)


@dataclass
class _RecipeSnapshot:
    """Identity-relevant view of one recipe."""

    id: int
    name: str
    author: str
    source: str
    source_url: str
    fingerprint: FrozenSet[str]

    def is_duplicate_of(self, other: "_RecipeSnapshot") -> bool:
        if self.name.lower() != other.name.lower():
            return False
        if self.fingerprint != other.fingerprint:
            return False
        for attr in _PROVENANCE_FIELDS:
            mine = getattr(self, attr)
            if mine and mine.lower() == getattr(other, attr).lower():
                return True
        return False


@dataclass
class _SourceData:
    """Everything read from the source collection."""

    ingredients: List[Tuple[int, str]]
    tags: List[Tuple[int, str]]
    recipes: List[dict]
    ingredient_links: List[dict]
    tag_links: List[Tuple[int, int]]
    instructions: List[dict]


# ============================================================================
# Reading
# ============================================================================


def _fingerprints(session: Session) -> Dict[int, FrozenSet[str]]:
    """Lower-cased ingredient name sets per recipe id."""
    names: Dict[int, set] = {}
    rows = session.execute(
        select(RecipeIngredient.recipe_id, Ingredient.name).join(
            Ingredient, Ingredient.id == RecipeIngredient.ingredient_id
        )
    )
    for recipe_id, name in rows:
        names.setdefault(recipe_id, set()).add(name.lower())
    return {recipe_id: frozenset(values) for recipe_id, values in names.items()}


def _snapshots(session: Session, recipes: Sequence[dict]) -> List[_RecipeSnapshot]:
    fingerprints = _fingerprints(session)
    return [
        _RecipeSnapshot(
            id=row["id"],
            name=row["name"],
            author=row["author"] or "",
            source=row["source"] or "",
            source_url=row["source_url"] or "",
            fingerprint=fingerprints.get(row["id"], frozenset()),
        )
        for row in recipes
    ]


def _read_source(session: Session) -> Tuple[_SourceData, List[_RecipeSnapshot]]:
    recipes = [
        dict(row)
        for row in session.execute(select(Recipe.__table__).order_by(Recipe.id)).mappings()
    ]
    data = _SourceData(
        ingredients=[tuple(row) for row in session.execute(select(Ingredient.id, Ingredient.name))],
        tags=[tuple(row) for row in session.execute(select(Tag.id, Tag.name))],
        recipes=recipes,
        ingredient_links=[
            dict(row) for row in session.execute(select(RecipeIngredient.__table__)).mappings()
        ],
        tag_links=[
            tuple(row) for row in session.execute(select(RecipeTag.recipe_id, RecipeTag.tag_id))
        ],
        instructions=[
            dict(row)
            for row in session.execute(
                select(
                    Instruction.recipe_id, Instruction.step_number, Instruction.instruction
                ).order_by(Instruction.recipe_id, Instruction.step_number)
            ).mappings()
        ],
    )
    return data, _snapshots(session, recipes)


# ============================================================================
# Merge Steps
# ============================================================================


def _union_vocabulary(
    session: Session, model, source_rows: Sequence[Tuple[int, str]]
) -> Tuple[Dict[int, int], int]:
    """
    Add source names missing from the target (ignoring case).

    Returns:
        (source id -> target id map, number of rows added)
    """
    by_name = {
        name.lower(): vocab_id
        for vocab_id, name in session.execute(select(model.id, model.name))
    }
    id_map: Dict[int, int] = {}
    added = 0
    for source_id, name in source_rows:
        key = name.lower()
        if key not in by_name:
            result = session.execute(insert(model.__table__).values(name=name))
            by_name[key] = result.inserted_primary_key[0]
            added += 1
        id_map[source_id] = by_name[key]
    return id_map, added


def _classify(
    source_recipes: Sequence[_RecipeSnapshot], target_recipes: Sequence[_RecipeSnapshot]
) -> Dict[int, int]:
    """Map each duplicate source recipe id to the lowest matching target id."""
    ordered_targets = sorted(target_recipes, key=lambda r: r.id)
    duplicates: Dict[int, int] = {}
    for candidate in source_recipes:
        for existing in ordered_targets:
            if candidate.is_duplicate_of(existing):
                duplicates[candidate.id] = existing.id
                break
    return duplicates


def _replay(
    session: Session,
    data: _SourceData,
    recipe_map: Dict[int, int],
    new_ids: set,
    ingredient_map: Dict[int, int],
    tag_map: Dict[int, int],
) -> int:
    """
    Copy new recipes and add duplicate recipes' tags.

    Returns:
        Number of tag links added to existing target recipes
    """
    for row in data.recipes:
        if row["id"] not in new_ids:
            continue
        values = dict(row)
        values["id"] = recipe_map[row["id"]]
        session.execute(insert(Recipe.__table__).values(**values))

    for link in data.ingredient_links:
        if link["recipe_id"] not in new_ids:
            continue
        values = dict(link)
        values["recipe_id"] = recipe_map[link["recipe_id"]]
        values["ingredient_id"] = ingredient_map[link["ingredient_id"]]
        # Two source names can fold into one target ingredient
        session.execute(
            sqlite_insert(RecipeIngredient.__table__).values(**values).on_conflict_do_nothing()
        )

    for step in data.instructions:
        if step["recipe_id"] not in new_ids:
            continue
        session.execute(
            insert(Instruction.__table__).values(
                recipe_id=recipe_map[step["recipe_id"]],
                step_number=step["step_number"],
                instruction=step["instruction"],
            )
        )

    tag_links_added = 0
    for recipe_id, tag_id in data.tag_links:
        target_recipe_id = recipe_map[recipe_id]
        target_tag_id = tag_map[tag_id]
        result = session.execute(
            sqlite_insert(RecipeTag.__table__)
            .values(recipe_id=target_recipe_id, tag_id=target_tag_id)
            .on_conflict_do_nothing()
        )
        if recipe_id not in new_ids:
            tag_links_added += result.rowcount
    return tag_links_added


def _foreign_key_violations(session: Session) -> List[tuple]:
    return [tuple(row) for row in session.execute(text("PRAGMA foreign_key_check"))]


def _is_same_collection(target: Collection, source: Union[Collection, str, Path]) -> bool:
    if isinstance(source, Collection):
        if source is target:
            return True
        if source.is_memory or target.is_memory:
            return False
        source_path = source.path
    else:
        source_path = str(source)
    if target.is_memory:
        return False
    return Path(source_path).expanduser().resolve() == Path(target.path).expanduser().resolve()


# ============================================================================
# Public API
# ============================================================================


def merge_collection(
    target: Collection, source: Union[Collection, str, Path]
) -> MergeResult:
    """
    Merge every recipe of `source` into `target`.

    Args:
        target: Open collection that receives the recipes
        source: Open Collection or path to a collection file; only read

    Returns:
        MergeResult with counts and the source -> target recipe id map

    Raises:
        ValidationError: If source and target are the same collection
        CollectionNotOpen: If either handle is closed
        IntegrityCheckFailed: If the merged data breaks a foreign key
        ConstraintViolation: If a copied row breaks a constraint
        DatabaseError: If the source cannot be read or the merge fails;
            the target is left unchanged in every failure case
    """
    if _is_same_collection(target, source):
        raise ValidationError(["Cannot merge a collection into itself"])

    if not target.is_open:
        raise CollectionNotOpen(target.path)

    try:
        with attached_collection(source) as attached, attached.session_scope() as src:
            data, source_recipes = _read_source(src)
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to read source collection", e)

    result = MergeResult()
    try:
        with target.session_scope() as session:
            max_id = session.scalar(select(func.max(Recipe.id))) or 0

            target_rows = [
                dict(row)
                for row in session.execute(
                    select(
                        Recipe.id, Recipe.name, Recipe.author, Recipe.source, Recipe.source_url
                    )
                ).mappings()
            ]
            target_recipes = _snapshots(session, target_rows)

            ingredient_map, result.ingredients_added = _union_vocabulary(
                session, Ingredient, data.ingredients
            )
            tag_map, result.tags_added = _union_vocabulary(session, Tag, data.tags)

            duplicates = _classify(source_recipes, target_recipes)
            recipe_map: Dict[int, int] = {}
            new_ids = set()
            for snapshot in source_recipes:
                if snapshot.id in duplicates:
                    recipe_map[snapshot.id] = duplicates[snapshot.id]
                else:
                    recipe_map[snapshot.id] = snapshot.id + max_id
                    new_ids.add(snapshot.id)

            result.tag_links_added = _replay(
                session, data, recipe_map, new_ids, ingredient_map, tag_map
            )
            result.recipes_added = len(new_ids)
            result.duplicates_found = len(duplicates)
            result.recipe_id_map = recipe_map

            violations = _foreign_key_violations(session)
            if violations:
                raise IntegrityCheckFailed(violations)
    except IntegrityCheckFailed as e:
        log_operation(
            logger, operation="merge_collection", outcome="integrity_check_failed",
            level=logging.ERROR, violation_count=len(e.violations),
        )
        raise
    except IntegrityError as e:
        log_operation(
            logger, operation="merge_collection", outcome="constraint_violation",
            level=logging.ERROR, error=str(e.orig),
        )
        raise ConstraintViolation("Merge failed", e)
    except SQLAlchemyError as e:
        log_operation(
            logger, operation="merge_collection", outcome="error",
            level=logging.ERROR, error=str(e),
        )
        raise DatabaseError("Merge failed", e)

    log_operation(
        logger,
        operation="merge_collection",
        outcome="success",
        recipes_added=result.recipes_added,
        duplicates_found=result.duplicates_found,
        ingredients_added=result.ingredients_added,
        tags_added=result.tags_added,
        tag_links_added=result.tag_links_added,
    )
    return result
