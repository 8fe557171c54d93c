"""
Search Service - compiles search criteria into queries and runs them.

A SearchCriteria value has independently optional fields. compile_criteria()
turns it into a QueryPlan:
- one FTS5 query string covering every active free-text field, built from
  quoted tokens so user text can never change the query's structure
- a list of typed clauses for the structured fields

search_recipes() interprets the plan as SQLAlchemy expressions (all values
travel as bound parameters) and returns the matching recipe ids.

Usage:
    from recipebox.services.search_service import SearchCriteria, search_recipes

    ids = search_recipes(collection, SearchCriteria(tags=["italian", "dinner"]))
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Optional, Sequence, Tuple, Union

from sqlalchemy import and_, column, distinct, func, literal_column, select, table
from sqlalchemy.exc import SQLAlchemyError

from recipebox.models import Ingredient, Recipe, RecipeIngredient, RecipeTag, Tag
from recipebox.services.database import Collection
from recipebox.services.exceptions import SearchUnavailable, ValidationError
from recipebox.services.logging_utils import get_service_logger, log_operation
from recipebox.utils.constants import ERROR_INVALID_DATE, ERROR_INVALID_NUMBER, SEARCH_TABLE
from recipebox.utils.datetime_utils import to_date
from recipebox.utils.validators import validate_range_bounds

logger = get_service_logger(__name__)

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)

DateLike = Union[date, str]


# ============================================================================
# Criteria and Plan Types
# ============================================================================


@dataclass
class SearchCriteria:
    """
    Search description; every field is optional and active fields are ANDed.

    Attributes:
        keywords: Tokens matched anywhere in the text index
        name: Tokens matched in the recipe name
        author: Tokens matched in the author
        exact_name: Exact recipe name
        exact_author: Exact author
        source: Exact source
        source_url: Exact source URL
        prep_time_range: Inclusive [low, high] prep minutes
        cook_time_range: Inclusive [low, high] cook minutes
        servings_range: Inclusive [low, high] servings
        is_favorite: True restricts to favorites; False means no restriction
        date_range: Inclusive [from, to] on the date a recipe was added
        ingredients: Recipe must use every one of these
        exclude_ingredients: Recipe must use none of these
        tags: Recipe must carry every one of these
        exclude_tags: Recipe must carry none of these
    """

    keywords: str = ""
    name: str = ""
    author: str = ""
    exact_name: str = ""
    exact_author: str = ""
    source: str = ""
    source_url: str = ""
    prep_time_range: Sequence[int] = ()
    cook_time_range: Sequence[int] = ()
    servings_range: Sequence[int] = ()
    is_favorite: bool = False
    date_range: Sequence[DateLike] = ()
    ingredients: List[str] = field(default_factory=list)
    exclude_ingredients: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    exclude_tags: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ExactMatch:
    """Structured field equals value."""

    field: str
    value: str


@dataclass(frozen=True)
class RangeMatch:
    """Structured field lies in [low, high], inclusive."""

    field: str
    low: int
    high: int


@dataclass(frozen=True)
class DateRangeMatch:
    """Date part of date_added lies in [low, high], inclusive."""

    low: date
    high: date


@dataclass(frozen=True)
class FlagMatch:
    """Boolean field is true."""

    field: str


@dataclass(frozen=True)
class SetMembership:
    """Recipe is linked to every name in the set ("ingredients" or "tags")."""

    relation: str
    names: Tuple[str, ...]


@dataclass(frozen=True)
class SetExclusion:
    """Recipe is linked to none of the names in the set."""

    relation: str
    names: Tuple[str, ...]


Clause = Union[ExactMatch, RangeMatch, DateRangeMatch, FlagMatch, SetMembership, SetExclusion]


@dataclass
class QueryPlan:
    """Compiled form of a SearchCriteria."""

    text_query: Optional[str] = None
    clauses: List[Clause] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when the plan matches every recipe."""
        return self.text_query is None and not self.clauses


# ============================================================================
# Compiler
# ============================================================================


def quote_fts_token(token: str) -> str:
    """Quote a token as an FTS5 string so it is matched literally."""
    return '"' + token.replace('"', '""') + '"'


def _text_terms(text: Optional[str], column_name: Optional[str] = None) -> List[str]:
    """Split text into quoted FTS5 terms, optionally scoped to one column."""
    if not text:
        return []
    terms = []
    for token in _TOKEN_RE.findall(text):
        quoted = quote_fts_token(token)
        terms.append(f"{column_name} : {quoted}" if column_name else quoted)
    return terms


def _clean_names(names: Optional[Sequence[str]]) -> Tuple[str, ...]:
    """Strip names, drop empties and duplicates, keep first-seen order."""
    seen = []
    for name in names or ():
        name = name.strip() if isinstance(name, str) else name
        if name and name not in seen:
            seen.append(name)
    return tuple(seen)


def _range_clause(field_name: str, bounds: Sequence[Any], label: str) -> Optional[RangeMatch]:
    is_valid, error = validate_range_bounds(bounds, label)
    if not is_valid:
        raise ValidationError([error])
    if not bounds:
        return None

    low, high = bounds
    if any(isinstance(b, bool) or not isinstance(b, (int, float)) for b in (low, high)):
        raise ValidationError([f"{label}: {ERROR_INVALID_NUMBER}"])
    return RangeMatch(field_name, low, high)


def _date_range_clause(bounds: Sequence[DateLike]) -> Optional[DateRangeMatch]:
    is_valid, error = validate_range_bounds(bounds, "Date Range")
    if not is_valid:
        raise ValidationError([error])
    if not bounds or not all(bounds):
        # Both bounds must be given for the date filter to apply
        return None

    try:
        low, high = (to_date(b) for b in bounds)
    except (ValueError, TypeError):
        raise ValidationError([f"Date Range: {ERROR_INVALID_DATE}"]) from None
    return DateRangeMatch(low, high)


def compile_criteria(criteria: SearchCriteria) -> QueryPlan:  # noqa: C901
    """
    Compile search criteria into a query plan.

    Args:
        criteria: Search criteria

    Returns:
        QueryPlan with the combined text query and structured clauses

    Raises:
        ValidationError: If a range has other than zero or two bounds, or a
            bound is not a number / date
    """
    plan = QueryPlan()

    terms = (
        _text_terms(criteria.keywords)
        + _text_terms(criteria.name, "name")
        + _text_terms(criteria.author, "author")
    )
    if terms:
        plan.text_query = " AND ".join(terms)

    for field_name, value in (
        ("name", criteria.exact_name),
        ("author", criteria.exact_author),
        ("source", criteria.source),
        ("source_url", criteria.source_url),
    ):
        if value:
            plan.clauses.append(ExactMatch(field_name, value))

    for field_name, bounds, label in (
        ("prep_time_minutes", criteria.prep_time_range, "Prep Time Range"),
        ("cook_time_minutes", criteria.cook_time_range, "Cook Time Range"),
        ("servings", criteria.servings_range, "Servings Range"),
    ):
        clause = _range_clause(field_name, bounds, label)
        if clause is not None:
            plan.clauses.append(clause)

    if criteria.is_favorite:
        plan.clauses.append(FlagMatch("is_favorite"))

    date_clause = _date_range_clause(criteria.date_range)
    if date_clause is not None:
        plan.clauses.append(date_clause)

    for relation, names, exclude in (
        ("ingredients", criteria.ingredients, False),
        ("ingredients", criteria.exclude_ingredients, True),
        ("tags", criteria.tags, False),
        ("tags", criteria.exclude_tags, True),
    ):
        cleaned = _clean_names(names)
        if cleaned:
            clause_type = SetExclusion if exclude else SetMembership
            plan.clauses.append(clause_type(relation, cleaned))

    return plan


# ============================================================================
# Executor
# ============================================================================

_search_index = table(SEARCH_TABLE, column("rowid"))

_RECIPE_COLUMNS = {
    "name": Recipe.name,
    "author": Recipe.author,
    "source": Recipe.source,
    "source_url": Recipe.source_url,
    "prep_time_minutes": Recipe.prep_time_minutes,
    "cook_time_minutes": Recipe.cook_time_minutes,
    "servings": Recipe.servings,
    "is_favorite": Recipe.is_favorite,
}

# relation -> (link recipe column, link vocabulary column, vocabulary model)
_RELATIONS = {
    "ingredients": (RecipeIngredient.recipe_id, RecipeIngredient.ingredient_id, Ingredient),
    "tags": (RecipeTag.recipe_id, RecipeTag.tag_id, Tag),
}


def _linked_recipes(relation: str, names: Tuple[str, ...]):
    """Select (recipe_id) of links whose vocabulary name is in names."""
    recipe_col, vocab_col, vocab = _RELATIONS[relation]
    return (
        select(recipe_col)
        .join(vocab, vocab.id == vocab_col)
        .where(vocab.name.in_(names))
    )


def _clause_condition(clause: Clause):
    """Interpret one clause as a boolean SQL expression over Recipe."""
    if isinstance(clause, ExactMatch):
        return _RECIPE_COLUMNS[clause.field] == clause.value

    if isinstance(clause, RangeMatch):
        return _RECIPE_COLUMNS[clause.field].between(clause.low, clause.high)

    if isinstance(clause, DateRangeMatch):
        return func.date(Recipe.date_added).between(
            clause.low.isoformat(), clause.high.isoformat()
        )

    if isinstance(clause, FlagMatch):
        return _RECIPE_COLUMNS[clause.field].is_(True)

    if isinstance(clause, SetMembership):
        _, _, vocab = _RELATIONS[clause.relation]
        matching = (
            _linked_recipes(clause.relation, clause.names)
            .group_by(_RELATIONS[clause.relation][0])
            .having(func.count(distinct(vocab.name)) == len(clause.names))
        )
        return Recipe.id.in_(matching)

    if isinstance(clause, SetExclusion):
        return Recipe.id.not_in(_linked_recipes(clause.relation, clause.names))

    raise TypeError(f"Unknown search clause: {clause!r}")


def build_statement(plan: QueryPlan):
    """
    Build the SELECT for a query plan.

    Returns:
        A select() of distinct Recipe.id values, ascending
    """
    conditions = []

    if plan.text_query is not None:
        text_matches = select(_search_index.c.rowid).where(
            literal_column(SEARCH_TABLE).op("MATCH")(plan.text_query)
        )
        conditions.append(Recipe.id.in_(text_matches))

    conditions.extend(_clause_condition(clause) for clause in plan.clauses)

    stmt = select(Recipe.id).distinct()
    if conditions:
        stmt = stmt.where(and_(*conditions))
    return stmt.order_by(Recipe.id)


def search_recipes(collection: Collection, criteria: Optional[SearchCriteria] = None) -> List[int]:
    """
    Find the recipes matching all active criteria.

    Args:
        collection: Collection to search
        criteria: Search criteria; None or an empty value matches everything

    Returns:
        Distinct matching recipe ids in ascending order (empty if none match)

    Raises:
        ValidationError: If the criteria are malformed
        CollectionNotOpen: If the collection is closed
        SearchUnavailable: If the store cannot be queried
    """
    plan = compile_criteria(criteria or SearchCriteria())

    try:
        with collection.session_scope() as session:
            recipe_ids = list(session.execute(build_statement(plan)).scalars())
    except SQLAlchemyError as e:
        log_operation(
            logger,
            operation="search_recipes",
            outcome="error",
            level=logging.ERROR,
            error=str(e),
        )
        raise SearchUnavailable("Search failed", e)

    log_operation(
        logger,
        operation="search_recipes",
        outcome="success",
        level=logging.DEBUG,
        text_query=plan.text_query,
        clause_count=len(plan.clauses),
        result_count=len(recipe_ids),
    )
    return recipe_ids
