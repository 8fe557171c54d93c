"""Services package - Business logic layer for Recipe Box.

This package contains all service modules that provide business logic
and database operations for the application.

Architecture:
- Services: Stateless functions that take the Collection they operate on
- Transactions: Managed via Collection.session_scope() context manager
- Exceptions: Consistent error handling via ServiceError hierarchy
- Validation: Input validation before database operations

Service Modules:
- recipe_service: Recipe add / get / replace / delete, vocabulary GC
- search_service: Search criteria compilation and execution
- merge_service: Merging one collection into another

Infrastructure:
- database: Collection handle, schema and search index setup
- dto: Transfer objects passed in and out of the services
- exceptions: Custom exception classes for service layer errors
- logging_utils: Structured operation logging
"""

from . import database, merge_service, recipe_service, search_service

from .database import (
    Collection,
    attached_collection,
    empty_collection,
    open_collection,
    verify_collection,
)
from .dto import RecipeData, RecipeIngredientData
from .exceptions import (
    CollectionNotOpen,
    ConstraintViolation,
    DatabaseError,
    IntegrityCheckFailed,
    RecipeNotFound,
    SearchUnavailable,
    ServiceError,
    ValidationError,
)
from .merge_service import MergeResult, merge_collection
from .recipe_service import add_recipe, delete_recipe, get_recipe, replace_recipe
from .search_service import SearchCriteria, compile_criteria, search_recipes

__all__ = [
    # Modules
    "database",
    "merge_service",
    "recipe_service",
    "search_service",
    # Collection
    "Collection",
    "attached_collection",
    "empty_collection",
    "open_collection",
    "verify_collection",
    # Transfer objects
    "RecipeData",
    "RecipeIngredientData",
    "MergeResult",
    "SearchCriteria",
    # Operations
    "add_recipe",
    "get_recipe",
    "replace_recipe",
    "delete_recipe",
    "compile_criteria",
    "search_recipes",
    "merge_collection",
    # Exceptions
    "ServiceError",
    "CollectionNotOpen",
    "ValidationError",
    "RecipeNotFound",
    "DatabaseError",
    "ConstraintViolation",
    "SearchUnavailable",
    "IntegrityCheckFailed",
]
