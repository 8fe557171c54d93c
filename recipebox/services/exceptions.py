"""Service layer exception classes for Recipe Box.

This module defines all custom exceptions used by the service layer to provide
consistent error handling across the application.

Exception Hierarchy:
    ServiceError
    ├── CollectionNotOpen
    ├── ValidationError
    ├── RecipeNotFound
    └── DatabaseError
        ├── ConstraintViolation
        ├── SearchUnavailable
        └── IntegrityCheckFailed
"""

from typing import List, Optional, Sequence


class ServiceError(Exception):
    """Base exception for all service layer errors.

    All service-specific exceptions should inherit from this class.
    """

    pass


class CollectionNotOpen(ServiceError):
    """Raised when an operation is attempted on a closed collection.

    Example:
        >>> raise CollectionNotOpen()
        CollectionNotOpen: Collection is not open
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        if path:
            super().__init__(f"Collection '{path}' is not open")
        else:
            super().__init__("Collection is not open")


class ValidationError(ServiceError):
    """Raised when data validation fails.

    Args:
        errors: List of human-readable validation messages
    """

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        error_msg = "; ".join(self.errors)
        super().__init__(f"Validation failed: {error_msg}")


class RecipeNotFound(ServiceError):
    """Raised when a recipe cannot be found by ID.

    Example:
        >>> raise RecipeNotFound(123)
        RecipeNotFound: Recipe with ID 123 not found
    """

    def __init__(self, recipe_id: int):
        self.recipe_id = recipe_id
        super().__init__(f"Recipe with ID {recipe_id} not found")


class DatabaseError(ServiceError):
    """Raised when a database operation fails.

    Args:
        message: What was being attempted
        original_error: The underlying exception, if any
    """

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")


class ConstraintViolation(DatabaseError):
    """Raised when a write violates a uniqueness or foreign-key constraint."""

    pass


class SearchUnavailable(DatabaseError):
    """Raised when a search cannot be run against the store.

    Distinguishes "could not query" from "no matches", which is an empty list.
    """

    pass


class IntegrityCheckFailed(DatabaseError):
    """Raised when the post-merge referential integrity check finds violations.

    Args:
        violations: Rows reported by the check as (table, rowid, parent, fkid)
    """

    def __init__(self, violations: Sequence[tuple]):
        self.violations = list(violations)
        tables = sorted({str(row[0]) for row in self.violations})
        super().__init__(
            f"Integrity check failed: {len(self.violations)} violation(s) in "
            f"{', '.join(tables)}"
        )
