"""
Constants for the Recipe Box application.

This module defines system-wide constants including:
- Application metadata
- Field length limits
- Search index layout
- Validation error messages
"""

from typing import List

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "Recipe Box"
APP_VERSION = "0.1.0"
DATABASE_VERSION = "1.0"
DATABASE_FILENAME = "recipes.db"
APP_DIR_NAME = "RecipeBox"

# Environment variables
ENV_ENVIRONMENT = "RECIPEBOX_ENV"
ENV_DATABASE_PATH = "RECIPEBOX_DB_PATH"

# ============================================================================
# Field Limits
# ============================================================================

MAX_NAME_LENGTH = 200
MAX_UNIT_LENGTH = 50
MAX_SOURCE_LENGTH = 500
MAX_AUTHOR_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 2000
MAX_NOTES_LENGTH = 500
MAX_INSTRUCTION_LENGTH = 5000

# Upper bound for prep/cook minutes and servings (stored as unsigned 16-bit)
MAX_MINUTES = 65535
MAX_SERVINGS = 65535

# Quantity used when a recipe does not specify an amount
UNSPECIFIED_QUANTITY = -1.0

# ============================================================================
# Search Index
# ============================================================================

SEARCH_TABLE = "recipe_search"

# Columns of the full-text index, in declaration order
SEARCH_COLUMNS: List[str] = [
    "name",
    "description",
    "author",
    "ingredients",
    "tags",
]

# Separator used when linked names are concatenated into the index
SEARCH_NAME_SEPARATOR = "|"

# ============================================================================
# Validation Messages
# ============================================================================

ERROR_REQUIRED_FIELD = "This field is required"
ERROR_INVALID_NUMBER = "Please enter a valid number"
ERROR_INVALID_NON_NEGATIVE = "Value must be zero or greater"
ERROR_INVALID_RANGE = "A range needs exactly two bounds"
ERROR_INVALID_DATE = "Please enter a valid date (YYYY-MM-DD)"
