"""
Input validation functions for the Recipe Box application.

Validators return a (is_valid, error_message) tuple; the record-level
validators collect every error so callers can report them together.
"""

from typing import Any, List, Optional, Sequence, Tuple

from .constants import (
    ERROR_INVALID_NON_NEGATIVE,
    ERROR_INVALID_NUMBER,
    ERROR_INVALID_RANGE,
    ERROR_REQUIRED_FIELD,
    MAX_AUTHOR_LENGTH,
    MAX_DESCRIPTION_LENGTH,
    MAX_INSTRUCTION_LENGTH,
    MAX_MINUTES,
    MAX_NAME_LENGTH,
    MAX_NOTES_LENGTH,
    MAX_SERVINGS,
    MAX_SOURCE_LENGTH,
    MAX_UNIT_LENGTH,
)


def validate_required_string(value: Optional[str], field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a string field is not empty.

    Args:
        value: The string value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return False, f"{field_name}: {ERROR_REQUIRED_FIELD}"
    return True, ""


def validate_string_length(
    value: Optional[str], max_length: int, field_name: str = "Field"
) -> Tuple[bool, str]:
    """
    Validate that a string doesn't exceed maximum length.

    Args:
        value: The string value to validate
        max_length: Maximum allowed length
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value and len(value) > max_length:
        return False, f"{field_name}: Must be {max_length} characters or less"
    return True, ""


def validate_non_negative_int(
    value: Any, max_value: int, field_name: str = "Field"
) -> Tuple[bool, str]:
    """
    Validate that a value is a whole number between 0 and max_value.

    Args:
        value: The value to validate
        max_value: Largest accepted value
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if value < 0:
        return False, f"{field_name}: {ERROR_INVALID_NON_NEGATIVE}"
    if value > max_value:
        return False, f"{field_name}: Must be {max_value} or less"
    return True, ""


def validate_quantity(value: Any, field_name: str = "Quantity") -> Tuple[bool, str]:
    """Validate an ingredient quantity (any real number; -1 means unspecified)."""
    if isinstance(value, bool):
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    try:
        float(value)
    except (ValueError, TypeError):
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    return True, ""


def validate_range_bounds(bounds: Optional[Sequence], field_name: str = "Range") -> Tuple[bool, str]:
    """
    Validate the bound count of a range filter.

    An empty or missing range is valid (the filter is simply inactive);
    otherwise exactly two bounds are required.
    """
    if not bounds:
        return True, ""
    if len(bounds) != 2:
        return False, f"{field_name}: {ERROR_INVALID_RANGE} (got {len(bounds)})"
    return True, ""


def validate_recipe_data(data) -> Tuple[bool, List[str]]:  # noqa: C901
    """
    Validate all fields of a recipe before it is written.

    Args:
        data: RecipeData instance

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []

    is_valid, error = validate_required_string(data.name, "Recipe Name")
    if not is_valid:
        errors.append(error)
    else:
        is_valid, error = validate_string_length(data.name, MAX_NAME_LENGTH, "Recipe Name")
        if not is_valid:
            errors.append(error)

    for value, max_length, label in (
        (data.description, MAX_DESCRIPTION_LENGTH, "Description"),
        (data.source, MAX_SOURCE_LENGTH, "Source"),
        (data.source_url, MAX_SOURCE_LENGTH, "Source URL"),
        (data.author, MAX_AUTHOR_LENGTH, "Author"),
    ):
        is_valid, error = validate_string_length(value, max_length, label)
        if not is_valid:
            errors.append(error)

    for value, max_value, label in (
        (data.prep_time_minutes, MAX_MINUTES, "Prep Time"),
        (data.cook_time_minutes, MAX_MINUTES, "Cook Time"),
        (data.servings, MAX_SERVINGS, "Servings"),
    ):
        is_valid, error = validate_non_negative_int(value, max_value, label)
        if not is_valid:
            errors.append(error)

    for index, ingredient in enumerate(data.ingredients, start=1):
        label = f"Ingredient {index}"
        is_valid, error = validate_required_string(ingredient.name, f"{label} Name")
        if not is_valid:
            errors.append(error)
        else:
            is_valid, error = validate_string_length(
                ingredient.name, MAX_NAME_LENGTH, f"{label} Name"
            )
            if not is_valid:
                errors.append(error)
        is_valid, error = validate_quantity(ingredient.quantity, f"{label} Quantity")
        if not is_valid:
            errors.append(error)
        is_valid, error = validate_string_length(ingredient.unit, MAX_UNIT_LENGTH, f"{label} Unit")
        if not is_valid:
            errors.append(error)
        is_valid, error = validate_string_length(
            ingredient.notes, MAX_NOTES_LENGTH, f"{label} Notes"
        )
        if not is_valid:
            errors.append(error)

    for index, tag in enumerate(data.tags, start=1):
        is_valid, error = validate_required_string(tag, f"Tag {index}")
        if not is_valid:
            errors.append(error)
        else:
            is_valid, error = validate_string_length(tag, MAX_NAME_LENGTH, f"Tag {index}")
            if not is_valid:
                errors.append(error)

    for step, text in enumerate(data.instructions, start=1):
        is_valid, error = validate_required_string(text, f"Step {step}")
        if not is_valid:
            errors.append(error)
        else:
            is_valid, error = validate_string_length(text, MAX_INSTRUCTION_LENGTH, f"Step {step}")
            if not is_valid:
                errors.append(error)

    return len(errors) == 0, errors
