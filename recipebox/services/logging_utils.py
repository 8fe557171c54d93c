"""Service layer logging utilities.

Provides structured logging functions for service operations, enabling
consistent log format and context across recipe, search and merge
operations.

Usage:
    from recipebox.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    log_operation(
        logger,
        operation="add_recipe",
        outcome="success",
        recipe_id=12,
    )
"""

import logging
from typing import Any


def get_service_logger(name: str) -> logging.Logger:
    """
    Get a logger configured for service operations.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger instance with the 'recipebox.services' prefix.

    Example:
        >>> logger = get_service_logger("recipebox.services.merge_service")
        >>> logger.name
        'recipebox.services.merge_service'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"recipebox.services.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The message is "<operation>: <outcome>"; the context is passed via the
    'extra' parameter for structured handlers.

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "merge_collection")
        outcome: Outcome description (e.g., "success", "validation_failed", "error")
        level: Log level (default: INFO)
        **context: Additional context fields (recipe_id, counts, error text)
    """
    extra = {
        "operation": operation,
        "outcome": outcome,
        **context,
    }
    logger.log(level, f"{operation}: {outcome}", extra=extra)
