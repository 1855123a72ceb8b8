"""Service layer logging utilities.

Provides structured logging functions for service operations, enabling
consistent log format and context across group and category operations.

Usage:
    from category_tree.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    log_operation(
        logger,
        operation="save_group",
        outcome="success",
        group_id=3,
        changed_locales=["en"],
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
        Logger instance with the 'category_tree.services' prefix.

    Example:
        >>> logger = get_service_logger("category_tree.services.category_service")
        >>> logger.name
        'category_tree.services.category_service'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"category_tree.services.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The context is passed via the 'extra' parameter for structured logging.

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "save_category", "delete_group")
        outcome: Outcome description (e.g., "success", "validation_failed", "cancelled")
        level: Log level (default: INFO). Use DEBUG for verbose/frequent logs.
        **context: Additional context fields (entity IDs, error details, etc.)
            Common fields:
            - group_id: Category group being processed
            - category_id: Category being processed
            - errors: Validation error mapping
            - error: Error message if outcome is "error"

    Example:
        >>> log_operation(
        ...     logger,
        ...     operation="save_category",
        ...     outcome="validation_failed",
        ...     level=logging.WARNING,
        ...     category_id=45,
        ...     errors={"title": ["Title cannot be blank."]},
        ... )
    """
    extra = {
        "operation": operation,
        "outcome": outcome,
        **context,
    }
    logger.log(level, f"{operation}: {outcome}", extra=extra)
