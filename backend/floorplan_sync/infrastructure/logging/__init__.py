"""Centralized logging infrastructure for the floor plan marker sync service.

Usage:
    ```python
    from floorplan_sync.infrastructure.logging import get_logger

    logger = get_logger()  # Auto-detects module name
    logger.info("Mirror loaded")
    ```
"""

from .config import get_mutation_id, reset_mutation_id, set_mutation_id, setup_logging_configuration
from .factory import configure_logging, get_logger, get_project_logger

__all__ = [
    "get_logger",
    "get_project_logger",
    "configure_logging",
    "setup_logging_configuration",
    "set_mutation_id",
    "reset_mutation_id",
    "get_mutation_id",
]
