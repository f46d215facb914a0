"""Infrastructure of the floor plan marker sync service: settings, database, logging and synchronization."""

from .config import get_settings
from .database.session import create_tables, local_session

__all__ = [
    "create_tables",
    "get_settings",
    "local_session",
]
