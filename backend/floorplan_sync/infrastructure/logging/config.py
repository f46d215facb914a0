"""Environment-aware logging configuration.

Configuration Logic:
- Development/Local: Verbose colored console logging
- Staging: Structured console logging, optional file output
- Production: JSON console logging at WARNING
- Testing: Null handler, errors only

Every handler carries a ``MutationContextFilter`` so records emitted while a
sync mutation is in flight are stamped with its ``mutation_id``.
"""

import contextvars
import logging
from typing import Callable, Dict, List, Optional

from ..config.settings import EnvironmentOption, get_settings
from .handlers import (
    create_console_handler,
    create_file_handler,
    create_null_handler,
)

mutation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("mutation_id", default=None)


class MutationContextFilter(logging.Filter):
    """Adds the id of the mutation currently being settled to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "mutation_id"):
            setattr(record, "mutation_id", mutation_id_var.get() or "-")
        return True


def set_mutation_id(mutation_id: Optional[str]) -> contextvars.Token:
    """Mark ``mutation_id`` as in flight for the current task.

    Returns:
        Token to pass to ``reset_mutation_id`` once the mutation settles
    """
    return mutation_id_var.set(mutation_id)


def reset_mutation_id(token: contextvars.Token) -> None:
    """Restore the mutation id that was active before ``set_mutation_id``."""
    mutation_id_var.reset(token)


def get_mutation_id() -> Optional[str]:
    """Get the id of the mutation in flight for the current task, if any."""
    return mutation_id_var.get()


def setup_logging_configuration() -> None:
    """Configure the root logger for the current environment.

    Called once, lazily, by ``get_logger``/``configure_logging``.
    """
    settings = get_settings()

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    configure = _ENVIRONMENT_CONFIGURATORS.get(settings.ENVIRONMENT, _development_handlers)
    for handler in configure(settings):
        if settings.LOG_MUTATION_CONTEXT:
            handler.addFilter(MutationContextFilter())
        root_logger.addHandler(handler)

    root_logger.setLevel(settings.LOG_LEVEL_INT)

    if settings.ENVIRONMENT == EnvironmentOption.PRODUCTION:
        _configure_noisy_loggers()


def _file_handler(settings) -> logging.Handler:
    return create_file_handler(
        filepath=settings.LOG_FILE_PATH,
        format_type="structured",
        level=logging.DEBUG,
        max_bytes=settings.LOG_FILE_MAX_SIZE,
        backup_count=settings.LOG_FILE_BACKUP_COUNT,
    )


def _development_handlers(settings) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []

    if settings.LOG_CONSOLE_ENABLED:
        console_level = logging.DEBUG if settings.LOG_DEVELOPMENT_VERBOSE else settings.LOG_LEVEL_INT
        handlers.append(create_console_handler(format_type="detailed", level=console_level, use_colors=True))

    if settings.LOG_FILE_ENABLED:
        handlers.append(_file_handler(settings))

    return handlers


def _staging_handlers(settings) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []

    if settings.LOG_CONSOLE_ENABLED:
        handlers.append(create_console_handler(format_type="structured", level=settings.LOG_LEVEL_INT, use_colors=False))

    if settings.LOG_FILE_ENABLED:
        handlers.append(_file_handler(settings))

    return handlers


def _production_handlers(settings) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []

    if settings.LOG_CONSOLE_ENABLED:
        console_level = logging.WARNING if settings.LOG_PRODUCTION_OPTIMIZE else settings.LOG_LEVEL_INT
        handlers.append(create_console_handler(format_type="json", level=console_level, use_colors=False))

    return handlers


_ENVIRONMENT_CONFIGURATORS: Dict[EnvironmentOption, Callable[..., List[logging.Handler]]] = {
    EnvironmentOption.LOCAL: _development_handlers,
    EnvironmentOption.DEVELOPMENT: _development_handlers,
    EnvironmentOption.STAGING: _staging_handlers,
    EnvironmentOption.PRODUCTION: _production_handlers,
}


def _configure_noisy_loggers() -> None:
    """Quiet third-party loggers in production."""
    noisy_loggers = {
        "asyncpg": logging.WARNING,
        "aiosqlite": logging.WARNING,
        "sqlalchemy.engine": logging.WARNING,
        "sqlalchemy.dialects": logging.WARNING,
        "sqlalchemy.pool": logging.WARNING,
        "httpx": logging.WARNING,
    }

    for logger_name, level in noisy_loggers.items():
        logging.getLogger(logger_name).setLevel(level)


def configure_testing_logging() -> None:
    """Configure minimal logging for test runs."""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(create_null_handler())
    root_logger.setLevel(logging.ERROR)

    for logger_name in ("sqlalchemy.engine", "aiosqlite", "asyncpg"):
        logging.getLogger(logger_name).setLevel(logging.ERROR)


def get_configured_logger(name: str) -> logging.Logger:
    """Get a logger that inherits from the configured root logger."""
    return logging.getLogger(name)
