"""Logger factory with lazy configuration and module auto-detection."""

import inspect
import logging
from threading import Lock
from typing import Any, Dict, MutableMapping, Optional, Tuple, Union

from ..config.settings import get_settings
from .config import get_configured_logger, setup_logging_configuration

_logging_configured = False
_configuration_lock = Lock()


def get_logger(name: Optional[str] = None, **extra_context) -> Union[logging.Logger, logging.LoggerAdapter]:
    """Get a configured logger.

    Detects the calling module when ``name`` is omitted and configures the
    logging system on first use.

    Args:
        name: Logger name. If None, automatically detects from calling module.
        **extra_context: Additional context to include in every record.

    Returns:
        Configured logger instance ready for use.

    Example:
        ```python
        logger = get_logger()
        logger.info("Mirror loaded", extra={"project_id": 7, "floor_plans": 3})

        logger = get_logger(component="sql_gateway")
        logger.warning("Insert rejected")
        ```
    """
    _ensure_logging_configured()

    if name is None:
        name = _detect_calling_module()

    base_logger = get_configured_logger(name)

    if extra_context:
        return ContextLoggerAdapter(base_logger, extra_context)
    return base_logger


def configure_logging() -> None:
    """Configure logging now rather than on the first ``get_logger`` call."""
    global _logging_configured

    with _configuration_lock:
        if not _logging_configured:
            setup_logging_configuration()
            _logging_configured = True

            settings = get_settings()
            logging.getLogger(__name__).info(
                f"Logging configured for {settings.ENVIRONMENT.value} environment",
                extra={
                    "log_level": settings.LOG_LEVEL,
                    "log_format": settings.LOG_FORMAT,
                    "console_enabled": settings.LOG_CONSOLE_ENABLED,
                    "file_enabled": settings.LOG_FILE_ENABLED,
                },
            )


def _ensure_logging_configured() -> None:
    if not _logging_configured:
        configure_logging()


def _detect_calling_module() -> str:
    """Return the ``__name__`` of the module that called ``get_logger``."""
    frame = inspect.currentframe()

    try:
        for _ in range(2):
            if frame is None:
                break
            frame = frame.f_back

        if frame is not None:
            return str(frame.f_globals.get("__name__", "unknown"))
        return "unknown"

    finally:
        del frame


class ContextLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that merges its context with per-call ``extra``."""

    def __init__(self, logger: logging.Logger, extra: Dict[str, Any]):
        super().__init__(logger, extra)

    def process(self, msg: str, kwargs: MutableMapping[str, Any]) -> Tuple[str, MutableMapping[str, Any]]:
        extra = kwargs.get("extra", {})

        adapter_extra = self.extra if isinstance(self.extra, dict) else {}
        if isinstance(extra, dict):
            merged_extra = {**adapter_extra, **extra}
        else:
            merged_extra = dict(adapter_extra)

        kwargs["extra"] = merged_extra

        return msg, kwargs


def get_project_logger(project_id: int, name: Optional[str] = None) -> ContextLoggerAdapter:
    """Get a logger that tags every record with ``project_id``.

    Each project's mutation engine logs through one of these so the records of
    concurrent projects can be told apart.
    """
    logger = get_logger(name or _detect_calling_module())
    base_logger = logger.logger if isinstance(logger, logging.LoggerAdapter) else logger
    return ContextLoggerAdapter(base_logger, {"project_id": project_id})
