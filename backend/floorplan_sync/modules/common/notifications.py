"""User-facing notification sink used by the host services."""

from contextlib import contextmanager
from enum import Enum
from typing import Iterator, List, Protocol, Tuple

from ...infrastructure.logging import get_logger

logger = get_logger(__name__)


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


class Notifier(Protocol):
    """Callback receiving ``(message, level)`` after each user action settles."""

    def __call__(self, message: str, level: NotificationLevel) -> None: ...


class LoggingNotifier:
    """Writes notifications to the application log."""

    def __call__(self, message: str, level: NotificationLevel) -> None:
        if level == NotificationLevel.ERROR:
            logger.warning(message, extra={"notification_level": level.value})
        else:
            logger.info(message, extra={"notification_level": level.value})


class CollectingNotifier:
    """Keeps notifications in memory, e.g. to return them with a response."""

    def __init__(self) -> None:
        self.notifications: List[Tuple[str, NotificationLevel]] = []

    def __call__(self, message: str, level: NotificationLevel) -> None:
        self.notifications.append((message, level))


@contextmanager
def notify_outcome(notifier: Notifier, success_message: str, error_message: str) -> Iterator[None]:
    """Notify success when the block completes, or the error message when it raises.

    The exception is re-raised after notifying.

    Example:
        ```python
        with notify_outcome(notifier, "Marker added", "Error adding marker"):
            marker = await engine.create_marker(payload)
        ```
    """
    try:
        yield
    except Exception:
        notifier(error_message, NotificationLevel.ERROR)
        raise
    notifier(success_message, NotificationLevel.SUCCESS)
