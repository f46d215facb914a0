"""Translation of domain and gateway errors into HTTP responses."""

from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from ....infrastructure.logging import get_logger
from ..constants import EXCEPTION_MAPPING
from ..exceptions import DomainError, GatewayError

logger = get_logger(__name__)


def map_exception(error: DomainError) -> HTTPException:
    """Map a domain error to the HTTP exception registered for its class.

    ``EXCEPTION_MAPPING`` is checked in order, so the first matching class wins.
    Errors with no registered class become a 500.
    """
    for exception_class, mapper in EXCEPTION_MAPPING.items():
        if isinstance(error, exception_class):
            return mapper(str(error))

    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"An unexpected error occurred: {str(error)}"
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers for domain errors raised outside route handlers."""

    @app.exception_handler(DomainError)
    async def domain_exception_handler(request: Request, exc: DomainError) -> JSONResponse:
        http_exception = handle_exception(exc)
        return JSONResponse(
            status_code=http_exception.status_code,
            content={"detail": http_exception.detail},
        )


def handle_exception(error: Exception) -> Optional[HTTPException]:
    """Convert an error caught in a route handler into an HTTP exception.

    Gateway failures are logged with their retryability, since they mean the
    caller's optimistic change has been rolled back.

    Args:
        error: The exception to handle

    Returns:
        An HTTPException if the error can be mapped, None otherwise
    """
    if isinstance(error, HTTPException):
        return error
    if not isinstance(error, DomainError):
        logger.error(f"Unhandled {type(error).__name__}: {error}", exc_info=error)
        return None

    http_exc = map_exception(error)
    if isinstance(error, GatewayError):
        logger.info(
            f"Store refused request ({http_exc.status_code}): {error}",
            extra={"error_type": type(error).__name__, "retryable": error.retryable},
        )
    return http_exc
