"""Common constants used across the application."""

from typing import Callable, Dict, Type

from fastapi import HTTPException, status

from .exceptions import (
    ConstraintError,
    DomainError,
    GatewayError,
    NetworkError,
    PermissionDeniedError,
    ResourceExistsError,
    ResourceNotFoundError,
    ValidationError,
)

# Checked in order; subclasses must precede their bases.
EXCEPTION_MAPPING: Dict[Type[DomainError], Callable[[str], HTTPException]] = {
    NetworkError: lambda message: HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=message),
    ResourceNotFoundError: lambda message: HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=message),
    ResourceExistsError: lambda message: HTTPException(status_code=status.HTTP_409_CONFLICT, detail=message),
    ValidationError: lambda message: HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=message),
    PermissionDeniedError: lambda message: HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message),
    ConstraintError: lambda message: HTTPException(status_code=status.HTTP_409_CONFLICT, detail=message),
    GatewayError: lambda message: HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=message),
}
