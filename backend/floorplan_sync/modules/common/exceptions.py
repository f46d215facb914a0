"""Domain exception classes for business logic and sync failures."""


class DomainError(Exception):
    """Base class for all domain-specific errors."""

    pass


class ResourceNotFoundError(DomainError):
    """Raised when a requested resource cannot be found."""

    pass


class ResourceExistsError(DomainError):
    """Raised when attempting to create a resource that already exists."""

    pass


class ValidationError(DomainError):
    """Raised when data validation fails."""

    pass


class PermissionDeniedError(DomainError):
    """Raised when a user attempts an action they don't have permission for."""

    pass


class MarkerPlacementError(ValidationError):
    """Raised when a marker cannot be placed where it was requested.

    Covers page numbers outside the floor plan and items that already have a
    marker within the configured uniqueness scope.
    """

    pass


class GatewayError(DomainError):
    """Base class for failures reported by the persistent store.

    Every subclass makes the mutation engine roll back its optimistic change.
    """

    retryable: bool = False


class NetworkError(GatewayError):
    """Raised when the store is unreachable or the call timed out.

    Retryable: the same mutation may be issued again unchanged.
    """

    retryable = True


class ConstraintError(GatewayError):
    """Raised when the store rejects the payload (constraint or type violation).

    Not retryable without correcting the payload.
    """

    pass


class NotFoundError(GatewayError, ResourceNotFoundError):
    """Raised when the entity a mutation targets no longer exists in the store.

    The local mirror is known to be stale when this happens, so the engine
    refreshes it after rolling back.
    """

    pass
