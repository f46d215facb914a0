"""FastAPI dependencies for use in API endpoints."""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Path, Request, status

from ...infrastructure.config.settings import get_settings
from ...infrastructure.sync.base import RemoteGateway
from ...infrastructure.sync.engine import MutationEngine
from ...infrastructure.sync.manager import SyncManager
from ...modules.common.notifications import LoggingNotifier, Notifier
from ...modules.common.utils.error_handler import handle_exception
from ...modules.floor_plan.services import FloorPlanService
from ...modules.marker.services import MarkerService
from ...modules.projection.services import EnrichmentProjector

_TRUE_VALUES = {"1", "true", "yes", "on"}


def get_sync_manager(request: Request) -> SyncManager:
    """Dependency for the application's SyncManager, created by the lifespan."""
    manager = getattr(request.app.state, "sync_manager", None)
    if manager is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Sync manager not initialized")
    return manager


def get_gateway(manager: SyncManager = Depends(get_sync_manager)) -> RemoteGateway:
    """Dependency for the gateway shared by all project engines."""
    return manager.gateway


async def get_project_engine(
    project_id: Annotated[int, Path(ge=1, description="Project id")],
    manager: SyncManager = Depends(get_sync_manager),
) -> MutationEngine:
    """Dependency opening (and on first use, loading) the project's mutation engine."""
    try:
        return await manager.open(project_id)
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


def get_notifier() -> Notifier:
    """Dependency for the notification sink of the host services."""
    return LoggingNotifier()


def get_floor_plan_service(notifier: Notifier = Depends(get_notifier)) -> FloorPlanService:
    """Dependency for providing a FloorPlanService instance."""
    return FloorPlanService(notifier)


def get_marker_service(notifier: Notifier = Depends(get_notifier)) -> MarkerService:
    """Dependency for providing a MarkerService instance."""
    return MarkerService(notifier)


def get_projector() -> EnrichmentProjector:
    """Dependency for providing an EnrichmentProjector instance."""
    return EnrichmentProjector()


def is_privileged_user(request: Request) -> bool:
    """Read the privileged-user flag sent by the host application.

    The flag only decides whether mutations are offered in responses
    (``can_edit``); it is not an authorization check.
    """
    value: Optional[str] = request.headers.get(get_settings().PRIVILEGED_USER_HEADER)
    return value is not None and value.strip().lower() in _TRUE_VALUES


ProjectEngine = Annotated[MutationEngine, Depends(get_project_engine)]
PrivilegedUser = Annotated[bool, Depends(is_privileged_user)]
