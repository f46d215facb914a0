from fastapi import APIRouter

from .floor_plan import router as floor_plan_router
from .marker import router as marker_router
from .projection import router as projection_router

router = APIRouter(prefix="/v1")
router.include_router(floor_plan_router)
router.include_router(marker_router)
router.include_router(projection_router)


@router.get(
    "/health",
    summary="API Health Check",
    description="Simple health check endpoint for monitoring and container orchestration.",
    responses={
        200: {"description": "API is healthy and responding"},
    },
)
async def health_check():
    """Health check endpoint for Docker health checks."""
    return {"status": "healthy", "message": "Floor Plan Marker Sync API is running"}
