from ..infrastructure.app_factory import create_application
from ..infrastructure.config.settings import get_settings
from ..interfaces.api import router as api_router

settings = get_settings()

app = create_application(
    router=api_router,
    settings=settings,
    summary="Optimistic floor plan marker synchronization",
    description="""
    # Floor Plan Marker Sync API

    Floor plans of construction projects, annotated with markers that point at
    RFIs, submittals and tasks:

    * 🗺️ **Floor Plans**: Register, rename, reorder and retire floor plans; name their pages
    * 📍 **Markers**: Place, move and remove markers, applied optimistically to a per-project mirror
    * 🔎 **Projection**: Join markers with item records, filter by type and status, color by urgency

    ## Consistency

    Mutations show up in the project's mirror before the database confirms
    them. A confirmed mutation replaces its provisional state with the saved
    record; a refused one is rolled back exactly.
    """,
)
