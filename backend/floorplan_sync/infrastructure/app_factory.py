from asyncio import Event
from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any, Dict, List, Optional

import anyio
from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from ..modules.common.utils.error_handler import register_exception_handlers
from .config.settings import (
    DatabaseSettings,
    EnvironmentOption,
    EnvironmentSettings,
    Settings,
    get_settings,
)
from .database.session import create_tables, engine, local_session
from .logging import configure_logging, get_logger
from .sync.manager import SyncManager
from .sync.sql_gateway import SqlAlchemyGateway

logger = get_logger(__name__)


async def set_threadpool_tokens(number_of_tokens: int = 100) -> None:
    """Configure the number of threadpool tokens for anyio."""
    limiter = anyio.to_thread.current_default_thread_limiter()
    limiter.total_tokens = number_of_tokens


def lifespan_factory(
    settings: Settings,
    create_tables_on_startup: bool = True,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Factory to create a lifespan async context manager for a FastAPI app.

    On startup the database tables are created (when enabled) and a
    ``SyncManager`` over the SQL gateway is stored in ``app.state.sync_manager``.
    On shutdown every open project engine is disposed and the database engine's
    connections are released.

    Args:
        settings: Application settings
        create_tables_on_startup: Whether to create database tables on startup

    Returns:
        An async context manager for FastAPI's lifespan
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        initialization_complete = Event()
        app.state.initialization_complete = initialization_complete

        await set_threadpool_tokens()

        try:
            if isinstance(settings, DatabaseSettings) and create_tables_on_startup:
                await create_tables()

            app.state.sync_manager = SyncManager(SqlAlchemyGateway(local_session))
            logger.info(f"{settings.APP_NAME} started")

            initialization_complete.set()
            yield

        finally:
            sync_manager: Optional[SyncManager] = getattr(app.state, "sync_manager", None)
            if sync_manager is not None:
                sync_manager.close_all()
            await engine.dispose()

    return lifespan


def create_application(
    router: APIRouter,
    settings: Optional[Settings] = None,
    lifespan: Optional[Callable[[FastAPI], AbstractAsyncContextManager[None]]] = None,
    create_tables_on_startup: Optional[bool] = None,
    enable_cors: Optional[bool] = None,
    cors_origins: Optional[List[str]] = None,
    enable_gzip: bool = True,
    title: Optional[str] = None,
    summary: Optional[str] = None,
    description: Optional[str] = None,
    version: Optional[str] = None,
    **kwargs: Any,
) -> FastAPI:
    """Creates and configures a FastAPI application based on the provided settings.

    Args:
        router: The APIRouter containing the routes for the application
        settings: Application settings (uses get_settings() if None)
        lifespan: Optional lifespan function for the FastAPI app. If None, uses the default
            lifespan_factory which creates tables and the sync manager.
        create_tables_on_startup: Whether to create database tables on startup.
            Defaults to settings.CREATE_TABLES_ON_STARTUP if None.
        enable_cors: Whether to enable CORS middleware.
            Defaults to settings.CORS_ENABLED if None.
        cors_origins: List of allowed origins for CORS.
            Defaults to settings.CORS_ORIGINS if None.
        enable_gzip: Whether to enable GZip compression middleware.
        title: The title of the API. Defaults to settings.APP_NAME.
        summary: A short summary of the API.
        description: A detailed description of the API (supports Markdown).
            Defaults to settings.APP_DESCRIPTION.
        version: The version of the API. Defaults to settings.VERSION.
        **kwargs: Additional keyword arguments passed to FastAPI constructor

    Returns:
        A configured FastAPI application
    """

    if settings is None:
        settings = get_settings()

    configure_logging()

    _create_tables_on_startup = (
        settings.CREATE_TABLES_ON_STARTUP if create_tables_on_startup is None else create_tables_on_startup
    )
    _enable_cors = settings.CORS_ENABLED if enable_cors is None else enable_cors
    _cors_origins = settings.CORS_ORIGINS_LIST if cors_origins is None else cors_origins

    metadata: Dict[str, Any] = {
        "title": title or settings.APP_NAME,
        "description": description or settings.APP_DESCRIPTION,
        "version": version or settings.VERSION,
    }
    if summary is not None:
        metadata["summary"] = summary

    kwargs.update(metadata)

    hide_docs = isinstance(settings, EnvironmentSettings) and settings.ENVIRONMENT == EnvironmentOption.PRODUCTION
    if hide_docs:
        kwargs.update({"docs_url": None, "redoc_url": None, "openapi_url": None})

    if lifespan is None:
        lifespan = lifespan_factory(settings, create_tables_on_startup=_create_tables_on_startup)

    application = FastAPI(lifespan=lifespan, **kwargs)

    application.include_router(router)
    register_exception_handlers(application)

    if _enable_cors:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=_cors_origins,
            allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
            allow_methods=settings.CORS_ALLOW_METHODS.split(","),
            allow_headers=settings.CORS_ALLOW_HEADERS.split(","),
        )

    if enable_gzip:
        application.add_middleware(GZipMiddleware, minimum_size=1000)

    return application
