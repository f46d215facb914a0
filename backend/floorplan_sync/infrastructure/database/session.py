from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, MappedAsDataclass
from sqlalchemy.pool import StaticPool

from ..config.settings import DatabaseSettings, settings


def build_engine(database_settings: DatabaseSettings) -> AsyncEngine:
    """Create the async engine for the configured database.

    PostgreSQL gets the configured connection pool. The SQLite override (used by
    local runs and tests) shares a single connection so an in-memory database
    survives across sessions.
    """
    engine_kwargs: Dict[str, Any] = {"echo": False}

    if database_settings.USES_SQLITE:
        engine_kwargs["poolclass"] = StaticPool
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        engine_kwargs["pool_size"] = database_settings.POSTGRES_POOL_SIZE
        engine_kwargs["max_overflow"] = database_settings.POSTGRES_MAX_OVERFLOW

    return create_async_engine(database_settings.DATABASE_URL, **engine_kwargs)


engine = build_engine(settings)

local_session = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase, MappedAsDataclass):
    """Base class for all database models.

    Combines SQLAlchemy's DeclarativeBase with MappedAsDataclass, so every model
    gets dataclass ``__init__``/``__repr__``/``__eq__`` generated from its mapped
    columns.

    Example:
        ```python
        class FloorPlanPage(Base):
            __tablename__ = "floor_plan_pages"

            id: Mapped[int] = mapped_column(Integer, primary_key=True, init=False)
            page_number: Mapped[int] = mapped_column(Integer)
        ```
    """

    pass


async def create_tables(bind: AsyncEngine = engine) -> None:
    """Create all tables that don't exist yet.

    Idempotent: existing tables are left unchanged. Use a migration tool for
    schema changes in production.
    """
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
