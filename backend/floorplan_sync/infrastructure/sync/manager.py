"""Ownership of the per-project mutation engines."""

import asyncio
from typing import Callable, Dict, List, Optional

from ..logging import get_logger
from .base import RemoteGateway
from .engine import MutationEngine

logger = get_logger(__name__)

EngineFactory = Callable[[int, RemoteGateway], MutationEngine]


class SyncManager:
    """Holds one mutation engine per open project.

    An engine is constructed and loaded the first time its project is opened,
    and disposed when the project is closed. Nothing else keeps a reference to
    an engine, so closing a project discards its mirror.

    Args:
        gateway: Persistent store shared by all engines
        engine_factory: Builds an engine for a project (defaults to ``MutationEngine``)
    """

    def __init__(self, gateway: RemoteGateway, engine_factory: Optional[EngineFactory] = None):
        self.gateway = gateway
        self._engine_factory: EngineFactory = engine_factory or (
            lambda project_id, gateway: MutationEngine(project_id, gateway)
        )
        self._engines: Dict[int, MutationEngine] = {}
        self._locks: Dict[int, asyncio.Lock] = {}

    async def open(self, project_id: int) -> MutationEngine:
        """Get the project's engine, creating and loading it on first use.

        Args:
            project_id: Project to open

        Returns:
            Loaded mutation engine for the project
        """
        engine = self._engines.get(project_id)
        if engine is not None:
            return engine

        if project_id not in self._locks:
            self._locks[project_id] = asyncio.Lock()

        async with self._locks[project_id]:
            if project_id not in self._engines:
                engine = self._engine_factory(project_id, self.gateway)
                await engine.load()
                self._engines[project_id] = engine
                logger.info(f"Opened project {project_id}")

        return self._engines[project_id]

    def get(self, project_id: int) -> Optional[MutationEngine]:
        return self._engines.get(project_id)

    def close(self, project_id: int) -> bool:
        """Dispose a project's engine.

        Returns:
            True if the project was open
        """
        engine = self._engines.pop(project_id, None)
        self._locks.pop(project_id, None)
        if engine is None:
            return False
        engine.dispose()
        logger.info(f"Closed project {project_id}")
        return True

    def close_all(self) -> None:
        for project_id in list(self._engines):
            self.close(project_id)

    @property
    def open_projects(self) -> List[int]:
        return list(self._engines)
