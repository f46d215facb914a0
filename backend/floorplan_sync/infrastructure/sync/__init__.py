"""Optimistic synchronization of per-project floor plan mirrors."""

from .base import RemoteGateway
from .engine import MutationEngine, MutationKind, PendingMutation
from .manager import SyncManager
from .store import LocalStore

__all__ = [
    "LocalStore",
    "MutationEngine",
    "MutationKind",
    "PendingMutation",
    "RemoteGateway",
    "SyncManager",
]
