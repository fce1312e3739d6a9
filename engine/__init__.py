"""Engine exports for room documents, stores, events, and settings."""

from .errors import (
    DocumentExistsError,
    DocumentNotFoundError,
    GameError,
    StoreError,
    VersionConflictError,
)
from .events import EventLog, EventType, RoomEvent
from .settings import Settings
from .state import State
from .store import DocumentStore, InMemoryDocumentStore, JsonFileDocumentStore

__all__ = [
    "DocumentExistsError",
    "DocumentNotFoundError",
    "DocumentStore",
    "EventLog",
    "EventType",
    "GameError",
    "InMemoryDocumentStore",
    "JsonFileDocumentStore",
    "RoomEvent",
    "Settings",
    "State",
    "StoreError",
    "VersionConflictError",
]
