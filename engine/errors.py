"""Structured exceptions shared by the engine and its stores."""

from __future__ import annotations

from typing import Any


class GameError(Exception):
    """Base class for every error surfaced to callers of the engine."""

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {"type": self.__class__.__name__, "message": str(self)}


class StoreError(GameError):
    """Raised when the document store cannot complete an operation."""


class DocumentNotFoundError(StoreError):
    """Raised when a document id has no stored document."""

    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"No document {doc_id!r} in {collection!r}")

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update({"collection": self.collection, "doc_id": self.doc_id})
        return payload


class DocumentExistsError(StoreError):
    """Raised when creating a document whose id is already taken."""

    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"Document {doc_id!r} already exists in {collection!r}")


class VersionConflictError(StoreError):
    """Raised when a conditional write sees a newer document version."""

    def __init__(self, doc_id: str, expected: int, actual: int):
        self.doc_id = doc_id
        self.expected = expected
        self.actual = actual
        super().__init__(f"Version conflict on {doc_id!r}: expected {expected}, found {actual}")

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update({"doc_id": self.doc_id, "expected": self.expected, "actual": self.actual})
        return payload
