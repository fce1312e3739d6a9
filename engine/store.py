"""Document store interface plus in-memory and JSON-file implementations.

A store holds one collection of JSON documents keyed by id. Every write bumps
an integer ``version`` field on the document and pushes the new document to
subscribers of that id and to collection-wide subscribers. ``update`` accepts
``expected_version`` for a version-stamped conditional write; stores that
cannot honour it set ``supports_conditional_update = False`` and callers fall
back to re-reading immediately before writing.
"""

from __future__ import annotations

import asyncio
import copy
import inspect
import json
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Mapping

from .errors import DocumentExistsError, DocumentNotFoundError, VersionConflictError

logger = logging.getLogger(__name__)

Document = dict[str, Any]
DocumentCallback = Callable[[Document | None], Awaitable[None] | None]
CollectionCallback = Callable[[list[Document]], Awaitable[None] | None]
Unsubscribe = Callable[[], None]

VERSION_FIELD = "version"


class DocumentStore(ABC):
    """Abstract async document collection with last-writer-wins semantics."""

    collection: str = "documents"
    supports_conditional_update: bool = False

    @abstractmethod
    async def get(self, doc_id: str) -> Document | None:
        """Return a copy of the stored document, or None."""

    @abstractmethod
    async def create(self, doc_id: str, data: Mapping[str, Any]) -> Document:
        """Store a new document; raises DocumentExistsError if the id is taken."""

    @abstractmethod
    async def update(
        self,
        doc_id: str,
        patch: Mapping[str, Any],
        *,
        expected_version: int | None = None,
    ) -> Document:
        """Merge top-level fields of `patch` into the document and return it."""

    @abstractmethod
    async def delete(self, doc_id: str) -> bool:
        """Delete one document; returns False when nothing was stored."""

    @abstractmethod
    async def list_all(self) -> list[Document]:
        """Return copies of every document in the collection."""

    @abstractmethod
    async def delete_all(self) -> int:
        """Delete every document and return how many were removed."""

    @abstractmethod
    def subscribe(self, doc_id: str, callback: DocumentCallback) -> Unsubscribe:
        """Register a callback for writes to one document."""

    @abstractmethod
    def subscribe_all(self, callback: CollectionCallback) -> Unsubscribe:
        """Register a callback receiving the full collection after any write."""


class InMemoryDocumentStore(DocumentStore):
    """Process-local store; the reference implementation used by tests and dev servers."""

    supports_conditional_update = True

    def __init__(self, collection: str = "documents", *, conditional_updates: bool = True):
        self.collection = collection
        self.supports_conditional_update = conditional_updates
        self._documents: dict[str, Document] = {}
        self._subscribers: dict[str, list[DocumentCallback]] = defaultdict(list)
        self._collection_subscribers: list[CollectionCallback] = []

    async def get(self, doc_id: str) -> Document | None:
        document = self._documents.get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def create(self, doc_id: str, data: Mapping[str, Any]) -> Document:
        if doc_id in self._documents:
            raise DocumentExistsError(self.collection, doc_id)
        document = copy.deepcopy(dict(data))
        document[VERSION_FIELD] = 1
        self._documents[doc_id] = document
        self._persist()
        await self._notify(doc_id, document)
        return copy.deepcopy(document)

    async def update(
        self,
        doc_id: str,
        patch: Mapping[str, Any],
        *,
        expected_version: int | None = None,
    ) -> Document:
        current = self._documents.get(doc_id)
        if current is None:
            raise DocumentNotFoundError(self.collection, doc_id)
        current_version = int(current.get(VERSION_FIELD, 0))
        if (
            expected_version is not None
            and self.supports_conditional_update
            and current_version != expected_version
        ):
            raise VersionConflictError(doc_id, expected_version, current_version)

        document = copy.deepcopy(current)
        document.update(copy.deepcopy(dict(patch)))
        document[VERSION_FIELD] = current_version + 1
        self._documents[doc_id] = document
        self._persist()
        await self._notify(doc_id, document)
        return copy.deepcopy(document)

    async def delete(self, doc_id: str) -> bool:
        if self._documents.pop(doc_id, None) is None:
            return False
        self._persist()
        await self._notify(doc_id, None)
        return True

    async def list_all(self) -> list[Document]:
        return [copy.deepcopy(document) for document in self._documents.values()]

    async def delete_all(self) -> int:
        doc_ids = list(self._documents)
        self._documents.clear()
        self._persist()
        for doc_id in doc_ids:
            await self._notify_document(doc_id, None)
        await self._notify_collection()
        return len(doc_ids)

    def subscribe(self, doc_id: str, callback: DocumentCallback) -> Unsubscribe:
        self._subscribers[doc_id].append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(doc_id)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)
                if not callbacks:
                    del self._subscribers[doc_id]

        return unsubscribe

    def subscribe_all(self, callback: CollectionCallback) -> Unsubscribe:
        self._collection_subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._collection_subscribers:
                self._collection_subscribers.remove(callback)

        return unsubscribe

    def subscriber_count(self, doc_id: str) -> int:
        return len(self._subscribers.get(doc_id, []))

    def _persist(self) -> None:
        """Hook for durable subclasses; called after every in-memory write."""

    async def _notify(self, doc_id: str, document: Document | None) -> None:
        await self._notify_document(doc_id, document)
        await self._notify_collection()

    async def _notify_document(self, doc_id: str, document: Document | None) -> None:
        for callback in list(self._subscribers.get(doc_id, [])):
            payload = copy.deepcopy(document) if document is not None else None
            await _invoke(callback, payload, label=f"{self.collection}/{doc_id}")

    async def _notify_collection(self) -> None:
        if not self._collection_subscribers:
            return
        for callback in list(self._collection_subscribers):
            snapshot = [copy.deepcopy(document) for document in self._documents.values()]
            await _invoke(callback, snapshot, label=self.collection)


class JsonFileDocumentStore(InMemoryDocumentStore):
    """In-memory store mirrored to a single JSON file after every write."""

    def __init__(self, path: str | Path, collection: str = "documents"):
        super().__init__(collection=collection)
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._documents = self._load()

    def _load(self) -> dict[str, Document]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable document file %s", self.path)
            return {}
        documents = raw.get("documents", {}) if isinstance(raw, dict) else {}
        if not isinstance(documents, dict):
            return {}
        return {str(doc_id): dict(document) for doc_id, document in documents.items() if isinstance(document, dict)}

    def _persist(self) -> None:
        payload = {"collection": self.collection, "documents": self._documents}
        temp = self.path.with_suffix(self.path.suffix + ".tmp")
        temp.write_text(json.dumps(payload, sort_keys=True, indent=2, ensure_ascii=False), encoding="utf-8")
        temp.replace(self.path)


async def _invoke(callback: Callable[[Any], Any], payload: Any, *, label: str) -> None:
    # Subscriber failures must not fail the write that triggered them.
    try:
        result = callback(payload)
        if inspect.isawaitable(result):
            await result
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.exception("Subscriber callback failed for %s", label)
