"""Named word lists stored as documents and consumed by word selection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping
from uuid import uuid4

from engine.errors import DocumentNotFoundError
from engine.store import DocumentStore

from .codenames_errors import WordBankExistsError, WordBankNotFoundError
from .codenames_state import utc_now_iso
from .codenames_words import DEFAULT_BANK_NAME, DEFAULT_BANK_WORDS, unique_words

MAX_BANK_NAME_LENGTH = 80


@dataclass(frozen=True)
class WordBank:
    """A reusable list of candidate words."""

    id: str
    name: str
    words: tuple[str, ...]
    created_at: str = ""
    updated_at: str = ""
    is_default: bool = False

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "words": list(self.words),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "is_default": self.is_default,
        }

    def to_dict(self) -> dict[str, Any]:
        payload = self.to_document()
        payload["word_count"] = len(self.words)
        return payload

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "WordBank":
        return cls(
            id=str(document["id"]),
            name=str(document.get("name", "")),
            words=tuple(str(word) for word in document.get("words") or []),
            created_at=str(document.get("created_at") or ""),
            updated_at=str(document.get("updated_at") or ""),
            is_default=bool(document.get("is_default", False)),
        )


def _clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValueError("Word bank name is required.")
    if len(cleaned) > MAX_BANK_NAME_LENGTH:
        raise ValueError(f"Word bank name must be at most {MAX_BANK_NAME_LENGTH} characters.")
    return cleaned


def _clean_words(words: Iterable[str]) -> tuple[str, ...]:
    cleaned = tuple(unique_words(words))
    if not cleaned:
        raise ValueError("Word bank must contain at least one word.")
    return cleaned


class WordBankService:
    """CRUD over word-bank documents."""

    def __init__(self, store: DocumentStore, *, id_factory: Callable[[], str] | None = None):
        self.store = store
        self._id_factory = id_factory or (lambda: uuid4().hex[:12])

    async def list_banks(self) -> list[WordBank]:
        """Return every bank, newest first."""
        banks = [WordBank.from_document(document) for document in await self.store.list_all()]
        return sorted(banks, key=lambda bank: bank.created_at, reverse=True)

    async def get_bank(self, bank_id: str) -> WordBank:
        document = await self.store.get(bank_id)
        if document is None:
            raise WordBankNotFoundError(bank_id)
        return WordBank.from_document(document)

    async def words_for(self, bank_id: str) -> tuple[str, ...]:
        return (await self.get_bank(bank_id)).words

    async def create_bank(self, name: str, words: Iterable[str], *, is_default: bool = False) -> WordBank:
        now = utc_now_iso()
        bank = WordBank(
            id=self._id_factory(),
            name=_clean_name(name),
            words=_clean_words(words),
            created_at=now,
            updated_at=now,
            is_default=is_default,
        )
        await self.store.create(bank.id, bank.to_document())
        return bank

    async def create_default_bank(self) -> WordBank:
        """Seed the shared default bank; only one may exist."""
        for bank in await self.list_banks():
            if bank.is_default or bank.name == DEFAULT_BANK_NAME:
                raise WordBankExistsError(bank.name)
        return await self.create_bank(DEFAULT_BANK_NAME, DEFAULT_BANK_WORDS, is_default=True)

    async def update_bank(
        self,
        bank_id: str,
        *,
        name: str | None = None,
        words: Iterable[str] | None = None,
    ) -> WordBank:
        patch: dict[str, Any] = {"updated_at": utc_now_iso()}
        if name is not None:
            patch["name"] = _clean_name(name)
        if words is not None:
            patch["words"] = list(_clean_words(words))
        try:
            document = await self.store.update(bank_id, patch)
        except DocumentNotFoundError as exc:
            raise WordBankNotFoundError(bank_id) from exc
        return WordBank.from_document(document)

    async def delete_bank(self, bank_id: str) -> None:
        if not await self.store.delete(bank_id):
            raise WordBankNotFoundError(bank_id)
