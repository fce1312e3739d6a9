"""Wiring of stores, engine services, and the event log from settings."""

from __future__ import annotations

import random
from dataclasses import dataclass

from codenames.codenames_directory import RoomDirectory
from codenames.codenames_game import CodenamesGame
from codenames.codenames_wordbanks import WordBankService
from engine.events import EventLog
from engine.settings import Settings
from engine.store import DocumentStore, InMemoryDocumentStore, JsonFileDocumentStore


def build_store(settings: Settings, collection: str) -> DocumentStore:
    if settings.store_backend == "json":
        return JsonFileDocumentStore(settings.data_dir / f"{collection}.json", collection=collection)
    return InMemoryDocumentStore(collection=collection)


@dataclass
class AppServices:
    """Everything the API needs, built once per process."""

    settings: Settings
    rooms: DocumentStore
    banks: DocumentStore
    game: CodenamesGame
    directory: RoomDirectory
    word_banks: WordBankService
    events: EventLog

    @classmethod
    def build(cls, settings: Settings | None = None, *, rng: random.Random | None = None) -> "AppServices":
        settings = settings or Settings()
        rooms = build_store(settings, "games")
        banks = build_store(settings, "wordBanks")
        events = EventLog(settings.event_log_dir)
        word_banks = WordBankService(banks)
        game = CodenamesGame(
            rooms,
            word_banks,
            rng=rng,
            commit_attempts=settings.commit_attempts,
            on_event=events.record,
        )
        return cls(
            settings=settings,
            rooms=rooms,
            banks=banks,
            game=game,
            directory=RoomDirectory(rooms),
            word_banks=word_banks,
            events=events,
        )
