"""Room listing over stored room documents."""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from engine.store import DocumentStore, Unsubscribe

from .codenames_errors import MalformedStateError
from .codenames_state import RoomState

logger = logging.getLogger(__name__)

DirectoryCallback = Callable[[list["RoomSummary"]], Awaitable[None] | None]


@dataclass(frozen=True)
class RoomSummary:
    """One row of the room list."""

    room_id: str
    current_turn: str
    phase: str
    red_remaining: int
    blue_remaining: int
    player_count: int
    red_players: int
    blue_players: int
    winner: str | None
    created_at: str
    updated_at: str

    @classmethod
    def from_room(cls, room: RoomState) -> "RoomSummary":
        outcome = room.outcome()
        teams = room.team_counts()
        return cls(
            room_id=room.room_id,
            current_turn=room.current_turn.value,
            phase=room.phase.value,
            red_remaining=room.remaining_counts()["red"],
            blue_remaining=room.remaining_counts()["blue"],
            player_count=len(room.players),
            red_players=teams["red"],
            blue_players=teams["blue"],
            winner=outcome.winner.value if outcome else None,
            created_at=room.created_at,
            updated_at=room.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return dict(self.__dict__)


def summarize(documents: Iterable[dict[str, Any]]) -> list[RoomSummary]:
    """Summarize valid rooms, newest first; malformed documents are skipped."""
    summaries: list[RoomSummary] = []
    for document in documents:
        try:
            room = RoomState.from_document(document)
        except MalformedStateError as exc:
            logger.warning("Skipping malformed room %r in directory: %s", document.get("room_id"), exc)
            continue
        summaries.append(RoomSummary.from_room(room))
    return sorted(summaries, key=lambda summary: summary.created_at, reverse=True)


class RoomDirectory:
    """Lists, streams, and bulk-deletes rooms."""

    def __init__(self, rooms: DocumentStore):
        self.rooms = rooms

    async def list_rooms(self) -> list[RoomSummary]:
        return summarize(await self.rooms.list_all())

    def subscribe(self, callback: DirectoryCallback) -> Unsubscribe:
        """Push the recomputed room list after every room write or delete."""

        def relay(documents: list[dict[str, Any]]) -> Awaitable[None] | None:
            return callback(summarize(documents))

        return self.rooms.subscribe_all(relay)

    async def delete_all(self) -> int:
        count = await self.rooms.delete_all()
        logger.info("Deleted %d rooms", count)
        return count
