"""Room event schema and JSONL logging utilities."""

from __future__ import annotations

import json
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from time import time
from typing import Any, Mapping

from .serialize import json_dumps, to_serializable


class EventType(str, Enum):
    """Event types emitted by room mutations."""

    ROOM_CREATED = "room_created"
    PLAYER_JOINED = "player_joined"
    PLAYER_LEFT = "player_left"
    CARD_REVEALED = "card_revealed"
    GAME_OVER = "game_over"
    NEW_GAME = "new_game"


@dataclass(frozen=True)
class RoomEvent:
    """Single audit event recorded after a successful room write."""

    event_type: EventType
    room_id: str
    version: int
    timestamp_ms: int
    payload: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        """Return JSON-serializable event data."""
        return {
            "event_type": self.event_type.value,
            "room_id": self.room_id,
            "version": self.version,
            "timestamp_ms": self.timestamp_ms,
            "payload": to_serializable(self.payload),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RoomEvent":
        """Build an event from a dictionary payload."""
        return cls(
            event_type=EventType(str(data["event_type"])),
            room_id=str(data["room_id"]),
            version=int(data.get("version", 0)),
            timestamp_ms=int(data["timestamp_ms"]),
            payload=dict(data.get("payload", {})),
        )

    @classmethod
    def create(cls, event_type: EventType, room_id: str, version: int, payload: dict[str, Any]) -> "RoomEvent":
        """Construct an event with the current wall-clock timestamp."""
        return cls(
            event_type=event_type,
            room_id=room_id,
            version=version,
            timestamp_ms=int(time() * 1000),
            payload=payload,
        )


class EventLog:
    """Per-room event history, optionally mirrored to one JSONL file per room."""

    def __init__(self, log_dir: str | Path | None = None, *, max_events_per_room: int = 500):
        self.log_dir = Path(log_dir) if log_dir is not None else None
        self.max_events_per_room = max_events_per_room
        self._events: dict[str, list[RoomEvent]] = defaultdict(list)

    def record(self, event: RoomEvent) -> None:
        """Append an event to memory and, when configured, to disk."""
        history = self._events[event.room_id]
        history.append(event)
        if len(history) > self.max_events_per_room:
            del history[: len(history) - self.max_events_per_room]
        if self.log_dir is not None:
            append_jsonl(self.log_dir / f"{event.room_id}.jsonl", event)

    def events_for(self, room_id: str) -> list[RoomEvent]:
        """Return recorded events for a room, oldest first."""
        return list(self._events.get(room_id, []))

    def clear(self) -> None:
        self._events.clear()


def append_jsonl(path: str | Path, event: RoomEvent) -> None:
    """Append one event as a JSON line."""
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("a", encoding="utf-8") as handle:
        handle.write(json_dumps(event.to_dict()))
        handle.write("\n")


def read_jsonl(path: str | Path) -> list[RoomEvent]:
    """Load events previously written by `append_jsonl`."""
    input_path = Path(path)
    if not input_path.exists():
        return []
    events: list[RoomEvent] = []
    with input_path.open("r", encoding="utf-8") as handle:
        for line in handle:
            line = line.strip()
            if not line:
                continue
            events.append(RoomEvent.from_dict(json.loads(line)))
    return events
