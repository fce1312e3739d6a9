"""State, enums, and the persisted room document schema for Codenames rooms."""

from __future__ import annotations

import random
import string
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Mapping

from engine.state import State

from .codenames_errors import InvalidRoomIdError, MalformedStateError

BOARD_SIZE = 25
ROOM_ID_LENGTH = 6
ROOM_ID_ALPHABET = string.ascii_uppercase + string.digits


class Color(str, Enum):
    """Hidden affiliation of a card."""

    RED = "red"
    BLUE = "blue"
    BLACK = "black"
    BEIGE = "beige"


class Team(str, Enum):
    """Codenames teams."""

    RED = "red"
    BLUE = "blue"

    @property
    def other(self) -> "Team":
        return Team.BLUE if self is Team.RED else Team.RED

    @property
    def color(self) -> Color:
        return Color.RED if self is Team.RED else Color.BLUE


class Role(str, Enum):
    """Player roles."""

    SPYMASTER = "spymaster"
    OPERATIVE = "operative"


class Phase(str, Enum):
    """Room lifecycle derived from the board."""

    SETUP = "setup"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class WinReason(str, Enum):
    """How a finished game was decided."""

    ASSASSIN = "assassin"
    VICTORY = "victory"


COLOR_COUNTS: dict[Color, int] = {
    Color.RED: 9,
    Color.BLUE: 8,
    Color.BLACK: 1,
    Color.BEIGE: 7,
}


def utc_now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()


def normalize_room_id(raw: str) -> str:
    """Upper-case and validate a typed room code."""
    room_id = (raw or "").strip().upper()
    if len(room_id) != ROOM_ID_LENGTH or any(char not in ROOM_ID_ALPHABET for char in room_id):
        raise InvalidRoomIdError(f"Room code must be {ROOM_ID_LENGTH} letters or digits; received {raw!r}")
    return room_id


def generate_room_id(rng: random.Random | None = None) -> str:
    """Return a random room code such as `K3Q9ZD`."""
    chooser = rng or random
    return "".join(chooser.choice(ROOM_ID_ALPHABET) for _ in range(ROOM_ID_LENGTH))


def _parse_enum(enum_cls: type[Enum], value: Any, label: str) -> Any:
    try:
        return enum_cls(str(value).lower())
    except ValueError as exc:
        raise MalformedStateError(f"Invalid {label}: {value!r}") from exc


@dataclass(frozen=True)
class Card:
    """One board card. Only `revealed` ever changes, and only from False to True."""

    word: str
    color: Color
    revealed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"word": self.word, "color": self.color.value, "revealed": self.revealed}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Card":
        if not isinstance(data, Mapping):
            raise MalformedStateError(f"Card must be an object; received {type(data).__name__}")
        word = data.get("word")
        if not isinstance(word, str) or not word:
            raise MalformedStateError(f"Card word missing or not a string: {word!r}")
        revealed = data.get("revealed", False)
        if not isinstance(revealed, bool):
            raise MalformedStateError(f"Card revealed flag must be boolean: {revealed!r}")
        return cls(word=word, color=_parse_enum(Color, data.get("color"), "card color"), revealed=revealed)


@dataclass(frozen=True)
class Player:
    """Seat in a room. Team and role are fixed for the player's session."""

    id: str
    name: str
    team: Team
    role: Role
    joined_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "team": self.team.value,
            "role": self.role.value,
            "joined_at": self.joined_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Player":
        if not isinstance(data, Mapping):
            raise MalformedStateError(f"Player must be an object; received {type(data).__name__}")
        player_id = data.get("id")
        if not isinstance(player_id, str) or not player_id:
            raise MalformedStateError(f"Player id missing: {player_id!r}")
        return cls(
            id=player_id,
            name=str(data.get("name", "")),
            team=_parse_enum(Team, data.get("team"), "player team"),
            role=_parse_enum(Role, data.get("role"), "player role"),
            joined_at=str(data.get("joined_at", "")),
        )


@dataclass(frozen=True)
class Outcome:
    """Winner, loser, and reason for a finished board."""

    winner: Team
    loser: Team
    reason: WinReason


@dataclass(frozen=True)
class RoomState(State):
    """Immutable snapshot of one room document."""

    room_id: str
    board: tuple[Card, ...]
    current_turn: Team = Team.RED
    players: tuple[Player, ...] = ()
    used_words: frozenset[str] = frozenset()
    word_bank_id: str | None = None
    created_at: str = ""
    updated_at: str = ""
    version: int = 0

    def remaining(self, team: Team) -> int:
        """Count unrevealed cards of `team`'s color."""
        target = team.color
        return sum(1 for card in self.board if card.color is target and not card.revealed)

    def remaining_counts(self) -> dict[str, int]:
        return {Team.RED.value: self.remaining(Team.RED), Team.BLUE.value: self.remaining(Team.BLUE)}

    def revealed_counts(self) -> dict[str, int]:
        """Return number of revealed cards per color."""
        counts = {color.value: 0 for color in Color}
        for card in self.board:
            if card.revealed:
                counts[card.color.value] += 1
        return counts

    def outcome(self) -> Outcome | None:
        """Derive the result from the board.

        The turn is frozen on the move that ends a game, so after an assassin
        reveal `current_turn` still names the team that revealed it.
        """
        if not self.board:
            return None
        if any(card.color is Color.BLACK and card.revealed for card in self.board):
            return Outcome(winner=self.current_turn.other, loser=self.current_turn, reason=WinReason.ASSASSIN)
        if self.remaining(Team.RED) == 0:
            return Outcome(winner=Team.RED, loser=Team.BLUE, reason=WinReason.VICTORY)
        if self.remaining(Team.BLUE) == 0:
            return Outcome(winner=Team.BLUE, loser=Team.RED, reason=WinReason.VICTORY)
        return None

    @property
    def phase(self) -> Phase:
        if not self.board:
            return Phase.SETUP
        if self.outcome() is not None:
            return Phase.FINISHED
        return Phase.IN_PROGRESS

    def player(self, player_id: str) -> Player | None:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def team_counts(self) -> dict[str, int]:
        counts = {Team.RED.value: 0, Team.BLUE.value: 0}
        for player in self.players:
            counts[player.team.value] += 1
        return counts

    def with_card_revealed(self, index: int) -> "RoomState":
        board = list(self.board)
        board[index] = replace(board[index], revealed=True)
        return replace(self, board=tuple(board))

    def to_document(self) -> dict[str, Any]:
        """Return the persisted document shape (the store owns `version`)."""
        return {
            "room_id": self.room_id,
            "words_data": [card.to_dict() for card in self.board],
            "current_turn": self.current_turn.value,
            "players": [player.to_dict() for player in self.players],
            "used_words": sorted(self.used_words),
            "word_bank_id": self.word_bank_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def to_dict(self) -> dict[str, Any]:
        payload = self.to_document()
        payload["version"] = self.version
        return payload

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "RoomState":
        """Validate and parse a stored room document."""
        validate_document(document)
        players = tuple(Player.from_dict(item) for item in document.get("players") or [])
        return cls(
            room_id=str(document["room_id"]),
            board=tuple(Card.from_dict(item) for item in document["words_data"]),
            current_turn=_parse_enum(Team, document["current_turn"], "current_turn"),
            players=players,
            used_words=frozenset(document.get("used_words") or []),
            word_bank_id=document.get("word_bank_id"),
            created_at=str(document.get("created_at") or ""),
            updated_at=str(document.get("updated_at") or ""),
            version=int(document.get("version", 0)),
        )


def validate_document(document: Any) -> None:
    """Reject documents that would corrupt a room if persisted."""
    if not isinstance(document, Mapping):
        raise MalformedStateError(f"Room document must be an object; received {type(document).__name__}")

    for key in ("room_id", "words_data", "current_turn"):
        if key not in document:
            raise MalformedStateError(f"Room document missing required field {key!r}")

    if not isinstance(document["room_id"], str) or not document["room_id"]:
        raise MalformedStateError(f"room_id must be a non-empty string: {document['room_id']!r}")

    if document["current_turn"] not in (Team.RED.value, Team.BLUE.value):
        raise MalformedStateError(f"current_turn must be 'red' or 'blue': {document['current_turn']!r}")

    words_data = document["words_data"]
    if not isinstance(words_data, list) or len(words_data) != BOARD_SIZE:
        size = len(words_data) if isinstance(words_data, list) else type(words_data).__name__
        raise MalformedStateError(f"words_data must hold exactly {BOARD_SIZE} cards; received {size}")
    cards = [Card.from_dict(item) for item in words_data]
    counts = {color: 0 for color in Color}
    for card in cards:
        counts[card.color] += 1
    if counts != COLOR_COUNTS:
        summary = {color.value: count for color, count in counts.items()}
        raise MalformedStateError(f"Board color distribution is invalid: {summary}")

    players = document.get("players") or []
    if not isinstance(players, list):
        raise MalformedStateError("players must be a list")
    seen: set[str] = set()
    for item in players:
        player = Player.from_dict(item)
        if player.id in seen:
            raise MalformedStateError(f"Duplicate player id {player.id!r}")
        seen.add(player.id)

    used_words = document.get("used_words") or []
    if not isinstance(used_words, list) or not all(isinstance(word, str) for word in used_words):
        raise MalformedStateError("used_words must be a list of strings")

    word_bank_id = document.get("word_bank_id")
    if word_bank_id is not None and not isinstance(word_bank_id, str):
        raise MalformedStateError(f"word_bank_id must be a string or null: {word_bank_id!r}")
