"""Named failures for room, reveal, join, and board-generation operations."""

from __future__ import annotations

from typing import Any

from engine.errors import GameError


class RoomNotFoundError(GameError):
    """Raised when an operation targets a room with no stored state."""

    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"Room {room_id!r} does not exist")

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["room_id"] = self.room_id
        return payload


class InvalidRoomIdError(GameError):
    """Raised when a room code is not six letters or digits."""


class AlreadyRevealedError(GameError):
    """Raised when revealing a card that is already face-up."""

    def __init__(self, index: int, word: str):
        self.index = index
        self.word = word
        super().__init__(f"Card {index} ({word}) is already revealed")

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update({"index": self.index, "word": self.word})
        return payload


class InvalidCardIndexError(GameError):
    """Raised when a card index falls outside the board."""

    def __init__(self, index: int, board_size: int):
        self.index = index
        super().__init__(f"Card index {index} is outside 0..{board_size - 1}")


class ForbiddenRoleError(GameError):
    """Raised when a spymaster attempts to reveal a card."""

    def __init__(self, player_id: str):
        self.player_id = player_id
        super().__init__(f"Player {player_id!r} is a spymaster and cannot reveal cards")


class WrongTurnError(GameError):
    """Raised when a player reveals outside their team's turn."""

    def __init__(self, player_id: str, team: str, current_turn: str):
        self.player_id = player_id
        self.team = team
        self.current_turn = current_turn
        super().__init__(f"It is {current_turn}'s turn; {player_id!r} plays for {team}")

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update({"player_id": self.player_id, "team": self.team, "current_turn": self.current_turn})
        return payload


class GameOverError(GameError):
    """Raised when revealing on a finished board; only a new game reopens play."""


class InvalidPlayerDataError(GameError):
    """Raised when join data or a caller-claimed identity is missing or inconsistent."""


class InsufficientWordsError(GameError):
    """Raised when no word source can supply a full board."""

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(f"Need {required} distinct words, only {available} available")

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update({"required": self.required, "available": self.available})
        return payload


class WordBankNotFoundError(GameError):
    """Raised when a word-bank id has no stored bank."""

    def __init__(self, bank_id: str):
        self.bank_id = bank_id
        super().__init__(f"Word bank {bank_id!r} does not exist")


class WordBankExistsError(GameError):
    """Raised when seeding a default bank that is already stored."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Word bank {name!r} already exists")


class MalformedStateError(GameError):
    """Raised when a room document fails structural validation."""


class ConcurrentUpdateError(GameError):
    """Raised when a conditional commit keeps losing to concurrent writers."""

    def __init__(self, room_id: str, attempts: int):
        self.room_id = room_id
        self.attempts = attempts
        super().__init__(f"Room {room_id!r} changed concurrently on all {attempts} commit attempts")
