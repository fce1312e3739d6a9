"""Pydantic request schemas for the room API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class CreateRoomRequest(BaseModel):
    """Request body for creating a room under a generated code."""

    word_bank_id: str | None = None


class OpenRoomRequest(BaseModel):
    """Request body for opening (or creating on first access) a named room."""

    word_bank_id: str | None = None


class JoinRequest(BaseModel):
    """Request body for taking a seat in a room."""

    player_id: str
    name: str
    role: str = "operative"
    team: str | None = None


class LeaveRequest(BaseModel):
    """Request body for leaving a room."""

    player_id: str


class RevealRequest(BaseModel):
    """Request body for revealing a card.

    `team` and `role` are the client's idea of the player's seat and are checked
    against the stored seat when present.
    """

    player_id: str
    index: int = Field(ge=0)
    team: str | None = None
    role: str | None = None


class NewGameRequest(BaseModel):
    """Request body for dealing a new board. Omit `word_bank_id` to keep the current bank."""

    word_bank_id: str | None = None
    swap_teams: bool = False
    reset_used_words: bool = False


class WordBankRequest(BaseModel):
    """Request body for creating a word bank."""

    name: str
    words: list[str] = Field(default_factory=list)


class WordBankUpdateRequest(BaseModel):
    """Request body for editing a word bank; omitted fields are unchanged."""

    name: str | None = None
    words: list[str] | None = None
