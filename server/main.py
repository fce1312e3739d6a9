"""FastAPI server exposing Codenames rooms over HTTP and WebSocket."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Query, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from codenames.codenames_errors import (
    AlreadyRevealedError,
    ConcurrentUpdateError,
    ForbiddenRoleError,
    GameOverError,
    InsufficientWordsError,
    InvalidCardIndexError,
    InvalidPlayerDataError,
    InvalidRoomIdError,
    MalformedStateError,
    RoomNotFoundError,
    WordBankExistsError,
    WordBankNotFoundError,
    WrongTurnError,
)
from codenames.codenames_game import KEEP_WORD_BANK
from engine.errors import GameError
from engine.settings import Settings
from server.hub import serve_directory, serve_room
from server.schemas import (
    CreateRoomRequest,
    JoinRequest,
    LeaveRequest,
    NewGameRequest,
    OpenRoomRequest,
    RevealRequest,
    WordBankRequest,
    WordBankUpdateRequest,
)
from server.services import AppServices

settings = Settings.from_env()
logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Codenames Rooms API", version="0.1.0")
services = AppServices.build(settings)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_STATUS_BY_ERROR: tuple[tuple[type[GameError], int], ...] = (
    (RoomNotFoundError, 404),
    (WordBankNotFoundError, 404),
    (WordBankExistsError, 409),
    (ForbiddenRoleError, 403),
    (AlreadyRevealedError, 409),
    (WrongTurnError, 409),
    (GameOverError, 409),
    (ConcurrentUpdateError, 409),
    (InvalidRoomIdError, 400),
    (InvalidCardIndexError, 400),
    (InvalidPlayerDataError, 400),
    (InsufficientWordsError, 422),
    (MalformedStateError, 500),
)


def _http_error(exc: GameError) -> HTTPException:
    status = next((code for error_type, code in _STATUS_BY_ERROR if isinstance(exc, error_type)), 500)
    if status >= 500:
        logger.error("Request failed: %s", exc)
    return HTTPException(status_code=status, detail=exc.to_dict())


async def _view(room_id: str, player_id: str | None) -> dict[str, Any]:
    observation = await services.game.observe(room_id, player_id)
    return observation.to_dict()


@app.get("/api/health")
async def health() -> dict[str, str]:
    """Healthcheck endpoint."""
    return {"status": "ok"}


@app.get("/api/rooms")
async def list_rooms() -> list[dict[str, Any]]:
    """List rooms, newest first."""
    return [summary.to_dict() for summary in await services.directory.list_rooms()]


@app.post("/api/rooms")
async def create_room(request: CreateRoomRequest) -> dict[str, Any]:
    """Create a room under a generated code and deal its first board."""
    try:
        room = await services.game.create_room(word_bank_id=request.word_bank_id)
        return await _view(room.room_id, None)
    except GameError as exc:
        raise _http_error(exc) from exc


@app.delete("/api/rooms")
async def delete_all_rooms() -> dict[str, int]:
    """Delete every room."""
    deleted = await services.directory.delete_all()
    services.events.clear()
    return {"deleted": deleted}


@app.post("/api/rooms/{room_id}/open")
async def open_room(room_id: str, request: OpenRoomRequest) -> dict[str, Any]:
    """Open a room, creating it on first access."""
    try:
        room = await services.game.open_room(room_id, word_bank_id=request.word_bank_id)
        return await _view(room.room_id, None)
    except GameError as exc:
        raise _http_error(exc) from exc


@app.get("/api/rooms/{room_id}")
async def get_room(room_id: str, player_id: str | None = Query(default=None)) -> dict[str, Any]:
    """Return the room as seen by `player_id`."""
    try:
        return await _view(room_id, player_id)
    except GameError as exc:
        raise _http_error(exc) from exc


@app.post("/api/rooms/{room_id}/join")
async def join_room(room_id: str, request: JoinRequest) -> dict[str, Any]:
    """Seat a player; repeating the call with the same player id is harmless."""
    try:
        room = await services.game.join(
            room_id,
            player_id=request.player_id,
            name=request.name,
            role=request.role,
            team=request.team,
        )
        return await _view(room.room_id, request.player_id)
    except GameError as exc:
        raise _http_error(exc) from exc


@app.post("/api/rooms/{room_id}/leave")
async def leave_room(room_id: str, request: LeaveRequest) -> dict[str, Any]:
    """Remove a player's seat."""
    try:
        room = await services.game.leave(room_id, request.player_id)
        return await _view(room.room_id, None)
    except GameError as exc:
        raise _http_error(exc) from exc


@app.post("/api/rooms/{room_id}/reveal")
async def reveal_card(room_id: str, request: RevealRequest) -> dict[str, Any]:
    """Reveal a card and return the outcome plus the player's refreshed view."""
    try:
        outcome = await services.game.reveal(
            room_id,
            request.index,
            request.player_id,
            team=request.team,
            role=request.role,
        )
        return {"outcome": outcome.to_dict(), "observation": await _view(room_id, request.player_id)}
    except GameError as exc:
        raise _http_error(exc) from exc


@app.post("/api/rooms/{room_id}/new-game")
async def new_game(room_id: str, request: NewGameRequest) -> dict[str, Any]:
    """Deal a new board, keeping the room's players."""
    word_bank_id = request.word_bank_id if "word_bank_id" in request.model_fields_set else KEEP_WORD_BANK
    try:
        await services.game.new_game(
            room_id,
            word_bank_id=word_bank_id,
            swap_teams=request.swap_teams,
            reset_used_words=request.reset_used_words,
        )
        return await _view(room_id, None)
    except GameError as exc:
        raise _http_error(exc) from exc


@app.get("/api/rooms/{room_id}/events")
async def get_events(room_id: str) -> list[dict[str, Any]]:
    """Return the room's recorded events, oldest first."""
    try:
        room = await services.game.get_room(room_id)
    except GameError as exc:
        raise _http_error(exc) from exc
    return [event.to_dict() for event in services.events.events_for(room.room_id)]


@app.get("/api/word-banks")
async def list_word_banks() -> list[dict[str, Any]]:
    return [bank.to_dict() for bank in await services.word_banks.list_banks()]


@app.post("/api/word-banks")
async def create_word_bank(request: WordBankRequest) -> dict[str, Any]:
    try:
        bank = await services.word_banks.create_bank(request.name, request.words)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return bank.to_dict()


@app.post("/api/word-banks/default")
async def create_default_word_bank() -> dict[str, Any]:
    """Seed the 100-word default bank; 409 when one is already stored."""
    try:
        bank = await services.word_banks.create_default_bank()
    except GameError as exc:
        raise _http_error(exc) from exc
    return bank.to_dict()


@app.get("/api/word-banks/{bank_id}")
async def get_word_bank(bank_id: str) -> dict[str, Any]:
    try:
        return (await services.word_banks.get_bank(bank_id)).to_dict()
    except GameError as exc:
        raise _http_error(exc) from exc


@app.put("/api/word-banks/{bank_id}")
async def update_word_bank(bank_id: str, request: WordBankUpdateRequest) -> dict[str, Any]:
    try:
        bank = await services.word_banks.update_bank(bank_id, name=request.name, words=request.words)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except GameError as exc:
        raise _http_error(exc) from exc
    return bank.to_dict()


@app.delete("/api/word-banks/{bank_id}")
async def delete_word_bank(bank_id: str) -> dict[str, str]:
    try:
        await services.word_banks.delete_bank(bank_id)
    except GameError as exc:
        raise _http_error(exc) from exc
    return {"deleted": bank_id}


@app.websocket("/ws/rooms")
async def rooms_socket(websocket: WebSocket) -> None:
    await serve_directory(websocket, services.directory)


@app.websocket("/ws/rooms/{room_id}")
async def room_socket(websocket: WebSocket, room_id: str, player_id: str | None = Query(default=None)) -> None:
    await serve_room(websocket, services.game, room_id, player_id)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.main:app", host="0.0.0.0", port=8000, reload=True)
