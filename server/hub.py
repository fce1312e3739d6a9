"""WebSocket push of room state to connected clients.

URL: /ws/rooms/{room_id}?player_id={player_id}

Connection flow:
  1. Accept, load the room (unknown room -> error message + close).
  2. Subscribe to room writes and send the viewer's current observation.
  3. Every stored write pushes a full observation; clients replace their state with it.
  4. On disconnect: unsubscribe, then try to remove the player's seat. That
     removal is best effort because the seat may already be gone.

Client messages: {"type": "ping"} -> {"type": "pong"}; anything else is ignored.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from codenames.codenames_directory import RoomDirectory, RoomSummary
from codenames.codenames_game import CodenamesGame
from codenames.codenames_observation import observe
from codenames.codenames_state import RoomState
from engine.errors import GameError

logger = logging.getLogger(__name__)

ROOM_NOT_FOUND_CLOSE_CODE = 4404


async def _receive_until_disconnect(websocket: WebSocket) -> None:
    while True:
        try:
            raw = await websocket.receive_text()
        except WebSocketDisconnect:
            return
        try:
            message = json.loads(raw)
        except ValueError:
            logger.debug("Ignoring non-JSON client frame: %r", raw[:80])
            continue
        if isinstance(message, dict) and message.get("type") == "ping":
            await websocket.send_json({"type": "pong"})


def _offer_latest(queue: asyncio.Queue[Any], item: Any) -> None:
    """Keep only the newest snapshot for a slow client."""
    if queue.full():
        queue.get_nowait()
    queue.put_nowait(item)


async def _run_until_first_done(*coroutines: Any) -> None:
    tasks = [asyncio.ensure_future(coroutine) for coroutine in coroutines]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            task.result()
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


async def serve_room(websocket: WebSocket, game: CodenamesGame, room_id: str, player_id: str | None) -> None:
    """Stream one viewer's observation of a room until the client goes away."""
    await websocket.accept()
    try:
        room = await game.get_room(room_id)
    except GameError as exc:
        await websocket.send_json({"type": "error", "error": exc.to_dict()})
        await websocket.close(code=ROOM_NOT_FOUND_CLOSE_CODE)
        return

    updates: asyncio.Queue[RoomState | None] = asyncio.Queue(maxsize=1)
    unsubscribe = game.subscribe(room.room_id, lambda latest: _offer_latest(updates, latest))

    async def push() -> None:
        await websocket.send_json({"type": "room", "observation": observe(room, player_id).to_dict()})
        while True:
            latest = await updates.get()
            if latest is None:
                await websocket.send_json({"type": "room_deleted", "room_id": room.room_id})
                return
            await websocket.send_json({"type": "room", "observation": observe(latest, player_id).to_dict()})

    try:
        await _run_until_first_done(push(), _receive_until_disconnect(websocket))
    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe()
        if player_id:
            await _leave_quietly(game, room.room_id, player_id)


async def _leave_quietly(game: CodenamesGame, room_id: str, player_id: str) -> None:
    try:
        await game.leave(room_id, player_id)
    except GameError as exc:
        logger.warning("Best-effort leave of %s from %s failed: %s", player_id, room_id, exc)
    except Exception:
        logger.exception("Best-effort leave of %s from %s failed", player_id, room_id)


async def serve_directory(websocket: WebSocket, directory: RoomDirectory) -> None:
    """Stream the room list, re-sent after every room write."""
    await websocket.accept()
    updates: asyncio.Queue[list[RoomSummary]] = asyncio.Queue(maxsize=1)
    unsubscribe = directory.subscribe(lambda rooms: _offer_latest(updates, rooms))

    async def push() -> None:
        rooms = await directory.list_rooms()
        while True:
            await websocket.send_json({"type": "rooms", "rooms": [summary.to_dict() for summary in rooms]})
            rooms = await updates.get()

    try:
        await _run_until_first_done(push(), _receive_until_disconnect(websocket))
    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe()
