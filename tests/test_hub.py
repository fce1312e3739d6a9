"""WebSocket push tests using an in-process fake socket."""

from __future__ import annotations

import asyncio
import json
import random
from typing import Any, Callable

from fastapi import WebSocketDisconnect

from codenames.codenames_directory import RoomDirectory
from codenames.codenames_game import CodenamesGame
from engine.store import InMemoryDocumentStore
from server.hub import ROOM_NOT_FOUND_CLOSE_CODE, _offer_latest, serve_directory, serve_room


class FakeWebSocket:
    """Queue-backed stand-in; putting None on `incoming` simulates a disconnect."""

    def __init__(self) -> None:
        self.incoming: asyncio.Queue[str | None] = asyncio.Queue()
        self.sent: list[dict[str, Any]] = []
        self.accepted = False
        self.close_code: int | None = None

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, data: dict[str, Any]) -> None:
        self.sent.append(data)

    async def receive_text(self) -> str:
        message = await self.incoming.get()
        if message is None:
            raise WebSocketDisconnect(code=1000)
        return message

    async def close(self, code: int = 1000) -> None:
        self.close_code = code


async def _wait_for(predicate: Callable[[], bool]) -> None:
    for _ in range(200):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


def _game() -> tuple[CodenamesGame, InMemoryDocumentStore]:
    store = InMemoryDocumentStore("games")
    return CodenamesGame(store, rng=random.Random(3)), store


def test_room_socket_pushes_updates_and_leaves_on_disconnect() -> None:
    async def scenario() -> tuple[FakeWebSocket, Any, int]:
        game, store = _game()
        await game.open_room("ABC123")
        await game.join("ABC123", player_id="p1", name="Ana", role="operative")
        socket = FakeWebSocket()
        task = asyncio.create_task(serve_room(socket, game, "abc123", "p1"))

        await _wait_for(lambda: len(socket.sent) == 1)
        await socket.incoming.put(json.dumps({"type": "ping"}))
        await game.join("ABC123", player_id="p2", name="Ben", role="operative")
        await _wait_for(lambda: len(socket.sent) == 3)
        await socket.incoming.put(None)
        await task
        return socket, await game.get_room("ABC123"), store.subscriber_count("ABC123")

    socket, room, subscribers = asyncio.run(scenario())

    assert socket.accepted
    first = socket.sent[0]
    assert first["type"] == "room"
    assert first["observation"]["viewer_id"] == "p1"
    assert first["observation"]["can_reveal"] is True
    assert {"type": "pong"} in socket.sent
    pushed = [message for message in socket.sent[1:] if message["type"] == "room"]
    assert len(pushed[0]["observation"]["players"]) == 2

    assert [player.id for player in room.players] == ["p2"]
    assert subscribers == 0


def test_room_socket_reports_missing_room() -> None:
    game, _ = _game()
    socket = FakeWebSocket()
    asyncio.run(serve_room(socket, game, "ZZZ999", "p1"))

    assert socket.sent[0]["type"] == "error"
    assert socket.sent[0]["error"]["type"] == "RoomNotFoundError"
    assert socket.close_code == ROOM_NOT_FOUND_CLOSE_CODE


def test_room_socket_ends_when_room_is_deleted() -> None:
    async def scenario() -> FakeWebSocket:
        game, store = _game()
        await game.open_room("ABC123")
        socket = FakeWebSocket()
        task = asyncio.create_task(serve_room(socket, game, "ABC123", "p1"))
        await _wait_for(lambda: len(socket.sent) == 1)
        await store.delete("ABC123")
        await task
        return socket

    socket = asyncio.run(scenario())
    assert socket.sent[-1] == {"type": "room_deleted", "room_id": "ABC123"}


def test_directory_socket_streams_room_list() -> None:
    async def scenario() -> FakeWebSocket:
        game, store = _game()
        await game.open_room("AAA111")
        socket = FakeWebSocket()
        task = asyncio.create_task(serve_directory(socket, RoomDirectory(store)))
        await _wait_for(lambda: len(socket.sent) == 1)
        await game.open_room("BBB222")
        await _wait_for(lambda: len(socket.sent) == 2)
        await socket.incoming.put(None)
        await task
        return socket

    socket = asyncio.run(scenario())
    assert [len(message["rooms"]) for message in socket.sent] == [1, 2]
    assert all(message["type"] == "rooms" for message in socket.sent)


class DiskFullStore(InMemoryDocumentStore):
    """Store whose writes start failing once `broken` is set."""

    broken = False

    def _persist(self) -> None:
        if self.broken:
            raise OSError("disk full")


def test_room_socket_ignores_non_json_frames() -> None:
    async def scenario() -> tuple[FakeWebSocket, Any]:
        game, _ = _game()
        await game.open_room("ABC123")
        await game.join("ABC123", player_id="p1", name="Ana", role="operative")
        socket = FakeWebSocket()
        task = asyncio.create_task(serve_room(socket, game, "ABC123", "p1"))

        await _wait_for(lambda: len(socket.sent) == 1)
        await socket.incoming.put("hello")
        await socket.incoming.put("[1, 2")
        await socket.incoming.put(json.dumps({"type": "ping"}))
        await _wait_for(lambda: {"type": "pong"} in socket.sent)
        room_while_connected = await game.get_room("ABC123")
        await socket.incoming.put(None)
        await task
        return socket, room_while_connected

    socket, room = asyncio.run(scenario())
    assert socket.sent[-1] == {"type": "pong"}
    assert [player.id for player in room.players] == ["p1"]


def test_failed_leave_on_disconnect_is_swallowed() -> None:
    async def scenario() -> Any:
        store = DiskFullStore("games")
        game = CodenamesGame(store, rng=random.Random(3))
        await game.open_room("ABC123")
        await game.join("ABC123", player_id="p1", name="Ana", role="operative")
        socket = FakeWebSocket()
        task = asyncio.create_task(serve_room(socket, game, "ABC123", "p1"))
        await _wait_for(lambda: len(socket.sent) == 1)
        store.broken = True
        await socket.incoming.put(None)
        await task
        return store.subscriber_count("ABC123")

    assert asyncio.run(scenario()) == 0


def test_offer_latest_keeps_only_newest_snapshot() -> None:
    async def scenario() -> tuple[int, str]:
        queue: asyncio.Queue[str] = asyncio.Queue(maxsize=1)
        for snapshot in ("v1", "v2", "v3"):
            _offer_latest(queue, snapshot)
        return queue.qsize(), await queue.get()

    assert asyncio.run(scenario()) == (1, "v3")


def test_slow_room_socket_receives_latest_state() -> None:
    async def scenario() -> FakeWebSocket:
        game, _ = _game()
        await game.open_room("ABC123")
        socket = FakeWebSocket()
        task = asyncio.create_task(serve_room(socket, game, "ABC123", None))
        await _wait_for(lambda: len(socket.sent) == 1)
        # Three writes land before the push loop gets a chance to run.
        await game.join("ABC123", player_id="p1", name="Ana", role="operative")
        await game.join("ABC123", player_id="p2", name="Ben", role="operative")
        await game.join("ABC123", player_id="p3", name="Cy", role="operative")
        await _wait_for(lambda: len(socket.sent[-1]["observation"]["players"]) == 3)
        await socket.incoming.put(None)
        await task
        return socket

    socket = asyncio.run(scenario())
    assert len(socket.sent) <= 4
    assert [player["id"] for player in socket.sent[-1]["observation"]["players"]] == ["p1", "p2", "p3"]
