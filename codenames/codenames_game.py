"""Codenames room engine: room lifecycle, reveals, joins, and new games.

All shared state lives in the room document store. Each mutation re-reads the
latest document, re-validates its preconditions against it, and writes the
result back, using a version-stamped conditional write when the store offers
one. A lost race is retried from a fresh read; precondition failures are
raised to the caller and never retried.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Awaitable
from dataclasses import dataclass, replace
from typing import Any, Callable

from engine.errors import DocumentExistsError, DocumentNotFoundError, VersionConflictError
from engine.events import EventType, RoomEvent
from engine.store import DocumentStore, Unsubscribe

from .codenames_board import generate_board, render
from .codenames_errors import (
    AlreadyRevealedError,
    ConcurrentUpdateError,
    ForbiddenRoleError,
    GameOverError,
    InvalidCardIndexError,
    RoomNotFoundError,
    WordBankNotFoundError,
    WrongTurnError,
)
from .codenames_observation import RoomObservation, observe
from .codenames_state import (
    Card,
    Color,
    Phase,
    Role,
    RoomState,
    Team,
    WinReason,
    generate_room_id,
    normalize_room_id,
    utc_now_iso,
    validate_document,
)
from .codenames_teams import build_player, join_players, leave_players, swap_player_teams, verify_identity
from .codenames_wordbanks import WordBankService
from .codenames_words import WordSelection, choose_board_words

logger = logging.getLogger(__name__)

KEEP_WORD_BANK: Any = object()
RoomCallback = Callable[[RoomState | None], Awaitable[None] | None]
EventSink = Callable[[RoomEvent], None]


@dataclass(frozen=True)
class RevealOutcome:
    """Result of one successful reveal."""

    room: RoomState
    index: int
    card: Card
    player_id: str
    turn_before: Team
    turn_after: Team
    winner: Team | None = None
    loser: Team | None = None
    reason: WinReason | None = None

    @property
    def finished(self) -> bool:
        return self.winner is not None

    @property
    def phase(self) -> Phase:
        return self.room.phase

    def to_dict(self) -> dict[str, Any]:
        return {
            "room_id": self.room.room_id,
            "index": self.index,
            "card": self.card.to_dict(),
            "player_id": self.player_id,
            "turn_before": self.turn_before.value,
            "turn_after": self.turn_after.value,
            "winner": self.winner.value if self.winner else None,
            "loser": self.loser.value if self.loser else None,
            "reason": self.reason.value if self.reason else None,
            "phase": self.phase.value,
            "version": self.room.version,
        }


def apply_reveal(room: RoomState, index: int) -> RoomState:
    """Flip card `index` and advance the turn; no precondition checks.

    The turn stays with the guessing team on its own color, passes on any other
    color, and is left untouched when the reveal ends the game.
    """
    clicked = room.board[index].color
    revealed = room.with_card_revealed(index)
    if clicked is Color.BLACK or revealed.outcome() is not None:
        return revealed
    if clicked is room.current_turn.color:
        return revealed
    return replace(revealed, current_turn=room.current_turn.other)


def check_reveal(
    room: RoomState,
    index: int,
    player_id: str,
    *,
    team: Any = None,
    role: Any = None,
) -> None:
    """Raise the named error for the first reveal precondition `room` violates."""
    actor = verify_identity(room.player(player_id), player_id=player_id, claimed_team=team, claimed_role=role)
    if room.outcome() is not None:
        raise GameOverError(f"Room {room.room_id!r} is finished; start a new game to keep playing")
    if not 0 <= index < len(room.board):
        raise InvalidCardIndexError(index, len(room.board))
    card = room.board[index]
    if card.revealed:
        raise AlreadyRevealedError(index, card.word)
    if actor.role is Role.SPYMASTER:
        raise ForbiddenRoleError(player_id)
    if actor.team is not room.current_turn:
        raise WrongTurnError(player_id, actor.team.value, room.current_turn.value)


class CodenamesGame:
    """Authoritative rules for rooms held in a document store."""

    game_name = "codenames"

    def __init__(
        self,
        rooms: DocumentStore,
        word_banks: WordBankService | None = None,
        *,
        rng: random.Random | None = None,
        commit_attempts: int = 3,
        on_event: EventSink | None = None,
    ):
        if commit_attempts < 1:
            raise ValueError("commit_attempts must be >= 1.")
        self.rooms = rooms
        self.word_banks = word_banks
        self.rng = rng or random.Random()
        self.commit_attempts = commit_attempts
        self.on_event = on_event

    async def get_room(self, room_id: str) -> RoomState:
        """Return the latest stored state; raises RoomNotFoundError."""
        room_id = normalize_room_id(room_id)
        document = await self.rooms.get(room_id)
        if document is None:
            raise RoomNotFoundError(room_id)
        return RoomState.from_document(document)

    async def open_room(self, room_id: str, *, word_bank_id: str | None = None) -> RoomState:
        """Return the room, dealing its first board if it has never been accessed."""
        room_id = normalize_room_id(room_id)
        document = await self.rooms.get(room_id)
        if document is not None:
            return RoomState.from_document(document)

        board, selection = await self._deal(word_bank_id, frozenset())
        now = utc_now_iso()
        room = RoomState(
            room_id=room_id,
            board=board,
            current_turn=Team.RED,
            players=(),
            used_words=selection.used_words,
            word_bank_id=word_bank_id,
            created_at=now,
            updated_at=now,
        )
        stored = room.to_document()
        validate_document(stored)
        try:
            created = RoomState.from_document(await self.rooms.create(room_id, stored))
        except DocumentExistsError:
            # Another client dealt the first board between our read and write.
            return await self.get_room(room_id)

        logger.info("Created room %s (word bank: %s)", room_id, word_bank_id or "default")
        self._emit(EventType.ROOM_CREATED, created, {"word_bank_id": word_bank_id})
        return created

    async def create_room(self, *, word_bank_id: str | None = None, max_attempts: int = 10) -> RoomState:
        """Open a room under a freshly generated code."""
        for _ in range(max_attempts):
            room_id = generate_room_id(self.rng)
            if await self.rooms.get(room_id) is None:
                return await self.open_room(room_id, word_bank_id=word_bank_id)
        raise RuntimeError(f"Could not find a free room code after {max_attempts} attempts.")

    async def join(
        self,
        room_id: str,
        *,
        player_id: str,
        name: str,
        role: Any,
        team: Any = None,
    ) -> RoomState:
        """Seat a player; joining again with the same id changes nothing."""
        player_id = (player_id or "").strip()

        def seat(room: RoomState) -> RoomState:
            if room.player(player_id) is not None:
                return room
            player = build_player(room.players, player_id=player_id, name=name, role=role, team=team)
            return replace(room, players=join_players(room.players, player))

        before, after = await self._commit(room_id, seat)
        if after is not before:
            player = after.player(player_id)
            logger.info("Player %s joined %s as %s %s", player_id, after.room_id, player.team.value, player.role.value)
            self._emit(EventType.PLAYER_JOINED, after, {"player": player.to_dict()})
        return after

    async def leave(self, room_id: str, player_id: str) -> RoomState:
        """Remove a player's seat; unknown players are ignored."""

        def unseat(room: RoomState) -> RoomState:
            if room.player(player_id) is None:
                return room
            return replace(room, players=leave_players(room.players, player_id))

        before, after = await self._commit(room_id, unseat)
        if after is not before:
            logger.info("Player %s left %s", player_id, after.room_id)
            self._emit(EventType.PLAYER_LEFT, after, {"player_id": player_id})
        return after

    async def reveal(
        self,
        room_id: str,
        index: int,
        player_id: str,
        *,
        team: Any = None,
        role: Any = None,
    ) -> RevealOutcome:
        """Reveal card `index` for `player_id` and settle turn and winner.

        `team`/`role`, when given, are what the caller believes about the player
        and must match the stored seat.
        """

        def flip(room: RoomState) -> RoomState:
            check_reveal(room, index, player_id, team=team, role=role)
            return apply_reveal(room, index)

        before, after = await self._commit(room_id, flip)
        outcome = after.outcome()
        result = RevealOutcome(
            room=after,
            index=index,
            card=after.board[index],
            player_id=player_id,
            turn_before=before.current_turn,
            turn_after=after.current_turn,
            winner=outcome.winner if outcome else None,
            loser=outcome.loser if outcome else None,
            reason=outcome.reason if outcome else None,
        )
        logger.info(
            "Player %s revealed %s (%s) in %s; turn %s -> %s",
            player_id,
            result.card.word,
            result.card.color.value,
            after.room_id,
            result.turn_before.value,
            result.turn_after.value,
        )
        self._emit(EventType.CARD_REVEALED, after, result.to_dict())
        if outcome is not None:
            logger.info("Room %s finished: %s wins by %s", after.room_id, outcome.winner.value, outcome.reason.value)
            self._emit(
                EventType.GAME_OVER,
                after,
                {"winner": outcome.winner.value, "loser": outcome.loser.value, "reason": outcome.reason.value},
            )
        return result

    async def new_game(
        self,
        room_id: str,
        *,
        word_bank_id: Any = KEEP_WORD_BANK,
        swap_teams: bool = False,
        reset_used_words: bool = False,
    ) -> tuple[Card, ...]:
        """Deal a fresh board, keeping players; red starts.

        Switching to a different word bank (None means the default words) also
        clears the room's used words, since they belonged to the old bank.
        """
        room = await self.get_room(room_id)
        bank_id = room.word_bank_id if word_bank_id is KEEP_WORD_BANK else word_bank_id
        clear_used = reset_used_words or bank_id != room.word_bank_id
        board, selection = await self._deal(bank_id, frozenset() if clear_used else room.used_words)

        def redeal(current: RoomState) -> RoomState:
            if clear_used or selection.exclusions_reset:
                used_words = selection.used_words
            else:
                used_words = current.used_words | selection.used_words
            players = swap_player_teams(current.players) if swap_teams else current.players
            return replace(
                current,
                board=board,
                current_turn=Team.RED,
                players=players,
                used_words=used_words,
                word_bank_id=bank_id,
            )

        _, after = await self._commit(room_id, redeal)
        logger.info("New game in %s (swap_teams=%s, word bank: %s)", after.room_id, swap_teams, bank_id or "default")
        self._emit(
            EventType.NEW_GAME,
            after,
            {
                "word_bank_id": bank_id,
                "swap_teams": swap_teams,
                "used_words_cleared": clear_used or selection.exclusions_reset,
            },
        )
        return after.board

    async def observe(self, room_id: str, player_id: str | None = None) -> RoomObservation:
        return observe(await self.get_room(room_id), player_id)

    async def render(self, room_id: str, player_id: str | None = None) -> str:
        """Render the room for debugging."""
        room = await self.get_room(room_id)
        viewer = room.player(player_id) if player_id is not None else None
        show_colors = viewer is not None and viewer.role is Role.SPYMASTER
        outcome = room.outcome()
        header = (
            f"room={room.room_id} turn={room.current_turn.value} phase={room.phase.value} "
            f"remaining={room.remaining_counts()} winner={outcome.winner.value if outcome else None}"
        )
        return header + "\n" + render(room.board, show_colors=show_colors)

    def subscribe(self, room_id: str, callback: RoomCallback) -> Unsubscribe:
        """Push every stored write of the room to `callback` as a RoomState (None on delete)."""
        room_id = normalize_room_id(room_id)

        def relay(document: dict[str, Any] | None) -> Awaitable[None] | None:
            return callback(RoomState.from_document(document) if document is not None else None)

        return self.rooms.subscribe(room_id, relay)

    async def _deal(self, word_bank_id: str | None, used_words: frozenset[str]) -> tuple[tuple[Card, ...], WordSelection]:
        bank_words = None
        if word_bank_id is not None:
            if self.word_banks is None:
                raise WordBankNotFoundError(word_bank_id)
            bank_words = await self.word_banks.words_for(word_bank_id)
        selection = choose_board_words(bank_words, used_words, self.rng)
        board = generate_board(selection.words, self.rng, allow_duplicates=selection.has_duplicates)
        return board, selection

    async def _commit(
        self,
        room_id: str,
        mutate: Callable[[RoomState], RoomState],
    ) -> tuple[RoomState, RoomState]:
        """Read, mutate, and write one room; returns (before, after).

        When `mutate` returns its input unchanged nothing is written and
        `after is before`.
        """
        room_id = normalize_room_id(room_id)
        for attempt in range(1, self.commit_attempts + 1):
            current = await self.get_room(room_id)
            updated = mutate(current)
            if updated is current:
                return current, current

            updated = replace(updated, updated_at=utc_now_iso())
            document = updated.to_document()
            validate_document(document)
            expected = current.version if self.rooms.supports_conditional_update else None
            try:
                stored = await self.rooms.update(room_id, document, expected_version=expected)
            except VersionConflictError:
                logger.warning("Room %s changed during commit (attempt %d/%d)", room_id, attempt, self.commit_attempts)
                continue
            except DocumentNotFoundError as exc:
                raise RoomNotFoundError(room_id) from exc
            return current, RoomState.from_document(stored)
        raise ConcurrentUpdateError(room_id, self.commit_attempts)

    def _emit(self, event_type: EventType, room: RoomState, payload: dict[str, Any]) -> None:
        if self.on_event is None:
            return
        self.on_event(RoomEvent.create(event_type=event_type, room_id=room.room_id, version=room.version, payload=payload))
