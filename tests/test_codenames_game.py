"""Room lifecycle tests: open, join, leave, new game, commits, and views."""

from __future__ import annotations

import asyncio
import random
from collections import Counter
from typing import Any, Mapping

import pytest

from codenames.codenames_errors import (
    AlreadyRevealedError,
    ConcurrentUpdateError,
    InvalidPlayerDataError,
    InvalidRoomIdError,
    RoomNotFoundError,
    WordBankNotFoundError,
)
from codenames.codenames_game import CodenamesGame, apply_reveal
from codenames.codenames_observation import observe
from codenames.codenames_state import Color, Phase, Role, RoomState, Team
from codenames.codenames_teams import assign_team, build_player, join_players, leave_players, swap_player_teams
from codenames.codenames_wordbanks import WordBankService
from codenames.codenames_words import DEFAULT_WORDS
from engine.events import EventLog, EventType
from engine.store import InMemoryDocumentStore


class RacingStore(InMemoryDocumentStore):
    """Store that lets a rival writer land just before each of our first `races` updates."""

    def __init__(self, races: int):
        super().__init__("games")
        self.races = races

    async def update(self, doc_id: str, patch: Mapping[str, Any], *, expected_version: int | None = None):
        if self.races > 0:
            self.races -= 1
            await super().update(doc_id, {"updated_at": "rival"})
        return await super().update(doc_id, patch, expected_version=expected_version)


class RivalRevealStore(InMemoryDocumentStore):
    """Store where a rival flips `rival_index` just before our next update lands."""

    def __init__(self):
        super().__init__("games")
        self.rival_index: int | None = None

    async def update(self, doc_id: str, patch: Mapping[str, Any], *, expected_version: int | None = None):
        if self.rival_index is not None:
            index, self.rival_index = self.rival_index, None
            current = RoomState.from_document(await self.get(doc_id))
            await super().update(doc_id, apply_reveal(current, index).to_document())
        return await super().update(doc_id, patch, expected_version=expected_version)


def _game(store: InMemoryDocumentStore | None = None, **kwargs: Any) -> CodenamesGame:
    return CodenamesGame(store or InMemoryDocumentStore("games"), rng=random.Random(21), **kwargs)


def test_open_room_creates_board_on_first_access() -> None:
    game = _game()
    room = asyncio.run(game.open_room("abc123"))

    assert room.room_id == "ABC123"
    assert room.version == 1
    assert room.current_turn is Team.RED
    assert room.phase is Phase.IN_PROGRESS
    assert room.players == ()
    assert Counter(card.color for card in room.board) == {Color.RED: 9, Color.BLUE: 8, Color.BLACK: 1, Color.BEIGE: 7}
    assert {card.word for card in room.board} == set(DEFAULT_WORDS)
    assert room.used_words == frozenset(DEFAULT_WORDS)


def test_open_room_returns_existing_room_unchanged() -> None:
    game = _game()
    first = asyncio.run(game.open_room("ABC123"))
    second = asyncio.run(game.open_room("ABC123"))
    assert second == first


def test_invalid_room_codes_are_rejected() -> None:
    game = _game()
    for raw in ("", "ABC12", "ABC1234", "ABC-12"):
        with pytest.raises(InvalidRoomIdError):
            asyncio.run(game.open_room(raw))


def test_create_room_generates_a_code() -> None:
    game = _game()
    room = asyncio.run(game.create_room())
    assert len(room.room_id) == 6
    assert room.room_id.isalnum() and room.room_id.upper() == room.room_id


def test_get_room_on_missing_room_raises() -> None:
    with pytest.raises(RoomNotFoundError):
        asyncio.run(_game().get_room("NOPE00"))


def test_assign_team_balances_and_breaks_ties_to_red() -> None:
    assert assign_team([], None, Role.OPERATIVE) is Team.RED
    red = build_player([], player_id="a", name="A", role="operative")
    assert assign_team([red], None, Role.OPERATIVE) is Team.BLUE
    blue = build_player([red], player_id="b", name="B", role="operative")
    assert blue.team is Team.BLUE
    assert assign_team([red, blue], None, Role.OPERATIVE) is Team.RED
    assert assign_team([red], Team.RED, Role.OPERATIVE) is Team.RED


def test_spymaster_must_pick_a_team() -> None:
    with pytest.raises(InvalidPlayerDataError):
        assign_team([], None, Role.SPYMASTER)
    assert assign_team([], Team.BLUE, Role.SPYMASTER) is Team.BLUE


def test_build_player_validates_input() -> None:
    with pytest.raises(InvalidPlayerDataError):
        build_player([], player_id=" ", name="A", role="operative")
    with pytest.raises(InvalidPlayerDataError):
        build_player([], player_id="a", name="", role="operative")
    with pytest.raises(InvalidPlayerDataError):
        build_player([], player_id="a", name="A", role="captain")
    with pytest.raises(InvalidPlayerDataError):
        build_player([], player_id="a", name="A", role="operative", team="green")


def test_player_list_helpers() -> None:
    red = build_player([], player_id="a", name="A", role="operative")
    players = join_players([], red)
    assert join_players(players, red) == players
    assert leave_players(players, "missing") == players
    assert leave_players(players, "a") == ()
    swapped = swap_player_teams(players)
    assert swapped[0].team is Team.BLUE
    assert swapped[0].role is Role.OPERATIVE


def test_join_is_idempotent() -> None:
    store = InMemoryDocumentStore("games")
    game = _game(store)
    asyncio.run(game.open_room("ABC123"))

    first = asyncio.run(game.join("ABC123", player_id="p1", name="Ana", role="operative"))
    again = asyncio.run(game.join("ABC123", player_id="p1", name="Ana again", role="spymaster", team="blue"))

    assert len(again.players) == 1
    assert again.players[0].name == "Ana"
    assert again.players[0].team is Team.RED
    assert again.version == first.version


def test_join_balances_teams_across_players() -> None:
    game = _game()
    asyncio.run(game.open_room("ABC123"))
    asyncio.run(game.join("ABC123", player_id="p1", name="Ana", role="operative"))
    asyncio.run(game.join("ABC123", player_id="p2", name="Ben", role="operative"))
    room = asyncio.run(game.join("ABC123", player_id="p3", name="Cy", role="spymaster", team="red"))

    assert [player.team for player in room.players] == [Team.RED, Team.BLUE, Team.RED]
    assert room.team_counts() == {"red": 2, "blue": 1}


def test_join_missing_room_raises() -> None:
    with pytest.raises(RoomNotFoundError):
        asyncio.run(_game().join("ABC123", player_id="p1", name="Ana", role="operative"))


def test_leave_removes_player_and_ignores_unknown_ids() -> None:
    game = _game()
    asyncio.run(game.open_room("ABC123"))
    joined = asyncio.run(game.join("ABC123", player_id="p1", name="Ana", role="operative"))

    unchanged = asyncio.run(game.leave("ABC123", "ghost"))
    assert unchanged.version == joined.version

    left = asyncio.run(game.leave("ABC123", "p1"))
    assert left.players == ()
    assert left.version == joined.version + 1


def test_commit_retries_after_a_lost_race() -> None:
    store = RacingStore(races=1)
    game = _game(store)
    asyncio.run(game.open_room("ABC123"))

    room = asyncio.run(game.join("ABC123", player_id="p1", name="Ana", role="operative"))

    assert room.player("p1") is not None
    # create=1, rival=2, retried join=3
    assert room.version == 3


def test_commit_gives_up_after_repeated_conflicts() -> None:
    store = RacingStore(races=10)
    game = _game(store, commit_attempts=2)
    asyncio.run(game.open_room("ABC123"))

    with pytest.raises(ConcurrentUpdateError):
        asyncio.run(game.join("ABC123", player_id="p1", name="Ana", role="operative"))
    assert store.races == 8


def test_retry_rejects_a_card_the_rival_already_revealed() -> None:
    store = RivalRevealStore()
    game = _game(store)
    asyncio.run(game.open_room("ABC123"))
    asyncio.run(game.join("ABC123", player_id="p1", name="Ana", role="operative", team="red"))
    room = asyncio.run(game.get_room("ABC123"))
    index = next(i for i, card in enumerate(room.board) if card.color is Color.RED)

    store.rival_index = index
    with pytest.raises(AlreadyRevealedError):
        asyncio.run(game.reveal("ABC123", index, "p1"))

    after = asyncio.run(game.get_room("ABC123"))
    assert after.board[index].revealed
    assert sum(card.revealed for card in after.board) == 1
    # join=2, rival reveal=3; our reveal never landed
    assert after.version == 3


def test_unconditional_store_still_commits() -> None:
    store = InMemoryDocumentStore("games", conditional_updates=False)
    game = _game(store)
    asyncio.run(game.open_room("ABC123"))
    room = asyncio.run(game.join("ABC123", player_id="p1", name="Ana", role="operative"))
    assert room.version == 2


def test_new_game_keeps_players_and_resets_turn() -> None:
    game = _game()
    asyncio.run(game.open_room("ABC123"))
    asyncio.run(game.join("ABC123", player_id="p1", name="Ana", role="operative"))
    asyncio.run(game.join("ABC123", player_id="p2", name="Ben", role="operative"))
    before = asyncio.run(game.get_room("ABC123"))
    blue_card = next(index for index, card in enumerate(before.board) if card.color is Color.BLUE)
    asyncio.run(game.reveal("ABC123", blue_card, "p1"))

    board = asyncio.run(game.new_game("ABC123"))
    after = asyncio.run(game.get_room("ABC123"))

    assert after.board == board
    assert all(not card.revealed for card in board)
    assert after.current_turn is Team.RED
    assert after.players == before.players


def test_new_game_can_swap_teams() -> None:
    game = _game()
    asyncio.run(game.open_room("ABC123"))
    asyncio.run(game.join("ABC123", player_id="p1", name="Ana", role="operative"))
    asyncio.run(game.new_game("ABC123", swap_teams=True))
    room = asyncio.run(game.get_room("ABC123"))
    assert room.player("p1").team is Team.BLUE


def test_new_game_avoids_words_from_earlier_boards() -> None:
    banks = WordBankService(InMemoryDocumentStore("wordBanks"), id_factory=lambda: "bank-1")
    bank = asyncio.run(banks.create_bank("Big", [f"word{index:02d}" for index in range(60)]))
    game = _game(word_banks=banks)

    first = asyncio.run(game.open_room("ABC123", word_bank_id=bank.id))
    asyncio.run(game.new_game("ABC123"))
    second = asyncio.run(game.get_room("ABC123"))

    assert second.word_bank_id == "bank-1"
    assert not {card.word for card in first.board} & {card.word for card in second.board}
    assert len(second.used_words) == 50


def test_new_game_with_other_bank_clears_used_words() -> None:
    banks = WordBankService(InMemoryDocumentStore("wordBanks"))
    bank = asyncio.run(banks.create_bank("Big", [f"word{index:02d}" for index in range(40)]))
    game = _game(word_banks=banks)
    asyncio.run(game.open_room("ABC123"))

    asyncio.run(game.new_game("ABC123", word_bank_id=bank.id))
    room = asyncio.run(game.get_room("ABC123"))

    assert room.word_bank_id == bank.id
    assert room.used_words == frozenset(card.word for card in room.board)
    assert not room.used_words & set(DEFAULT_WORDS)


def test_new_game_reset_used_words() -> None:
    banks = WordBankService(InMemoryDocumentStore("wordBanks"))
    bank = asyncio.run(banks.create_bank("Big", [f"word{index:02d}" for index in range(60)]))
    game = _game(word_banks=banks)
    asyncio.run(game.open_room("ABC123", word_bank_id=bank.id))

    asyncio.run(game.new_game("ABC123", reset_used_words=True))
    room = asyncio.run(game.get_room("ABC123"))
    assert room.used_words == frozenset(card.word for card in room.board)


def test_small_bank_deals_a_board_with_repeats() -> None:
    banks = WordBankService(InMemoryDocumentStore("wordBanks"))
    bank = asyncio.run(banks.create_bank("Tiny", ["one", "two", "three"]))
    game = _game(word_banks=banks)

    room = asyncio.run(game.open_room("ABC123", word_bank_id=bank.id))
    assert len(room.board) == 25
    assert {card.word for card in room.board} == {"one", "two", "three"}


def test_unknown_word_bank_raises() -> None:
    banks = WordBankService(InMemoryDocumentStore("wordBanks"))
    with pytest.raises(WordBankNotFoundError):
        asyncio.run(_game(word_banks=banks).open_room("ABC123", word_bank_id="missing"))
    with pytest.raises(WordBankNotFoundError):
        asyncio.run(_game().open_room("ABC123", word_bank_id="missing"))


def test_events_are_recorded_for_each_mutation() -> None:
    log = EventLog()
    game = _game(on_event=log.record)
    room = asyncio.run(game.open_room("ABC123"))
    asyncio.run(game.join("ABC123", player_id="p1", name="Ana", role="operative"))
    assassin = next(index for index, card in enumerate(room.board) if card.color is Color.BLACK)
    asyncio.run(game.reveal("ABC123", assassin, "p1"))
    asyncio.run(game.leave("ABC123", "p1"))
    asyncio.run(game.new_game("ABC123"))

    kinds = [event.event_type for event in log.events_for("ABC123")]
    assert kinds == [
        EventType.ROOM_CREATED,
        EventType.PLAYER_JOINED,
        EventType.CARD_REVEALED,
        EventType.GAME_OVER,
        EventType.PLAYER_LEFT,
        EventType.NEW_GAME,
    ]
    game_over = log.events_for("ABC123")[3]
    assert game_over.payload == {"winner": "blue", "loser": "red", "reason": "assassin"}


def test_subscribers_receive_every_write_until_unsubscribed() -> None:
    async def scenario() -> list[RoomState | None]:
        store = InMemoryDocumentStore("games")
        game = _game(store)
        await game.open_room("ABC123")
        seen: list[RoomState | None] = []
        unsubscribe = game.subscribe("abc123", seen.append)
        await game.join("ABC123", player_id="p1", name="Ana", role="operative")
        await game.join("ABC123", player_id="p2", name="Ben", role="operative")
        unsubscribe()
        await game.leave("ABC123", "p2")
        await store.delete("ABC123")
        return seen

    seen = asyncio.run(scenario())
    assert [len(room.players) for room in seen] == [1, 2]
    assert [room.version for room in seen] == [2, 3]


def test_observation_hides_key_from_operatives() -> None:
    game = _game()
    asyncio.run(game.open_room("ABC123"))
    asyncio.run(game.join("ABC123", player_id="op", name="Op", role="operative", team="red"))
    room = asyncio.run(game.join("ABC123", player_id="spy", name="Spy", role="spymaster", team="red"))

    operative_view = observe(room, "op")
    spymaster_view = observe(room, "spy")
    anonymous_view = observe(room)

    assert all(card.color is None for card in operative_view.cards)
    assert all(card.color is not None for card in spymaster_view.cards)
    assert anonymous_view.viewer_id is None
    assert operative_view.can_reveal is True
    assert spymaster_view.can_reveal is False
    assert operative_view.to_dict()["current_turn"] == "red"


def test_observation_shows_revealed_colors_and_final_key() -> None:
    game = _game()
    room = asyncio.run(game.open_room("ABC123"))
    asyncio.run(game.join("ABC123", player_id="op", name="Op", role="operative", team="red"))
    beige = next(index for index, card in enumerate(room.board) if card.color is Color.BEIGE)
    asyncio.run(game.reveal("ABC123", beige, "op"))

    view = asyncio.run(game.observe("ABC123", "op"))
    assert view.cards[beige].color == "beige"
    assert sum(1 for card in view.cards if card.color is not None) == 1
    assert view.can_reveal is False

    asyncio.run(game.new_game("ABC123"))
    fresh = asyncio.run(game.get_room("ABC123"))
    assassin = next(index for index, card in enumerate(fresh.board) if card.color is Color.BLACK)
    asyncio.run(game.reveal("ABC123", assassin, "op"))
    finished = asyncio.run(game.observe("ABC123", "op"))
    assert finished.phase is Phase.FINISHED
    assert finished.winner is Team.BLUE
    assert all(card.color is not None for card in finished.cards)


def test_render_shows_key_only_to_spymasters() -> None:
    game = _game()
    asyncio.run(game.open_room("ABC123"))
    asyncio.run(game.join("ABC123", player_id="spy", name="Spy", role="spymaster", team="blue"))

    plain = asyncio.run(game.render("ABC123"))
    keyed = asyncio.run(game.render("ABC123", "spy"))
    assert plain.startswith("room=ABC123 turn=red")
    assert ":black" not in plain
    assert ":black" in keyed
