"""Per-player views of a room: spymasters see the key, everyone else sees revealed colors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from engine.serialize import digest, to_serializable

from .codenames_state import Phase, Role, RoomState, Team


@dataclass(frozen=True)
class CardView:
    index: int
    word: str
    revealed: bool
    color: str | None


@dataclass(frozen=True)
class RoomObservation:
    """What one viewer is allowed to see of a room."""

    room_id: str
    viewer_id: str | None
    viewer_team: Team | None
    viewer_role: Role | None
    cards: tuple[CardView, ...]
    current_turn: Team
    phase: Phase
    remaining: dict[str, int]
    winner: Team | None
    loser: Team | None
    reason: str | None
    players: tuple[dict[str, Any], ...]
    word_bank_id: str | None
    can_reveal: bool
    version: int

    def to_dict(self) -> dict[str, Any]:
        return to_serializable(self.__dict__)

    def observation_digest(self) -> str:
        return digest(self.to_dict())


def observe(room: RoomState, viewer_id: str | None = None) -> RoomObservation:
    """Build the view for `viewer_id` (None or an unknown id gets the operative view)."""
    viewer = room.player(viewer_id) if viewer_id is not None else None
    outcome = room.outcome()
    # The key is public once the game ends.
    show_key = outcome is not None or (viewer is not None and viewer.role is Role.SPYMASTER)

    cards = tuple(
        CardView(
            index=index,
            word=card.word,
            revealed=card.revealed,
            color=card.color.value if (card.revealed or show_key) else None,
        )
        for index, card in enumerate(room.board)
    )
    can_reveal = (
        viewer is not None
        and outcome is None
        and viewer.role is Role.OPERATIVE
        and viewer.team is room.current_turn
    )
    return RoomObservation(
        room_id=room.room_id,
        viewer_id=viewer.id if viewer is not None else None,
        viewer_team=viewer.team if viewer is not None else None,
        viewer_role=viewer.role if viewer is not None else None,
        cards=cards,
        current_turn=room.current_turn,
        phase=room.phase,
        remaining=room.remaining_counts(),
        winner=outcome.winner if outcome else None,
        loser=outcome.loser if outcome else None,
        reason=outcome.reason.value if outcome else None,
        players=tuple(player.to_dict() for player in room.players),
        word_bank_id=room.word_bank_id,
        can_reveal=can_reveal,
        version=room.version,
    )
