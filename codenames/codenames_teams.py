"""Team assignment and the add/remove rules for a room's player list."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Sequence

from .codenames_errors import InvalidPlayerDataError
from .codenames_state import Player, Role, Team, utc_now_iso

MAX_NAME_LENGTH = 40


def parse_role(raw: Any) -> Role:
    if isinstance(raw, Role):
        return raw
    try:
        return Role(str(raw).strip().lower())
    except ValueError as exc:
        raise InvalidPlayerDataError(f"Role must be 'spymaster' or 'operative'; received {raw!r}") from exc


def parse_team(raw: Any) -> Team | None:
    if raw is None or isinstance(raw, Team):
        return raw
    value = str(raw).strip().lower()
    if not value:
        return None
    try:
        return Team(value)
    except ValueError as exc:
        raise InvalidPlayerDataError(f"Team must be 'red' or 'blue'; received {raw!r}") from exc


def assign_team(existing_players: Sequence[Player], requested_team: Team | None, role: Role) -> Team:
    """Pick a team for a joining player.

    An explicit choice always wins. Otherwise the smaller team gets the player,
    red on a tie. Spymasters must choose.
    """
    if requested_team is not None:
        return requested_team
    if role is Role.SPYMASTER:
        raise InvalidPlayerDataError("Spymasters must choose a team")
    red_count = sum(1 for player in existing_players if player.team is Team.RED)
    blue_count = sum(1 for player in existing_players if player.team is Team.BLUE)
    return Team.RED if red_count <= blue_count else Team.BLUE


def build_player(
    existing_players: Sequence[Player],
    *,
    player_id: str,
    name: str,
    role: Any,
    team: Any = None,
    joined_at: str | None = None,
) -> Player:
    """Validate join data and return the seat the player would occupy."""
    player_id = (player_id or "").strip()
    if not player_id:
        raise InvalidPlayerDataError("Player id is required")
    display_name = (name or "").strip()
    if not display_name:
        raise InvalidPlayerDataError("Player name is required")
    if len(display_name) > MAX_NAME_LENGTH:
        raise InvalidPlayerDataError(f"Player name must be at most {MAX_NAME_LENGTH} characters")
    parsed_role = parse_role(role)
    parsed_team = assign_team(existing_players, parse_team(team), parsed_role)
    return Player(
        id=player_id,
        name=display_name,
        team=parsed_team,
        role=parsed_role,
        joined_at=joined_at or utc_now_iso(),
    )


def join_players(existing_players: Sequence[Player], player: Player) -> tuple[Player, ...]:
    """Add `player` unless its id is already seated (the stored seat is kept)."""
    if any(existing.id == player.id for existing in existing_players):
        return tuple(existing_players)
    return (*existing_players, player)


def leave_players(existing_players: Sequence[Player], player_id: str) -> tuple[Player, ...]:
    """Remove the seat for `player_id`; unknown ids leave the list unchanged."""
    return tuple(player for player in existing_players if player.id != player_id)


def swap_player_teams(players: Sequence[Player]) -> tuple[Player, ...]:
    """Move every player to the other team, keeping roles."""
    return tuple(replace(player, team=player.team.other) for player in players)


def verify_identity(
    stored: Player | None,
    *,
    player_id: str,
    claimed_team: Any = None,
    claimed_role: Any = None,
) -> Player:
    """Return the stored seat, rejecting callers whose claimed team/role disagree with it."""
    if stored is None:
        raise InvalidPlayerDataError(f"Player {player_id!r} has not joined this room")
    team = parse_team(claimed_team)
    if team is not None and team is not stored.team:
        raise InvalidPlayerDataError(
            f"Player {player_id!r} is on {stored.team.value}, not {team.value}; teams cannot change mid-session"
        )
    if claimed_role is not None:
        role = parse_role(claimed_role)
        if role is not stored.role:
            raise InvalidPlayerDataError(
                f"Player {player_id!r} is a {stored.role.value}, not a {role.value}; roles cannot change mid-session"
            )
    return stored
