"""Codenames package exports."""

from .codenames_board import color_distribution, generate_board
from .codenames_directory import RoomDirectory, RoomSummary
from .codenames_errors import (
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
from .codenames_game import KEEP_WORD_BANK, CodenamesGame, RevealOutcome, apply_reveal
from .codenames_observation import RoomObservation, observe
from .codenames_state import Card, Color, Phase, Player, Role, RoomState, Team, WinReason
from .codenames_teams import assign_team
from .codenames_wordbanks import WordBank, WordBankService
from .codenames_words import DEFAULT_BANK_NAME, DEFAULT_BANK_WORDS, DEFAULT_WORDS, select_words

__all__ = [
    "AlreadyRevealedError",
    "Card",
    "CodenamesGame",
    "Color",
    "ConcurrentUpdateError",
    "DEFAULT_BANK_NAME",
    "DEFAULT_BANK_WORDS",
    "DEFAULT_WORDS",
    "ForbiddenRoleError",
    "GameOverError",
    "InsufficientWordsError",
    "InvalidCardIndexError",
    "InvalidPlayerDataError",
    "InvalidRoomIdError",
    "KEEP_WORD_BANK",
    "MalformedStateError",
    "Phase",
    "Player",
    "RevealOutcome",
    "Role",
    "RoomDirectory",
    "RoomNotFoundError",
    "RoomObservation",
    "RoomState",
    "RoomSummary",
    "Team",
    "WinReason",
    "WordBank",
    "WordBankExistsError",
    "WordBankNotFoundError",
    "WordBankService",
    "WrongTurnError",
    "apply_reveal",
    "assign_team",
    "color_distribution",
    "generate_board",
    "observe",
    "select_words",
]
