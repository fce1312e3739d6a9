"""Board generation: fixed color distribution shuffled onto selected words."""

from __future__ import annotations

import math
import random
from typing import Sequence

from .codenames_errors import InsufficientWordsError
from .codenames_state import BOARD_SIZE, COLOR_COUNTS, Card, Color
from .codenames_words import unique_words


def color_distribution(rng: random.Random | None = None) -> list[Color]:
    """Return the 9/8/1/7 color multiset in uniformly random order."""
    colors = [color for color, count in COLOR_COUNTS.items() for _ in range(count)]
    (rng or random).shuffle(colors)
    return colors


def generate_board(
    words: Sequence[str],
    rng: random.Random | None = None,
    *,
    allow_duplicates: bool = False,
) -> tuple[Card, ...]:
    """Pair shuffled colors with shuffled words to build a fresh 25-card board.

    `words` needs at least 25 distinct entries; extra words are sampled away.
    `allow_duplicates` accepts exactly 25 words that may repeat, which is what a
    tiny, exhausted word bank produces.
    """
    rng = rng or random.Random()
    if allow_duplicates:
        picked = [str(word).strip() for word in words if str(word).strip()]
        if len(picked) < BOARD_SIZE:
            raise InsufficientWordsError(required=BOARD_SIZE, available=len(picked))
        picked = picked[:BOARD_SIZE]
        rng.shuffle(picked)
    else:
        pool = unique_words(words)
        if len(pool) < BOARD_SIZE:
            raise InsufficientWordsError(required=BOARD_SIZE, available=len(pool))
        picked = rng.sample(pool, BOARD_SIZE)

    colors = color_distribution(rng)
    return tuple(Card(word=word, color=color) for word, color in zip(picked, colors, strict=True))


def render(board: Sequence[Card], *, show_colors: bool = False) -> str:
    """Render a board grid for debugging; revealed cards always show their color."""
    size = len(board)
    cols = int(math.sqrt(size)) or 1
    if cols * cols != size:
        cols = min(5, size) or 1
    tokens: list[str] = []
    for index, card in enumerate(board):
        if card.revealed:
            token = f"{card.word}:{card.color.value.upper()}"
        elif show_colors:
            token = f"{card.word}:{card.color.value}"
        else:
            token = card.word
        tokens.append(f"{index:02d}:{token}")
    rows = [" | ".join(tokens[row : row + cols]) for row in range(0, len(tokens), cols)]
    return "\n".join(rows)
