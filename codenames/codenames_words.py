"""Word selection for new boards, avoiding repeats within a room."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import AbstractSet, Iterable, Sequence

from .codenames_errors import InsufficientWordsError
from .codenames_state import BOARD_SIZE

logger = logging.getLogger(__name__)

DEFAULT_WORDS: tuple[str, ...] = (
    "apple",
    "banana",
    "orange",
    "grape",
    "strawberry",
    "tiger",
    "lion",
    "elephant",
    "monkey",
    "rabbit",
    "airplane",
    "train",
    "car",
    "boat",
    "bicycle",
    "sun",
    "moon",
    "star",
    "cloud",
    "rain",
    "book",
    "pen",
    "table",
    "chair",
    "lamp",
)

# Seed list for the shared default bank.
DEFAULT_BANK_NAME = "Codenames default word bank (100 words)"
DEFAULT_BANK_WORDS: tuple[str, ...] = DEFAULT_WORDS + (
    "river", "mountain", "forest", "desert", "island",
    "ocean", "volcano", "bridge", "castle", "tower",
    "piano", "guitar", "drum", "violin", "trumpet",
    "doctor", "teacher", "pilot", "chef", "farmer",
    "rocket", "robot", "computer", "phone", "camera",
    "pizza", "bread", "cheese", "coffee", "honey",
    "dragon", "ghost", "wizard", "knight", "pirate",
    "school", "hospital", "museum", "library", "market",
    "winter", "summer", "spring", "autumn", "snow",
    "shark", "whale", "dolphin", "penguin", "eagle",
    "diamond", "gold", "silver", "iron", "glass",
    "key", "lock", "door", "window", "mirror",
    "clock", "watch", "map", "compass", "anchor",
    "crown", "ring", "shadow", "fire", "ice",
    "heart", "hand", "eye", "tooth", "bone",
)


@dataclass(frozen=True)
class WordSelection:
    """Words chosen for one board plus the room's updated used-word set."""

    words: tuple[str, ...]
    used_words: frozenset[str]
    exclusions_reset: bool = False
    has_duplicates: bool = False


def unique_words(words: Iterable[str]) -> list[str]:
    """Trim, drop blanks, and de-duplicate while keeping first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for raw in words:
        word = str(raw).strip()
        if word and word not in seen:
            seen.add(word)
            result.append(word)
    return result


def select_words(
    bank_words: Sequence[str],
    count: int,
    excluded: AbstractSet[str],
    rng: random.Random | None = None,
) -> list[str]:
    """Choose `count` words, preferring ones not in `excluded`.

    Order of fallbacks:
    1. enough unused words: sample from them only;
    2. some unused words: take them all, top up from the rest of the bank;
    3. no unused words: ignore the exclusions and sample the whole bank.
    A bank with fewer than `count` distinct words is padded with repeats.
    """
    rng = rng or random.Random()
    pool = unique_words(bank_words)
    if not pool:
        raise InsufficientWordsError(required=count, available=0)

    fresh = [word for word in pool if word not in excluded]
    if not fresh:
        return _sample_padded(pool, count, rng)
    if len(fresh) >= count:
        return rng.sample(fresh, count)

    chosen = list(fresh)
    rng.shuffle(chosen)
    taken = set(chosen)
    leftovers = [word for word in pool if word not in taken]
    needed = count - len(chosen)
    chosen.extend(rng.sample(leftovers, min(needed, len(leftovers))))
    if len(chosen) < count:
        chosen.extend(rng.choices(pool, k=count - len(chosen)))
    return chosen


def _sample_padded(pool: Sequence[str], count: int, rng: random.Random) -> list[str]:
    if len(pool) >= count:
        return rng.sample(pool, count)
    chosen = list(pool)
    rng.shuffle(chosen)
    chosen.extend(rng.choices(pool, k=count - len(chosen)))
    return chosen


def choose_board_words(
    bank_words: Sequence[str] | None,
    used_words: AbstractSet[str],
    rng: random.Random | None = None,
    *,
    count: int = BOARD_SIZE,
) -> WordSelection:
    """Pick the words for a room's next board and fold them into `used_words`.

    `bank_words=None` means the built-in default pool, used verbatim.
    """
    rng = rng or random.Random()
    if bank_words is None:
        words = list(DEFAULT_WORDS)
        rng.shuffle(words)
        selected = words[:count]
        return WordSelection(words=tuple(selected), used_words=frozenset(used_words) | frozenset(selected))

    pool = unique_words(bank_words)
    exclusions_reset = bool(pool) and all(word in used_words for word in pool)
    selected = select_words(pool, count, used_words, rng)
    base = frozenset() if exclusions_reset else frozenset(used_words)
    has_duplicates = len(set(selected)) < len(selected)
    if exclusions_reset:
        logger.info("Word bank exhausted for room; clearing used words")
    if has_duplicates:
        logger.warning("Word bank has %d distinct words; board will repeat words", len(pool))
    return WordSelection(
        words=tuple(selected),
        used_words=base | frozenset(selected),
        exclusions_reset=exclusions_reset,
        has_duplicates=has_duplicates,
    )
