"""Rating scale: canonical 0-5 quality plus the four-button categorical encoding."""

from enum import Enum
from typing import Any, Dict

from study.errors import InvalidRating

MIN_QUALITY = 0
MAX_QUALITY = 5

# quality >= PASS_THRESHOLD counts as "remembered"
PASS_THRESHOLD = 3


class Rating(str, Enum):
    """Buttons shown after a card is revealed."""
    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"


# Categorical -> canonical quality. Only the integer is ever persisted.
RATING_TO_QUALITY: Dict[Rating, int] = {
    Rating.AGAIN: 0,
    Rating.HARD: 3,
    Rating.GOOD: 4,
    Rating.EASY: 5,
}


def parse_rating(value: Any) -> int:
    """
    Normalize a rating to the canonical 0-5 quality.

    Accepts an int 0-5, a numeric string, or a categorical name
    (case-insensitive). Everything else raises InvalidRating.
    """
    if isinstance(value, bool):
        raise InvalidRating(value)
    if isinstance(value, Rating):
        return RATING_TO_QUALITY[value]
    if isinstance(value, int):
        quality = value
    elif isinstance(value, str):
        text = value.strip().lower()
        if text.isdigit():
            quality = int(text)
        else:
            try:
                return RATING_TO_QUALITY[Rating(text)]
            except ValueError:
                raise InvalidRating(value) from None
    else:
        raise InvalidRating(value)

    if not (MIN_QUALITY <= quality <= MAX_QUALITY):
        raise InvalidRating(value)
    return quality


def is_pass(quality: int) -> bool:
    return quality >= PASS_THRESHOLD


def rating_label(quality: int) -> str:
    """Nearest button label for a stored quality."""
    if quality < PASS_THRESHOLD:
        return Rating.AGAIN.value
    if quality == PASS_THRESHOLD:
        return Rating.HARD.value
    if quality == 4:
        return Rating.GOOD.value
    return Rating.EASY.value
