"""SM-2 family spaced repetition scheduler."""

import math
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from study.errors import InvalidRating
from study.models import (
    DEFAULT_EASE_FACTOR,
    DEFAULT_INTERVAL_DAYS,
    MIN_EASE_FACTOR,
    PriorSchedule,
    ReviewState,
    as_utc,
    utc_now,
)
from study.ratings import MAX_QUALITY, MIN_QUALITY, PASS_THRESHOLD

# First successful review without a prior schedule
SEED_INTERVAL_BORDERLINE = 2
SEED_INTERVAL_GOOD = 4

LAPSE_EASE_PENALTY = 0.20


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _ease_after_success(ease: float, quality: int) -> float:
    # EF' = EF + (0.1 - (5-q) * (0.08 + (5-q) * 0.02))
    miss = MAX_QUALITY - quality
    return max(MIN_EASE_FACTOR, ease + (0.1 - miss * (0.08 + miss * 0.02)))


def schedule(
    quality: int,
    prior: Optional[PriorSchedule] = None,
    now: Optional[datetime] = None,
) -> ReviewState:
    """
    Compute the next schedule for a card.

    Args:
        quality: Canonical grade 0-5 (see study.ratings.parse_rating)
        prior:   Most recent schedule for the card, or None on cold start
        now:     Review time; defaults to the current UTC time

    Returns:
        ReviewState with interval_days, ease_factor, due_at, reviewed_at

    Raises:
        InvalidRating if quality is not an int in 0-5.
    """
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidRating(quality)
    if not (MIN_QUALITY <= quality <= MAX_QUALITY):
        raise InvalidRating(quality)

    reviewed_at = as_utc(now) if now is not None else utc_now()

    has_interval = bool(prior and prior.interval_days and prior.interval_days > 0)
    prev_interval = prior.interval_days if has_interval else DEFAULT_INTERVAL_DAYS
    if prior and prior.ease_factor and prior.ease_factor > 0:
        prev_ease = prior.ease_factor
    else:
        prev_ease = DEFAULT_EASE_FACTOR

    if quality < PASS_THRESHOLD:
        interval = 1
        ease = max(MIN_EASE_FACTOR, prev_ease - LAPSE_EASE_PENALTY)
    else:
        ease = _ease_after_success(prev_ease, quality)
        if has_interval:
            interval = max(1, _round_half_up(prev_interval * ease))
        elif quality > PASS_THRESHOLD:
            interval = SEED_INTERVAL_GOOD
        else:
            interval = SEED_INTERVAL_BORDERLINE

    return ReviewState(
        interval_days=interval,
        ease_factor=round(ease, 4),
        due_at=reviewed_at + timedelta(days=interval),
        reviewed_at=reviewed_at,
    )


def replay(
    qualities: Iterable[int],
    prior: Optional[PriorSchedule] = None,
    now: Optional[datetime] = None,
    step_days: Optional[int] = None,
) -> List[ReviewState]:
    """
    Fold a sequence of grades through schedule().

    Each review happens at the previous due date, or every step_days days
    from now when step_days is given.
    """
    at = as_utc(now) if now is not None else utc_now()
    states: List[ReviewState] = []
    for i, quality in enumerate(qualities):
        if step_days is not None:
            at_i = at + timedelta(days=step_days * i)
        elif states:
            at_i = states[-1].due_at
        else:
            at_i = at
        state = schedule(quality, prior, now=at_i)
        states.append(state)
        prior = state.as_prior()
    return states
