"""Value objects for review scheduling: PriorSchedule and ReviewState."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

DEFAULT_INTERVAL_DAYS = 1
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3


def as_utc(value: datetime) -> datetime:
    """Tag naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PriorSchedule:
    """The part of a previous review the scheduler builds on."""
    interval_days: Optional[int] = None
    ease_factor: Optional[float] = None


@dataclass(frozen=True)
class ReviewState:
    """
    Schedule produced by one rating.

    interval_days >= 1, ease_factor >= 1.3, due_at = reviewed_at + interval_days.
    """
    interval_days: int
    ease_factor: float
    due_at: datetime
    reviewed_at: datetime

    def as_prior(self) -> PriorSchedule:
        return PriorSchedule(interval_days=self.interval_days, ease_factor=self.ease_factor)

    def to_dict(self) -> Dict:
        return {
            'interval_days': self.interval_days,
            'ease_factor': self.ease_factor,
            'due_at': self.due_at.isoformat(),
            'reviewed_at': self.reviewed_at.isoformat(),
        }
