"""Dashboard summary pushed to the parent app (v1 wire format, camelCase)."""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session as DBSession

from server.db.models import Flashcard, FlashcardDeck, FlashcardReview, StudySession
from study.models import as_utc, utc_now

SUMMARY_VERSION = 1


def _iso(value: Optional[datetime]) -> Optional[str]:
    return as_utc(value).isoformat() if value is not None else None


def build_dashboard_summary(
    db: DBSession,
    user_id: str,
    now: Optional[datetime] = None,
    app_id: str = "flashnote",
) -> Dict[str, Any]:
    """Counts and last-activity timestamps for one user."""
    now = as_utc(now) if now is not None else utc_now()
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

    decks_count = db.query(func.count(FlashcardDeck.id)).filter(FlashcardDeck.owner_id == user_id).scalar() or 0
    cards_count = db.query(func.count(Flashcard.id)).filter(Flashcard.user_id == user_id).scalar() or 0
    reviews_today = db.query(func.count(FlashcardReview.id)).filter(
        FlashcardReview.user_id == user_id,
        FlashcardReview.reviewed_at >= day_start,
    ).scalar() or 0

    last_session = (
        db.query(StudySession)
        .filter(StudySession.user_id == user_id)
        .order_by(
            StudySession.completed_at.is_(None),
            StudySession.completed_at.desc(),
            StudySession.started_at.desc(),
            StudySession.id.desc(),
        )
        .first()
    )
    last_study_at = None
    if last_session is not None:
        last_study_at = _iso(last_session.completed_at) or _iso(last_session.started_at)

    last_import = (
        db.query(Flashcard.created_at)
        .filter(Flashcard.user_id == user_id, Flashcard.source_type == "quiz")
        .order_by(Flashcard.created_at.desc(), Flashcard.id.desc())
        .first()
    )

    return {
        "appId": app_id,
        "version": SUMMARY_VERSION,
        "updatedAt": utc_now().isoformat(),
        "decksCount": int(decks_count),
        "cardsCount": int(cards_count),
        "reviewsToday": int(reviews_today),
        "lastStudyAt": last_study_at,
        "lastImportedFromQuizAt": _iso(last_import[0]) if last_import else None,
    }
