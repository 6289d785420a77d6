"""Study sessions: an optional grouping label over review events."""

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session as DBSession

from server.db.models import StudySession
from server.services.deck_service import require_deck
from server.services.review_history import ReviewHistoryStore
from study.errors import NotFound
from study.models import as_utc, utc_now


def session_to_dict(session: StudySession) -> Dict[str, Any]:
    return {
        "id": session.id,
        "deck_id": session.deck_id,
        "started_at": as_utc(session.started_at).isoformat() if session.started_at else None,
        "completed_at": as_utc(session.completed_at).isoformat() if session.completed_at else None,
        "total_cards_seen": session.total_cards_seen,
        "correct_count": session.correct_count,
        "wrong_count": session.wrong_count,
        "summary": session.summary,
    }


def require_session(db: DBSession, user_id: str, session_id: int) -> StudySession:
    session = db.query(StudySession).filter(
        StudySession.id == session_id,
        StudySession.user_id == user_id,
    ).first()
    if session is None:
        raise NotFound("session", session_id)
    return session


def start_session(db: DBSession, user_id: str, deck_id: int) -> StudySession:
    deck = require_deck(db, user_id, deck_id)
    session = StudySession(
        user_id=user_id,
        deck_id=deck.id,
        started_at=utc_now(),
        total_cards_seen=0,
        correct_count=0,
        wrong_count=0,
    )
    db.add(session)
    db.flush()
    return session


def complete_session(
    db: DBSession,
    user_id: str,
    session_id: int,
    summary: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Mark a session completed.

    Returns:
        {session, reviewed, deck_title}, where reviewed counts review events
        logged against the session.
    """
    session = require_session(db, user_id, session_id)
    deck = require_deck(db, user_id, session.deck_id)

    session.completed_at = utc_now()
    if summary is not None:
        session.summary = summary
    db.flush()

    reviewed = ReviewHistoryStore(db).count_for_session(user_id, session.id)
    return {
        "session": session_to_dict(session),
        "reviewed": reviewed,
        "deck_id": deck.id,
        "deck_title": deck.title,
    }
