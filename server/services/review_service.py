"""Rating a card and listing due cards -- all return JSON-serializable dicts."""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session as DBSession

from server.db.models import Flashcard, FlashcardReview, StudySession
from server.services.card_service import require_card
from server.services.deck_service import require_deck
from server.services.review_history import NewReview, ReviewHistoryStore, review_to_state
from study.models import as_utc, utc_now
from study.ratings import is_pass, parse_rating, rating_label
from study.scheduler import schedule

logger = logging.getLogger("flashnote.review")

# In-process serialization of ratings per (user, card).
# Entries are [lock, holders] and are dropped when the last holder leaves.
_locks_guard = threading.Lock()
_card_locks: Dict[Tuple[str, int], List] = {}


@contextmanager
def card_lock(user_id: str, card_id: int) -> Iterator[None]:
    """
    Hold a per-(user, card) lock around read-prior / schedule / append / commit.

    Only serializes within one process; across processes duplicate ratings
    still race and both rows are kept.
    """
    key = (user_id, card_id)
    with _locks_guard:
        entry = _card_locks.get(key)
        if entry is None:
            entry = _card_locks[key] = [threading.Lock(), 0]
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _locks_guard:
            entry[1] -= 1
            if entry[1] == 0:
                del _card_locks[key]


def review_to_dict(row: FlashcardReview) -> Dict[str, Any]:
    out = {
        "id": row.id,
        "card_id": row.card_id,
        "deck_id": row.deck_id,
        "session_id": row.session_id,
        "rating": row.rating,
        "rating_label": rating_label(row.rating),
    }
    out.update(review_to_state(row).to_dict())
    return out


def review_card(
    db: DBSession,
    user_id: str,
    card_id: int,
    rating: Any,
    session_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Rate a card: fetch its latest schedule, compute the next one, append it.

    Raises:
        InvalidRating if rating is outside the scale (checked before any read).
        NotFound if the card, deck or session is missing or not owned.
    """
    quality = parse_rating(rating)
    card = require_card(db, user_id, card_id)

    history = ReviewHistoryStore(db)
    prior = history.latest_state_for(user_id, card.id)
    state = schedule(quality, prior.as_prior() if prior else None, now=now)

    row = history.append(NewReview(
        user_id=user_id,
        card_id=card.id,
        deck_id=card.deck_id,
        rating=quality,
        state=state,
        session_id=session_id,
    ))

    if session_id is not None:
        session = db.get(StudySession, session_id)
        session.total_cards_seen = (session.total_cards_seen or 0) + 1
        if is_pass(quality):
            session.correct_count = (session.correct_count or 0) + 1
        else:
            session.wrong_count = (session.wrong_count or 0) + 1
        db.flush()

    logger.debug(
        "Reviewed card %s quality=%s interval=%s ease=%s cold_start=%s",
        card.id, quality, state.interval_days, state.ease_factor, prior is None,
    )
    return review_to_dict(row)


def list_reviews(db: DBSession, user_id: str, card_id: int, limit: Optional[int] = None) -> Dict[str, Any]:
    card = require_card(db, user_id, card_id)
    rows = ReviewHistoryStore(db).history_for(user_id, card.id, limit=limit)
    return {"card_id": card.id, "reviews": [review_to_dict(r) for r in rows]}


def get_due_cards(
    db: DBSession,
    user_id: str,
    deck_id: Optional[int] = None,
    now: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Cards whose latest schedule is due, plus how many active cards were never reviewed.

    Returns:
        {due_count, new_count, cards: [{card_id, deck_id, front, back, due_at, interval_days, ease_factor}]}
    """
    if deck_id is not None:
        require_deck(db, user_id, deck_id)

    as_of = as_utc(now) if now is not None else utc_now()
    history = ReviewHistoryStore(db)
    due_ids = history.due_before(user_id, as_of, deck_id=deck_id)
    due_count = len(due_ids)
    if limit is not None:
        due_ids = due_ids[:limit]

    cards_by_id = {
        c.id: c for c in db.query(Flashcard).filter(Flashcard.id.in_(due_ids)).all()
    } if due_ids else {}

    cards = []
    for cid in due_ids:
        card = cards_by_id.get(cid)
        state = history.latest_state_for(user_id, cid)
        if card is None or state is None:
            continue
        cards.append({
            "card_id": card.id,
            "deck_id": card.deck_id,
            "front": card.front,
            "back": card.back,
            "hint": card.hint,
            "due_at": state.due_at.isoformat(),
            "interval_days": state.interval_days,
            "ease_factor": state.ease_factor,
        })

    reviewed = select(FlashcardReview.card_id).where(FlashcardReview.user_id == user_id)
    new_q = db.query(Flashcard.id).filter(
        Flashcard.user_id == user_id,
        Flashcard.is_active.is_(True),
        ~Flashcard.id.in_(reviewed),
    )
    if deck_id is not None:
        new_q = new_q.filter(Flashcard.deck_id == deck_id)

    return {
        "as_of": as_of.isoformat(),
        "due_count": due_count,
        "new_count": new_q.count(),
        "cards": cards,
    }
