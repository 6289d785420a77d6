"""Owner-scoped flashcard CRUD and quiz-question import."""

from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session as DBSession

from server.db.models import Flashcard, FlashcardReview
from server.services.deck_service import require_deck, touch_deck
from server.services.quiz_client import QuizQuestion
from study.errors import NotFound
from study.models import as_utc, utc_now

CARD_SOURCE_TYPES = ("manual", "quiz", "ai")


def _normalize_text(value: Optional[str]) -> str:
    return (value or "").strip()


def card_to_dict(card: Flashcard) -> Dict[str, Any]:
    return {
        "id": card.id,
        "deck_id": card.deck_id,
        "display_order": card.display_order,
        "front": card.front,
        "back": card.back,
        "hint": card.hint,
        "extra": card.extra,
        "source_type": card.source_type,
        "source_ref_id": card.source_ref_id,
        "is_active": card.is_active,
        "created_at": as_utc(card.created_at).isoformat() if card.created_at else None,
        "updated_at": as_utc(card.updated_at).isoformat() if card.updated_at else None,
    }


def require_card(db: DBSession, user_id: str, card_id: int) -> Flashcard:
    """Return the card if it exists and belongs to user, else raise NotFound."""
    card = db.query(Flashcard).filter(
        Flashcard.id == card_id,
        Flashcard.user_id == user_id,
    ).first()
    if card is None:
        raise NotFound("card", card_id)
    return card


def list_cards(db: DBSession, user_id: str, deck_id: int, include_inactive: bool = False) -> List[Flashcard]:
    require_deck(db, user_id, deck_id)
    q = db.query(Flashcard).filter(Flashcard.deck_id == deck_id, Flashcard.user_id == user_id)
    if not include_inactive:
        q = q.filter(Flashcard.is_active.is_(True))
    return q.order_by(Flashcard.display_order.asc(), Flashcard.id.asc()).all()


def create_card(
    db: DBSession,
    user_id: str,
    deck_id: int,
    front: str,
    back: str,
    hint: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
    display_order: int = 0,
    source_type: str = "manual",
    source_ref_id: Optional[str] = None,
) -> Flashcard:
    """Add a card to an owned deck. Raises ValueError on blank front/back."""
    deck = require_deck(db, user_id, deck_id)
    front_text = _normalize_text(front)
    back_text = _normalize_text(back)
    if not front_text or not back_text:
        raise ValueError("Both front and back text are required.")
    if source_type not in CARD_SOURCE_TYPES:
        raise ValueError(f"Unknown source type: {source_type}")

    now = utc_now()
    card = Flashcard(
        deck_id=deck.id,
        user_id=user_id,
        display_order=display_order,
        front=front_text,
        back=back_text,
        hint=_normalize_text(hint) or None,
        extra=extra,
        source_type=source_type,
        source_ref_id=source_ref_id,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(card)
    touch_deck(db, deck)
    return card


def update_card(
    db: DBSession,
    user_id: str,
    card_id: int,
    front: Optional[str] = None,
    back: Optional[str] = None,
    hint: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
    display_order: Optional[int] = None,
    is_active: Optional[bool] = None,
) -> Flashcard:
    card = require_card(db, user_id, card_id)

    if front is not None:
        card.front = _normalize_text(front)
    if back is not None:
        card.back = _normalize_text(back)
    if not card.front or not card.back:
        raise ValueError("Both front and back text are required.")
    if hint is not None:
        card.hint = _normalize_text(hint) or None
    if extra is not None:
        card.extra = extra
    if display_order is not None:
        card.display_order = display_order
    if is_active is not None:
        card.is_active = is_active

    card.updated_at = utc_now()
    touch_deck(db, require_deck(db, user_id, card.deck_id))
    return card


def archive_card(db: DBSession, user_id: str, card_id: int) -> Flashcard:
    """Hide a card from study without touching its review history."""
    return update_card(db, user_id, card_id, is_active=False)


def delete_card(db: DBSession, user_id: str, card_id: int) -> None:
    """Delete a card and its reviews."""
    card = require_card(db, user_id, card_id)
    deck_id = card.deck_id

    db.query(FlashcardReview).filter(
        FlashcardReview.card_id == card_id,
        FlashcardReview.user_id == user_id,
    ).delete(synchronize_session=False)
    db.delete(card)
    db.flush()
    touch_deck(db, require_deck(db, user_id, deck_id))


def import_quiz_questions(
    db: DBSession,
    user_id: str,
    deck_id: int,
    questions: Iterable[QuizQuestion],
) -> Dict[str, int]:
    """
    Insert one card per quiz question not already in the deck.

    Dedupes on source_ref_id (the quiz question id). Questions with blank
    text or answer are skipped.

    Returns:
        {imported, skipped}
    """
    deck = require_deck(db, user_id, deck_id)
    questions = list(questions)
    if not questions:
        return {"imported": 0, "skipped": 0}

    question_ids = [q.question_id for q in questions]
    existing = {
        row[0] for row in db.query(Flashcard.source_ref_id).filter(
            Flashcard.deck_id == deck.id,
            Flashcard.user_id == user_id,
            Flashcard.source_ref_id.in_(question_ids),
        ).all()
        if row[0]
    }

    now = utc_now()
    imported = 0
    seen = set(existing)
    for q in questions:
        if q.question_id in seen:
            continue
        front = _normalize_text(q.question_text)
        answer = _normalize_text(q.answer_text)
        explanation = _normalize_text(q.explanation)
        back = f"{answer}\n\n{explanation}" if explanation else answer
        if not front or not answer:
            continue
        seen.add(q.question_id)
        db.add(Flashcard(
            deck_id=deck.id,
            user_id=user_id,
            front=front,
            back=back,
            source_type="quiz",
            source_ref_id=q.question_id,
            is_active=True,
            created_at=now,
            updated_at=now,
        ))
        imported += 1

    if imported:
        touch_deck(db, deck)
    return {"imported": imported, "skipped": len(questions) - imported}
