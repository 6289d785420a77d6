"""Owner-scoped deck CRUD."""

from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session as DBSession

from server.db.models import Flashcard, FlashcardDeck, FlashcardReview, StudySession
from study.errors import NotFound
from study.models import as_utc, utc_now

DECK_SOURCE_TYPES = ("manual", "note", "pdf", "web", "other")

_UPDATABLE_FIELDS = ("title", "description", "source_type", "source_meta", "tags", "is_active")


def _normalize_text(value: Optional[str]) -> str:
    return (value or "").strip()


def deck_to_dict(deck: FlashcardDeck, cards_count: Optional[int] = None) -> Dict[str, Any]:
    out = {
        "id": deck.id,
        "owner_id": deck.owner_id,
        "title": deck.title,
        "description": deck.description,
        "source_type": deck.source_type,
        "source_meta": deck.source_meta,
        "tags": deck.tags,
        "is_active": deck.is_active,
        "created_at": as_utc(deck.created_at).isoformat() if deck.created_at else None,
        "updated_at": as_utc(deck.updated_at).isoformat() if deck.updated_at else None,
    }
    if cards_count is not None:
        out["cards_count"] = cards_count
    return out


def require_deck(db: DBSession, user_id: str, deck_id: int) -> FlashcardDeck:
    """Return the deck if it exists and belongs to user, else raise NotFound."""
    deck = db.query(FlashcardDeck).filter(
        FlashcardDeck.id == deck_id,
        FlashcardDeck.owner_id == user_id,
    ).first()
    if deck is None:
        raise NotFound("deck", deck_id)
    return deck


def touch_deck(db: DBSession, deck: FlashcardDeck) -> None:
    deck.updated_at = utc_now()
    db.flush()


def list_decks(db: DBSession, user_id: str, include_inactive: bool = False) -> List[Dict[str, Any]]:
    """List the user's decks, most recently touched first, with card counts."""
    q = db.query(FlashcardDeck).filter(FlashcardDeck.owner_id == user_id)
    if not include_inactive:
        q = q.filter(FlashcardDeck.is_active.is_(True))
    decks = q.order_by(FlashcardDeck.updated_at.desc(), FlashcardDeck.created_at.desc()).all()

    counts = dict(
        db.query(Flashcard.deck_id, func.count(Flashcard.id))
        .filter(Flashcard.user_id == user_id)
        .group_by(Flashcard.deck_id)
        .all()
    )
    return [deck_to_dict(d, cards_count=int(counts.get(d.id, 0))) for d in decks]


def create_deck(
    db: DBSession,
    user_id: str,
    title: str,
    description: Optional[str] = None,
    source_type: str = "manual",
    source_meta: Optional[Dict[str, Any]] = None,
    tags: Optional[str] = None,
) -> FlashcardDeck:
    """Create a deck. Raises ValueError on blank title or unknown source type."""
    title = _normalize_text(title)
    if not title:
        raise ValueError("Title is required.")
    if source_type not in DECK_SOURCE_TYPES:
        raise ValueError(f"Unknown source type: {source_type}")
    now = utc_now()
    deck = FlashcardDeck(
        owner_id=user_id,
        title=title,
        description=_normalize_text(description) or None,
        source_type=source_type,
        source_meta=source_meta,
        tags=tags,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(deck)
    db.flush()
    return deck


def update_deck(db: DBSession, user_id: str, deck_id: int, **fields: Any) -> FlashcardDeck:
    """Apply supplied (non-None) fields. Returns the deck unchanged if none given."""
    deck = require_deck(db, user_id, deck_id)
    changes = {k: v for k, v in fields.items() if k in _UPDATABLE_FIELDS and v is not None}
    if not changes:
        return deck

    if "title" in changes:
        changes["title"] = _normalize_text(changes["title"])
        if not changes["title"]:
            raise ValueError("Title is required.")
    if "description" in changes:
        changes["description"] = _normalize_text(changes["description"]) or None
    if "source_type" in changes and changes["source_type"] not in DECK_SOURCE_TYPES:
        raise ValueError(f"Unknown source type: {changes['source_type']}")

    for key, value in changes.items():
        setattr(deck, key, value)
    touch_deck(db, deck)
    return deck


def delete_deck(db: DBSession, user_id: str, deck_id: int) -> None:
    """Delete a deck with its reviews, sessions and cards."""
    require_deck(db, user_id, deck_id)

    db.query(FlashcardReview).filter(
        FlashcardReview.deck_id == deck_id,
        FlashcardReview.user_id == user_id,
    ).delete(synchronize_session=False)
    db.query(StudySession).filter(
        StudySession.deck_id == deck_id,
        StudySession.user_id == user_id,
    ).delete(synchronize_session=False)
    db.query(Flashcard).filter(
        Flashcard.deck_id == deck_id,
        Flashcard.user_id == user_id,
    ).delete(synchronize_session=False)
    db.query(FlashcardDeck).filter(
        FlashcardDeck.id == deck_id,
        FlashcardDeck.owner_id == user_id,
    ).delete(synchronize_session=False)
    db.flush()
