"""Database layer: SQLAlchemy models and session."""

from server.db.models import Base, User, Session, FlashcardDeck, Flashcard, StudySession, FlashcardReview
from server.db.session import get_db, init_db

__all__ = [
    "Base",
    "User",
    "Session",
    "FlashcardDeck",
    "Flashcard",
    "StudySession",
    "FlashcardReview",
    "get_db",
    "init_db",
]
