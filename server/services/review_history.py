"""Append-only review log: latest schedule per card, appends, due queries."""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session as DBSession

from server.db.models import Flashcard, FlashcardDeck, FlashcardReview, StudySession
from study.errors import NotFound
from study.models import ReviewState, as_utc


@dataclass
class NewReview:
    """A rating plus the schedule computed for it, ready to persist."""
    user_id: str
    card_id: int
    deck_id: int
    rating: int
    state: ReviewState
    session_id: Optional[int] = None


def review_to_state(row: FlashcardReview) -> ReviewState:
    return ReviewState(
        interval_days=row.interval_days,
        ease_factor=row.ease_factor,
        due_at=as_utc(row.due_at),
        reviewed_at=as_utc(row.reviewed_at),
    )


class ReviewHistoryStore:
    """
    Owner-scoped view over flashcard_reviews.

    The current schedule for a card is the row with the latest reviewed_at,
    ties broken by highest id. Rows are never updated; a correction is a new
    row. The "next due" of a card is always derived from that latest row,
    never stored separately.
    """

    def __init__(self, db: DBSession):
        self.db = db

    def _latest_row(self, user_id: str, card_id: int) -> Optional[FlashcardReview]:
        return (
            self.db.query(FlashcardReview)
            .filter(FlashcardReview.user_id == user_id, FlashcardReview.card_id == card_id)
            .order_by(FlashcardReview.reviewed_at.desc(), FlashcardReview.id.desc())
            .first()
        )

    def latest_state_for(self, user_id: str, card_id: int) -> Optional[ReviewState]:
        """Most recent schedule for the card, or None if never reviewed by this user."""
        row = self._latest_row(user_id, card_id)
        return review_to_state(row) if row is not None else None

    def append(self, event: NewReview) -> FlashcardReview:
        """
        Persist one review event.

        Raises:
            NotFound if the card or deck is not owned by event.user_id, the card
            is not in event.deck_id, or a session_id is given that does not
            belong to the same user and deck.
        """
        card = self.db.query(Flashcard).filter(
            Flashcard.id == event.card_id,
            Flashcard.user_id == event.user_id,
            Flashcard.deck_id == event.deck_id,
        ).first()
        if card is None:
            raise NotFound("card", event.card_id)

        deck = self.db.query(FlashcardDeck).filter(
            FlashcardDeck.id == event.deck_id,
            FlashcardDeck.owner_id == event.user_id,
        ).first()
        if deck is None:
            raise NotFound("deck", event.deck_id)

        if event.session_id is not None:
            session = self.db.query(StudySession).filter(
                StudySession.id == event.session_id,
                StudySession.user_id == event.user_id,
                StudySession.deck_id == event.deck_id,
            ).first()
            if session is None:
                raise NotFound("session", event.session_id)

        row = FlashcardReview(
            user_id=event.user_id,
            deck_id=event.deck_id,
            card_id=event.card_id,
            session_id=event.session_id,
            rating=event.rating,
            reviewed_at=as_utc(event.state.reviewed_at),
            due_at=as_utc(event.state.due_at),
            interval_days=event.state.interval_days,
            ease_factor=event.state.ease_factor,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def due_before(
        self,
        user_id: str,
        timestamp: datetime,
        deck_id: Optional[int] = None,
    ) -> List[int]:
        """
        Card ids whose latest schedule is due at or before timestamp.

        Ordered by due_at, then card id. Inactive cards are left out.
        """
        rank = func.row_number().over(
            partition_by=FlashcardReview.card_id,
            order_by=(FlashcardReview.reviewed_at.desc(), FlashcardReview.id.desc()),
        ).label("rank")
        latest = (
            self.db.query(
                FlashcardReview.card_id.label("card_id"),
                FlashcardReview.due_at.label("due_at"),
                rank,
            )
            .filter(FlashcardReview.user_id == user_id)
            .subquery()
        )

        q = (
            self.db.query(latest.c.card_id)
            .join(Flashcard, Flashcard.id == latest.c.card_id)
            .filter(
                latest.c.rank == 1,
                latest.c.due_at <= as_utc(timestamp),
                Flashcard.user_id == user_id,
                Flashcard.is_active.is_(True),
            )
        )
        if deck_id is not None:
            q = q.filter(Flashcard.deck_id == deck_id)
        rows = q.order_by(latest.c.due_at.asc(), latest.c.card_id.asc()).all()
        return [r[0] for r in rows]

    def history_for(self, user_id: str, card_id: int, limit: Optional[int] = None) -> List[FlashcardReview]:
        """Full review log for a card, newest first."""
        q = (
            self.db.query(FlashcardReview)
            .filter(FlashcardReview.user_id == user_id, FlashcardReview.card_id == card_id)
            .order_by(FlashcardReview.reviewed_at.desc(), FlashcardReview.id.desc())
        )
        if limit is not None:
            q = q.limit(limit)
        return q.all()

    def count_for_session(self, user_id: str, session_id: int) -> int:
        return (
            self.db.query(func.count(FlashcardReview.id))
            .filter(FlashcardReview.user_id == user_id, FlashcardReview.session_id == session_id)
            .scalar()
        ) or 0
