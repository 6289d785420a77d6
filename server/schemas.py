"""Pydantic request/response schemas for the FlashNote API."""

from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field


# ---- Auth ----

class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class UserResponse(BaseModel):
    id: str
    email: str


# ---- Decks ----

DeckSourceType = Literal["manual", "note", "pdf", "web", "other"]


class DeckCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=512)
    description: Optional[str] = Field(default=None, max_length=5000)
    source_type: DeckSourceType = "manual"
    source_meta: Optional[Dict[str, Any]] = None
    tags: Optional[str] = Field(default=None, max_length=512)


class DeckUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=512)
    description: Optional[str] = Field(default=None, max_length=5000)
    source_type: Optional[DeckSourceType] = None
    source_meta: Optional[Dict[str, Any]] = None
    tags: Optional[str] = Field(default=None, max_length=512)
    is_active: Optional[bool] = None


class DeckSchema(BaseModel):
    id: int
    owner_id: str
    title: str
    description: Optional[str] = None
    source_type: str
    source_meta: Optional[Dict[str, Any]] = None
    tags: Optional[str] = None
    is_active: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    cards_count: Optional[int] = None


class DeckResponse(BaseModel):
    deck: DeckSchema


class DeckListResponse(BaseModel):
    items: List[DeckSchema]


# ---- Cards ----

class CardCreateRequest(BaseModel):
    front: str = Field(..., min_length=1, max_length=10000)
    back: str = Field(..., min_length=1, max_length=10000)
    hint: Optional[str] = Field(default=None, max_length=2000)
    extra: Optional[Dict[str, Any]] = None
    display_order: int = Field(default=0, ge=0)


class CardUpdateRequest(BaseModel):
    front: Optional[str] = Field(default=None, min_length=1, max_length=10000)
    back: Optional[str] = Field(default=None, min_length=1, max_length=10000)
    hint: Optional[str] = Field(default=None, max_length=2000)
    extra: Optional[Dict[str, Any]] = None
    display_order: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class CardSchema(BaseModel):
    id: int
    deck_id: int
    display_order: int
    front: str
    back: str
    hint: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None
    source_type: str
    source_ref_id: Optional[str] = None
    is_active: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CardResponse(BaseModel):
    card: CardSchema


class CardListResponse(BaseModel):
    deck: DeckSchema
    items: List[CardSchema]


# ---- Quiz import ----

class QuizImportRequest(BaseModel):
    quiz_id: Optional[Union[int, str]] = None
    topic_id: Optional[Union[int, str]] = None
    limit: Optional[int] = Field(default=None, ge=1, le=200)


class QuizImportResponse(BaseModel):
    imported: int
    skipped: int


# ---- Study sessions ----

class StudySessionSchema(BaseModel):
    id: int
    deck_id: int
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    total_cards_seen: int
    correct_count: int
    wrong_count: int
    summary: Optional[Dict[str, Any]] = None


class StudySessionResponse(BaseModel):
    session: StudySessionSchema


class SessionCompleteRequest(BaseModel):
    summary: Optional[Dict[str, Any]] = None


class SessionCompleteResponse(BaseModel):
    success: bool
    reviewed: int
    session: StudySessionSchema


# ---- Reviews ----

class ReviewRequest(BaseModel):
    # 0-5 quality or again/hard/good/easy, taken raw: study.ratings.parse_rating
    # rejects bools and floats, which a typed field would coerce first
    rating: Any
    session_id: Optional[int] = None


class ReviewSchema(BaseModel):
    id: int
    card_id: int
    deck_id: int
    session_id: Optional[int] = None
    rating: int
    rating_label: str
    interval_days: int
    ease_factor: float
    due_at: str
    reviewed_at: str


class ReviewResponse(BaseModel):
    review: ReviewSchema


class ReviewHistoryResponse(BaseModel):
    card_id: int
    reviews: List[ReviewSchema]


class DueCard(BaseModel):
    card_id: int
    deck_id: int
    front: str
    back: str
    hint: Optional[str] = None
    due_at: str
    interval_days: int
    ease_factor: float


class DueCardsResponse(BaseModel):
    as_of: str
    due_count: int
    new_count: int
    cards: List[DueCard]


# ---- Dashboard ----

class DashboardSummaryResponse(BaseModel):
    appId: str
    version: int
    updatedAt: str
    decksCount: int
    cardsCount: int
    reviewsToday: int
    lastStudyAt: Optional[str] = None
    lastImportedFromQuizAt: Optional[str] = None
