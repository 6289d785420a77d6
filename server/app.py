"""FastAPI application -- routes for the FlashNote study app."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import BackgroundTasks, Cookie, Depends, FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session as DBSession

from server.__version__ import __version__
from server.auth import SESSION_COOKIE, get_current_user, get_db_session, get_session_token
from server.config import Settings
from server.dependencies import get_notifier, get_quiz_transport, get_settings
from server.schemas import (
    CardCreateRequest,
    CardListResponse,
    CardResponse,
    CardUpdateRequest,
    DashboardSummaryResponse,
    DeckCreateRequest,
    DeckListResponse,
    DeckResponse,
    DeckUpdateRequest,
    DueCardsResponse,
    LoginRequest,
    QuizImportRequest,
    QuizImportResponse,
    RegisterRequest,
    ReviewHistoryResponse,
    ReviewRequest,
    ReviewResponse,
    SessionCompleteRequest,
    SessionCompleteResponse,
    StudySessionResponse,
    UserResponse,
)
from server.services import (
    auth_service,
    card_service,
    dashboard_service,
    deck_service,
    quiz_client,
    review_service,
    session_service,
)
from server.services.notifier import Notifier, best_effort
from server.services.quiz_client import QuizApiError
from study.errors import NotFound

logger = logging.getLogger("flashnote")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan: create tables if missing."""
    from server.db.session import init_db
    init_db(get_settings())
    logger.info("Startup: database ready")
    yield
    logger.info("Shutdown: complete")


app = FastAPI(title="FlashNote", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=Settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _push_dashboard(
    background_tasks: BackgroundTasks,
    notifier: Notifier,
    db: DBSession,
    user_id: str,
    event: str,
    entity_id: Optional[str] = None,
) -> None:
    """Build the summary now (needs the session), send it after the response."""
    with best_effort("build_dashboard_summary"):
        summary = dashboard_service.build_dashboard_summary(db, user_id, app_id=notifier.settings.app_id)
        background_tasks.add_task(notifier.push_activity, user_id, event, summary, entity_id)


# ---- Auth ----

SESSION_MAX_AGE = 60 * 60 * 24 * 7  # 7 days


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        max_age=SESSION_MAX_AGE,
        httponly=True,
        secure=False,
        samesite="lax",
    )


@app.post("/auth/register", response_model=UserResponse)
def auth_register(
    body: RegisterRequest,
    response: Response,
    db: DBSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
):
    try:
        user = auth_service.register_user(db, body.email, body.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    token = auth_service.create_session(db, user.id, ttl_hours=settings.session_ttl_hours)
    db.commit()
    _set_session_cookie(response, token)
    return {"id": user.id, "email": user.email}


@app.post("/auth/login", response_model=UserResponse)
def auth_login(
    body: LoginRequest,
    response: Response,
    db: DBSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
):
    user = auth_service.authenticate(db, body.email, body.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    token = auth_service.create_session(db, user.id, ttl_hours=settings.session_ttl_hours)
    db.commit()
    _set_session_cookie(response, token)
    return {"id": user.id, "email": user.email}


@app.post("/auth/logout")
def auth_logout(
    response: Response,
    flashnote_session: Optional[str] = Cookie(None, alias=SESSION_COOKIE),
    db: DBSession = Depends(get_db_session),
):
    if flashnote_session:
        auth_service.logout_session(db, flashnote_session)
        db.commit()
    response.delete_cookie(SESSION_COOKIE)
    return {"ok": True}


@app.get("/auth/me", response_model=UserResponse)
def auth_me(user=Depends(get_current_user)):
    return {"id": user.id, "email": user.email}


# ---- Health ----

@app.get("/health")
def health():
    """Minimal health check. No deps."""
    return {"ok": True, "version": __version__}


# ---- Decks ----

@app.get("/decks", response_model=DeckListResponse)
def decks_list(
    include_inactive: bool = False,
    user=Depends(get_current_user),
    db: DBSession = Depends(get_db_session),
):
    return {"items": deck_service.list_decks(db, user.id, include_inactive=include_inactive)}


@app.post("/decks", response_model=DeckResponse)
def decks_create(
    body: DeckCreateRequest,
    background_tasks: BackgroundTasks,
    user=Depends(get_current_user),
    db: DBSession = Depends(get_db_session),
    notifier: Notifier = Depends(get_notifier),
):
    try:
        deck = deck_service.create_deck(
            db, user.id, body.title,
            description=body.description,
            source_type=body.source_type,
            source_meta=body.source_meta,
            tags=body.tags,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()

    background_tasks.add_task(
        notifier.notify_parent, user.id,
        "FlashNote deck created", f"Deck “{deck.title}” is ready.",
    )
    _push_dashboard(background_tasks, notifier, db, user.id, "deck.created", str(deck.id))
    return {"deck": deck_service.deck_to_dict(deck, cards_count=0)}


@app.get("/decks/{deck_id}", response_model=DeckResponse)
def decks_get(
    deck_id: int,
    user=Depends(get_current_user),
    db: DBSession = Depends(get_db_session),
):
    try:
        deck = deck_service.require_deck(db, user.id, deck_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"deck": deck_service.deck_to_dict(deck)}


@app.patch("/decks/{deck_id}", response_model=DeckResponse)
def decks_update(
    deck_id: int,
    body: DeckUpdateRequest,
    user=Depends(get_current_user),
    db: DBSession = Depends(get_db_session),
):
    try:
        deck = deck_service.update_deck(db, user.id, deck_id, **body.model_dump(exclude_unset=True))
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    return {"deck": deck_service.deck_to_dict(deck)}


@app.delete("/decks/{deck_id}")
def decks_delete(
    deck_id: int,
    user=Depends(get_current_user),
    db: DBSession = Depends(get_db_session),
):
    try:
        deck_service.delete_deck(db, user.id, deck_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    db.commit()
    return {"success": True}


# ---- Cards ----

@app.get("/decks/{deck_id}/cards", response_model=CardListResponse)
def cards_list(
    deck_id: int,
    include_inactive: bool = False,
    user=Depends(get_current_user),
    db: DBSession = Depends(get_db_session),
):
    try:
        deck = deck_service.require_deck(db, user.id, deck_id)
        cards = card_service.list_cards(db, user.id, deck_id, include_inactive=include_inactive)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {
        "deck": deck_service.deck_to_dict(deck),
        "items": [card_service.card_to_dict(c) for c in cards],
    }


@app.post("/decks/{deck_id}/cards", response_model=CardResponse)
def cards_create(
    deck_id: int,
    body: CardCreateRequest,
    user=Depends(get_current_user),
    db: DBSession = Depends(get_db_session),
):
    try:
        card = card_service.create_card(
            db, user.id, deck_id, body.front, body.back,
            hint=body.hint, extra=body.extra, display_order=body.display_order,
        )
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    return {"card": card_service.card_to_dict(card)}


@app.patch("/cards/{card_id}", response_model=CardResponse)
def cards_update(
    card_id: int,
    body: CardUpdateRequest,
    user=Depends(get_current_user),
    db: DBSession = Depends(get_db_session),
):
    try:
        card = card_service.update_card(db, user.id, card_id, **body.model_dump(exclude_unset=True))
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    return {"card": card_service.card_to_dict(card)}


@app.post("/cards/{card_id}/archive", response_model=CardResponse)
def cards_archive(
    card_id: int,
    user=Depends(get_current_user),
    db: DBSession = Depends(get_db_session),
):
    try:
        card = card_service.archive_card(db, user.id, card_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    db.commit()
    return {"card": card_service.card_to_dict(card)}


@app.delete("/cards/{card_id}")
def cards_delete(
    card_id: int,
    user=Depends(get_current_user),
    db: DBSession = Depends(get_db_session),
):
    try:
        card_service.delete_card(db, user.id, card_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    db.commit()
    return {"success": True}


# ---- Quiz import ----

@app.post("/decks/{deck_id}/import/quiz", response_model=QuizImportResponse)
def decks_import_quiz(
    deck_id: int,
    body: QuizImportRequest,
    background_tasks: BackgroundTasks,
    user=Depends(get_current_user),
    token: Optional[str] = Depends(get_session_token),
    db: DBSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
    notifier: Notifier = Depends(get_notifier),
    transport: Optional[httpx.BaseTransport] = Depends(get_quiz_transport),
):
    """Import questions from the quiz service as cards. Skips questions already in the deck."""
    try:
        deck = deck_service.require_deck(db, user.id, deck_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

    limit = min(body.limit, settings.quiz_import_max_limit) if body.limit else None
    try:
        questions = quiz_client.fetch_quiz_questions(
            settings.quiz_api_base_url,
            token or "",
            quiz_id=str(body.quiz_id) if body.quiz_id is not None else None,
            topic_id=str(body.topic_id) if body.topic_id is not None else None,
            limit=limit,
            timeout_s=settings.quiz_api_timeout_s,
            transport=transport,
        )
    except QuizApiError as e:
        status = 503 if e.kind == "not_configured" else 502
        raise HTTPException(status_code=status, detail=e.message)

    result = card_service.import_quiz_questions(db, user.id, deck.id, questions)
    db.commit()

    if questions:
        background_tasks.add_task(
            notifier.notify_parent, user.id,
            "FlashNote quiz import completed",
            f"Imported {result['imported']} cards into “{deck.title}”.",
        )
        _push_dashboard(background_tasks, notifier, db, user.id, "quiz.imported", str(deck.id))
    return result


# ---- Study sessions ----

@app.post("/decks/{deck_id}/sessions", response_model=StudySessionResponse)
def sessions_start(
    deck_id: int,
    user=Depends(get_current_user),
    db: DBSession = Depends(get_db_session),
):
    try:
        session = session_service.start_session(db, user.id, deck_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    db.commit()
    return {"session": session_service.session_to_dict(session)}


@app.post("/sessions/{session_id}/complete", response_model=SessionCompleteResponse)
def sessions_complete(
    session_id: int,
    background_tasks: BackgroundTasks,
    body: Optional[SessionCompleteRequest] = None,
    user=Depends(get_current_user),
    db: DBSession = Depends(get_db_session),
    notifier: Notifier = Depends(get_notifier),
):
    try:
        result = session_service.complete_session(
            db, user.id, session_id, summary=body.summary if body else None,
        )
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    db.commit()

    background_tasks.add_task(
        notifier.notify_parent, user.id,
        "FlashNote study session completed",
        f"Reviewed {result['reviewed']} cards in “{result['deck_title']}”.",
    )
    _push_dashboard(background_tasks, notifier, db, user.id, "study.completed", str(result["deck_id"]))
    return {"success": True, "reviewed": result["reviewed"], "session": result["session"]}


# ---- Reviews ----

@app.post("/cards/{card_id}/review", response_model=ReviewResponse)
def cards_review(
    card_id: int,
    body: ReviewRequest,
    user=Depends(get_current_user),
    db: DBSession = Depends(get_db_session),
):
    """Rate a card (0-5 or again/hard/good/easy) and append its next schedule."""
    try:
        with review_service.card_lock(user.id, card_id):
            review = review_service.review_card(
                db, user.id, card_id, body.rating, session_id=body.session_id,
            )
            db.commit()
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"review": review}


@app.get("/cards/{card_id}/reviews", response_model=ReviewHistoryResponse)
def cards_review_history(
    card_id: int,
    limit: Optional[int] = Query(None, ge=1),
    user=Depends(get_current_user),
    db: DBSession = Depends(get_db_session),
):
    try:
        return review_service.list_reviews(db, user.id, card_id, limit=limit)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.get("/study/due", response_model=DueCardsResponse)
def study_due(
    deck_id: Optional[int] = None,
    limit: Optional[int] = Query(None, ge=1),
    user=Depends(get_current_user),
    db: DBSession = Depends(get_db_session),
):
    try:
        return review_service.get_due_cards(db, user.id, deck_id=deck_id, limit=limit)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


# ---- Dashboard ----

@app.get("/dashboard/summary", response_model=DashboardSummaryResponse)
def dashboard_summary(
    user=Depends(get_current_user),
    db: DBSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
):
    return dashboard_service.build_dashboard_summary(db, user.id, app_id=settings.app_id)
