"""Tests for rating cards, review history and the due-cards endpoint."""

import sys
import tempfile
import threading
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest
from fastapi.testclient import TestClient
from server.app import app
from server.config import Settings
from server.db.models import User
from server.db.session import get_db, init_db, reset_engine
from server.dependencies import get_settings
from server.services import card_service, deck_service, review_service


@pytest.fixture
def settings():
    reset_engine()
    with tempfile.TemporaryDirectory() as tmp:
        s = Settings(
            database_url=f"sqlite:///{Path(tmp) / 'test.db'}",
            parent_app_url="",
            webhook_secret="",
        )
        init_db(s)
        app.dependency_overrides[get_settings] = lambda: s
        try:
            yield s
        finally:
            app.dependency_overrides.clear()
            reset_engine()


def _login(email: str) -> TestClient:
    client = TestClient(app)
    r = client.post("/auth/register", json={"email": email, "password": "password123"})
    assert r.status_code == 200
    return client


def _deck_with_card(client: TestClient):
    deck = client.post("/decks", json={"title": "Spanish"}).json()["deck"]
    card = client.post(f"/decks/{deck['id']}/cards", json={"front": "perro", "back": "dog"}).json()["card"]
    return deck, card


# ============================================================================
# Tests: POST /cards/{id}/review
# ============================================================================

def test_first_review_cold_start(settings):
    client = _login("a@x.com")
    deck, card = _deck_with_card(client)

    r = client.post(f"/cards/{card['id']}/review", json={"rating": "easy"})
    assert r.status_code == 200
    review = r.json()["review"]
    assert review["card_id"] == card["id"]
    assert review["deck_id"] == deck["id"]
    assert review["rating"] == 5
    assert review["rating_label"] == "easy"
    assert review["interval_days"] == 4
    assert review["ease_factor"] == pytest.approx(2.6)

    reviewed_at = datetime.fromisoformat(review["reviewed_at"])
    due_at = datetime.fromisoformat(review["due_at"])
    assert due_at - reviewed_at == timedelta(days=4)


def test_second_review_uses_latest_state(settings):
    client = _login("a@x.com")
    _, card = _deck_with_card(client)

    client.post(f"/cards/{card['id']}/review", json={"rating": "easy"})
    r = client.post(f"/cards/{card['id']}/review", json={"rating": "again"})
    review = r.json()["review"]
    assert review["rating"] == 0
    assert review["interval_days"] == 1
    assert review["ease_factor"] == pytest.approx(2.4)
    assert review_service._card_locks == {}


def test_numeric_rating_accepted(settings):
    client = _login("a@x.com")
    _, card = _deck_with_card(client)
    r = client.post(f"/cards/{card['id']}/review", json={"rating": 3})
    assert r.status_code == 200
    assert r.json()["review"]["interval_days"] == 2
    assert r.json()["review"]["rating_label"] == "hard"


@pytest.mark.parametrize("rating", [6, -1, "perfect", "", "4.0", True, False, 4.0, None])
def test_invalid_rating_rejected_and_not_stored(settings, rating):
    client = _login("a@x.com")
    _, card = _deck_with_card(client)

    r = client.post(f"/cards/{card['id']}/review", json={"rating": rating})
    assert r.status_code == 400
    assert client.get(f"/cards/{card['id']}/reviews").json()["reviews"] == []


def test_review_unknown_card_is_404(settings):
    client = _login("a@x.com")
    assert client.post("/cards/9999/review", json={"rating": "good"}).status_code == 404


def test_review_other_users_card_is_404(settings):
    alice = _login("alice@x.com")
    bob = _login("bob@x.com")
    _, card = _deck_with_card(alice)

    r = bob.post(f"/cards/{card['id']}/review", json={"rating": "good"})
    assert r.status_code == 404
    assert bob.get(f"/cards/{card['id']}/reviews").status_code == 404
    assert alice.get(f"/cards/{card['id']}/reviews").json()["reviews"] == []


def test_review_with_session_updates_counters(settings):
    client = _login("a@x.com")
    deck, card = _deck_with_card(client)
    session = client.post(f"/decks/{deck['id']}/sessions").json()["session"]

    client.post(f"/cards/{card['id']}/review", json={"rating": "good", "session_id": session["id"]})
    client.post(f"/cards/{card['id']}/review", json={"rating": "again", "session_id": session["id"]})

    r = client.post(f"/sessions/{session['id']}/complete")
    assert r.status_code == 200
    body = r.json()
    assert body["reviewed"] == 2
    assert body["session"]["total_cards_seen"] == 2
    assert body["session"]["correct_count"] == 1
    assert body["session"]["wrong_count"] == 1


def test_review_with_other_users_session_is_404(settings):
    alice = _login("alice@x.com")
    bob = _login("bob@x.com")
    _, card = _deck_with_card(alice)
    bob_deck, _ = _deck_with_card(bob)
    bob_session = bob.post(f"/decks/{bob_deck['id']}/sessions").json()["session"]

    r = alice.post(f"/cards/{card['id']}/review", json={"rating": "good", "session_id": bob_session["id"]})
    assert r.status_code == 404
    assert alice.get(f"/cards/{card['id']}/reviews").json()["reviews"] == []


# ============================================================================
# Tests: GET /cards/{id}/reviews
# ============================================================================

def test_review_history_newest_first(settings):
    client = _login("a@x.com")
    _, card = _deck_with_card(client)
    for rating in ("good", "hard", "again"):
        client.post(f"/cards/{card['id']}/review", json={"rating": rating})

    body = client.get(f"/cards/{card['id']}/reviews").json()
    assert body["card_id"] == card["id"]
    assert [r["rating_label"] for r in body["reviews"]] == ["again", "hard", "good"]

    limited = client.get(f"/cards/{card['id']}/reviews", params={"limit": 1}).json()
    assert len(limited["reviews"]) == 1


# ============================================================================
# Tests: GET /study/due
# ============================================================================

def test_due_endpoint_counts_new_cards(settings):
    client = _login("a@x.com")
    deck, card = _deck_with_card(client)
    client.post(f"/decks/{deck['id']}/cards", json={"front": "gato", "back": "cat"})

    body = client.get("/study/due").json()
    assert body["due_count"] == 0
    assert body["new_count"] == 2
    assert body["cards"] == []

    client.post(f"/cards/{card['id']}/review", json={"rating": "good"})
    body = client.get("/study/due", params={"deck_id": deck["id"]}).json()
    assert body["due_count"] == 0  # next due in 4 days
    assert body["new_count"] == 1


def test_due_endpoint_unknown_deck_is_404(settings):
    client = _login("a@x.com")
    assert client.get("/study/due", params={"deck_id": 9999}).status_code == 404


def test_get_due_cards_after_interval(settings):
    now = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
    with get_db(settings) as db:
        user = User(email="a@x.com", password_hash="x")
        db.add(user)
        db.flush()
        deck = deck_service.create_deck(db, user.id, "Spanish")
        first = card_service.create_card(db, user.id, deck.id, "perro", "dog")
        second = card_service.create_card(db, user.id, deck.id, "gato", "cat")

        review_service.review_card(db, user.id, first.id, "again", now=now)
        review_service.review_card(db, user.id, second.id, "easy", now=now)

        day_later = review_service.get_due_cards(db, user.id, now=now + timedelta(days=1))
        assert day_later["due_count"] == 1
        assert day_later["new_count"] == 0
        assert [c["card_id"] for c in day_later["cards"]] == [first.id]
        assert day_later["cards"][0]["interval_days"] == 1

        week_later = review_service.get_due_cards(db, user.id, now=now + timedelta(days=7))
        assert [c["card_id"] for c in week_later["cards"]] == [first.id, second.id]

        limited = review_service.get_due_cards(db, user.id, now=now + timedelta(days=7), limit=1)
        assert limited["due_count"] == 2
        assert len(limited["cards"]) == 1


def test_rereview_moves_card_out_of_due(settings):
    now = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
    with get_db(settings) as db:
        user = User(email="a@x.com", password_hash="x")
        db.add(user)
        db.flush()
        deck = deck_service.create_deck(db, user.id, "Spanish")
        card = card_service.create_card(db, user.id, deck.id, "perro", "dog")

        review_service.review_card(db, user.id, card.id, "again", now=now)
        later = now + timedelta(days=1)
        assert review_service.get_due_cards(db, user.id, now=later)["due_count"] == 1

        review_service.review_card(db, user.id, card.id, "good", now=later)
        assert review_service.get_due_cards(db, user.id, now=later)["due_count"] == 0


def test_history_and_due_limit_must_be_positive(settings):
    client = _login("a@x.com")
    _, card = _deck_with_card(client)
    assert client.get(f"/cards/{card['id']}/reviews", params={"limit": 0}).status_code == 422
    assert client.get("/study/due", params={"limit": 0}).status_code == 422


# ============================================================================
# Tests: card_lock
# ============================================================================

def test_card_lock_entry_removed_after_release():
    with review_service.card_lock("u1", 1):
        assert ("u1", 1) in review_service._card_locks
    assert review_service._card_locks == {}


def test_card_lock_entry_kept_while_another_holder_waits():
    entered = threading.Event()
    release = threading.Event()
    order = []

    def first():
        with review_service.card_lock("u1", 1):
            entered.set()
            release.wait(timeout=5)
            order.append("first")

    def second():
        with review_service.card_lock("u1", 1):
            order.append("second")

    t1 = threading.Thread(target=first)
    t1.start()
    assert entered.wait(timeout=5)
    t2 = threading.Thread(target=second)
    t2.start()

    deadline = time.monotonic() + 5
    while time.monotonic() < deadline:
        with review_service._locks_guard:
            if review_service._card_locks[("u1", 1)][1] == 2:
                break
        time.sleep(0.01)
    with review_service._locks_guard:
        assert review_service._card_locks[("u1", 1)][1] == 2

    release.set()
    t1.join(timeout=5)
    t2.join(timeout=5)
    assert order == ["first", "second"]
    assert review_service._card_locks == {}


def test_card_lock_released_on_error():
    with pytest.raises(RuntimeError):
        with review_service.card_lock("u1", 2):
            raise RuntimeError("boom")
    assert review_service._card_locks == {}
