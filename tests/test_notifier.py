"""Tests for parent-app webhooks: notifications and activity pushes."""

import json
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import httpx
from fastapi.testclient import TestClient
from server.app import app
from server.config import Settings
from server.db.session import init_db, reset_engine
from server.dependencies import get_notifier, get_settings
from server.services.notifier import Notifier, best_effort


def _settings(**overrides) -> Settings:
    values = dict(
        database_url="sqlite://",
        parent_app_url="http://parent.test/",
        webhook_secret="s3cret",
    )
    values.update(overrides)
    return Settings(**values)


def _recording_transport(seen, status=200):
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status, json={"ok": True})
    return httpx.MockTransport(handler)


def test_notify_parent_posts_signed_payload():
    seen = []
    Notifier(_settings(), transport=_recording_transport(seen)).notify_parent("u1", "Hello", "World")

    assert len(seen) == 1
    request = seen[0]
    assert str(request.url) == "http://parent.test/api/webhooks/notifications.json"
    assert request.headers["X-Ansiversa-Signature"] == "s3cret"
    assert json.loads(request.content) == {
        "userId": "u1",
        "appId": "flashnote",
        "type": "flashnote",
        "title": "Hello",
        "body": "World",
    }


def test_notification_url_override():
    notifier = Notifier(_settings(parent_notification_webhook_url="http://hooks.test/n"))
    assert notifier.notification_url() == "http://hooks.test/n"
    assert notifier.activity_url() == "http://parent.test/api/webhooks/flashnote-activity.json"


def test_push_activity_payload():
    seen = []
    when = datetime(2025, 5, 1, 10, 0, tzinfo=timezone.utc)
    Notifier(_settings(), transport=_recording_transport(seen)).push_activity(
        "u1", "deck.created", {"decksCount": 1}, entity_id="3", occurred_at=when,
    )

    payload = json.loads(seen[0].content)
    assert seen[0].url.path == "/api/webhooks/flashnote-activity.json"
    assert payload["activity"] == {"event": "deck.created", "occurredAt": when.isoformat(), "entityId": "3"}
    assert payload["summary"] == {"decksCount": 1}


def test_skipped_without_secret_or_url():
    seen = []
    Notifier(_settings(webhook_secret=""), transport=_recording_transport(seen)).notify_parent("u1", "t")
    Notifier(_settings(parent_app_url=""), transport=_recording_transport(seen)).push_activity("u1", "e", {})
    assert seen == []


def test_transport_failure_is_swallowed():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    notifier = Notifier(_settings(), transport=httpx.MockTransport(handler))
    notifier.notify_parent("u1", "t")
    notifier.push_activity("u1", "e", {})


def test_error_status_is_not_raised():
    seen = []
    Notifier(_settings(), transport=_recording_transport(seen, status=500)).notify_parent("u1", "t")
    assert len(seen) == 1


def test_best_effort_logs_and_continues(caplog):
    with best_effort("explode"):
        raise RuntimeError("boom")
    assert "explode failed: boom" in caplog.text


def test_deck_creation_sends_webhooks_after_commit():
    seen = []
    reset_engine()
    with tempfile.TemporaryDirectory() as tmp:
        settings = _settings(database_url=f"sqlite:///{Path(tmp) / 'test.db'}")
        init_db(settings)
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_notifier] = lambda: Notifier(settings, transport=_recording_transport(seen))

        try:
            client = TestClient(app)
            client.post("/auth/register", json={"email": "a@x.com", "password": "password123"})
            r = client.post("/decks", json={"title": "Geology"})
            assert r.status_code == 200

            paths = [req.url.path for req in seen]
            assert paths == [
                "/api/webhooks/notifications.json",
                "/api/webhooks/flashnote-activity.json",
            ]
            activity = json.loads(seen[1].content)
            assert activity["activity"]["event"] == "deck.created"
            assert activity["activity"]["entityId"] == str(r.json()["deck"]["id"])
            assert activity["summary"]["decksCount"] == 1
        finally:
            app.dependency_overrides.clear()
            reset_engine()


def test_webhook_failure_does_not_fail_request():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    reset_engine()
    with tempfile.TemporaryDirectory() as tmp:
        settings = _settings(database_url=f"sqlite:///{Path(tmp) / 'test.db'}")
        init_db(settings)
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_notifier] = lambda: Notifier(settings, transport=httpx.MockTransport(handler))

        try:
            client = TestClient(app)
            client.post("/auth/register", json={"email": "a@x.com", "password": "password123"})
            assert client.post("/decks", json={"title": "Geology"}).status_code == 200
            assert len(client.get("/decks").json()["items"]) == 1
        finally:
            app.dependency_overrides.clear()
            reset_engine()
