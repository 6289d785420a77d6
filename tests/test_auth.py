"""Tests for auth: register, login, me, logout."""

import sys
import tempfile
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fastapi.testclient import TestClient
from server.app import app
from server.config import Settings
from server.db.session import init_db, reset_engine
from server.dependencies import get_settings


def _make_settings(tmp_dir: Path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_dir / 'test.db'}",
        parent_app_url="",
        webhook_secret="",
    )


def test_register_login_me_logout():
    """Register, me, logout flow."""
    reset_engine()
    with tempfile.TemporaryDirectory() as tmp:
        settings = _make_settings(Path(tmp))
        init_db(settings)
        app.dependency_overrides[get_settings] = lambda: settings

        try:
            client = TestClient(app)
            r = client.post("/auth/register", json={"email": "Test@Example.com", "password": "password123"})
            assert r.status_code == 200
            assert r.json()["email"] == "test@example.com"
            assert "flashnote_session" in r.cookies

            r = client.get("/auth/me")
            assert r.status_code == 200
            assert r.json()["email"] == "test@example.com"

            r = client.post("/auth/logout")
            assert r.status_code == 200

            r = client.get("/auth/me")
            assert r.status_code == 401
        finally:
            app.dependency_overrides.clear()
            reset_engine()


def test_login():
    """Login with correct and incorrect credentials."""
    reset_engine()
    with tempfile.TemporaryDirectory() as tmp:
        settings = _make_settings(Path(tmp))
        init_db(settings)
        app.dependency_overrides[get_settings] = lambda: settings

        try:
            TestClient(app).post("/auth/register", json={"email": "u@x.com", "password": "secret123"})

            client = TestClient(app)
            r = client.post("/auth/login", json={"email": "u@x.com", "password": "wrong-password"})
            assert r.status_code == 401

            r = client.post("/auth/login", json={"email": "u@x.com", "password": "secret123"})
            assert r.status_code == 200
            assert "flashnote_session" in r.cookies
            assert client.get("/auth/me").status_code == 200
        finally:
            app.dependency_overrides.clear()
            reset_engine()


def test_register_duplicate_email():
    """Register with existing email fails."""
    reset_engine()
    with tempfile.TemporaryDirectory() as tmp:
        settings = _make_settings(Path(tmp))
        init_db(settings)
        app.dependency_overrides[get_settings] = lambda: settings

        try:
            client = TestClient(app)
            client.post("/auth/register", json={"email": "dup@x.com", "password": "password123"})
            r = client.post("/auth/register", json={"email": "dup@x.com", "password": "other456x"})
            assert r.status_code == 400
        finally:
            app.dependency_overrides.clear()
            reset_engine()


def test_protected_routes_require_login():
    reset_engine()
    with tempfile.TemporaryDirectory() as tmp:
        settings = _make_settings(Path(tmp))
        init_db(settings)
        app.dependency_overrides[get_settings] = lambda: settings

        try:
            client = TestClient(app)
            assert client.get("/decks").status_code == 401
            assert client.post("/cards/1/review", json={"rating": 4}).status_code == 401
            assert client.get("/study/due").status_code == 401
        finally:
            app.dependency_overrides.clear()
            reset_engine()
