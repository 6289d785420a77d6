"""Configuration for the FlashNote API server."""

import os
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Settings:
    """
    Database, webhook and collaborator endpoints the server needs.

    Every field is overridable at construction for testing; unset fields
    fall back to environment variables in __post_init__.
    """
    database_url: Optional[str] = None
    session_ttl_hours: int = 24 * 7

    # Parent app webhooks (fire-and-forget)
    parent_app_url: Optional[str] = None
    parent_notification_webhook_url: Optional[str] = None
    webhook_secret: Optional[str] = None
    webhook_timeout_s: float = 5.0
    app_id: str = "flashnote"

    # Quiz import
    quiz_api_base_url: Optional[str] = None
    quiz_api_timeout_s: float = 10.0
    quiz_import_max_limit: int = 200

    cors_origins: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.database_url is None:
            self.database_url = os.environ.get("DATABASE_URL", "sqlite:///./flashnote.db")

        if self.parent_app_url is None:
            self.parent_app_url = os.environ.get("PARENT_APP_URL") or None
        if self.parent_notification_webhook_url is None:
            self.parent_notification_webhook_url = os.environ.get("PARENT_NOTIFICATION_WEBHOOK_URL") or None
        if self.webhook_secret is None:
            self.webhook_secret = os.environ.get("ANSIVERSA_WEBHOOK_SECRET") or None
        if self.quiz_api_base_url is None:
            self.quiz_api_base_url = os.environ.get("QUIZ_API_BASE_URL") or None

        try:
            if v := os.environ.get("WEBHOOK_TIMEOUT_S"):
                self.webhook_timeout_s = float(v)
        except ValueError:
            pass
        try:
            if v := os.environ.get("QUIZ_API_TIMEOUT_S"):
                self.quiz_api_timeout_s = float(v)
        except ValueError:
            pass

        if not self.cors_origins:
            env_origins = os.environ.get("CORS_ORIGINS", "http://localhost:4321")
            self.cors_origins = [o.strip() for o in env_origins.split(",") if o.strip()]
