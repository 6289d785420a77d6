"""FastAPI dependency factories."""

from functools import lru_cache
from typing import Optional

import httpx
from fastapi import Depends

from server.config import Settings
from server.services.notifier import Notifier


@lru_cache()
def get_settings() -> Settings:
    """Singleton Settings -- override via app.dependency_overrides in tests."""
    return Settings()


def get_notifier(settings: Settings = Depends(get_settings)) -> Notifier:
    """Webhook notifier bound to current settings."""
    return Notifier(settings)


def get_quiz_transport() -> Optional[httpx.BaseTransport]:
    """Transport for the quiz client. None means real network; tests inject a MockTransport."""
    return None
