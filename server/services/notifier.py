"""Fire-and-forget webhooks to the parent app: notifications and activity pushes."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

import httpx

from server.config import Settings

logger = logging.getLogger("flashnote.notify")

NOTIFICATIONS_PATH = "/api/webhooks/notifications.json"
ACTIVITY_PATH = "/api/webhooks/flashnote-activity.json"
SIGNATURE_HEADER = "X-Ansiversa-Signature"


@contextmanager
def best_effort(label: str) -> Iterator[None]:
    """Run a side effect whose failure must never reach the caller. Logs and continues."""
    try:
        yield
    except Exception as e:
        logger.warning("%s failed: %s", label, e)


class Notifier:
    """
    Posts JSON payloads to the parent app's webhooks.

    Every public method swallows its own failures: callers schedule these
    after the main transaction and never wait on or depend on the outcome.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.BaseTransport] = None):
        self.settings = settings
        self.transport = transport

    def _base_url(self) -> Optional[str]:
        base = self.settings.parent_app_url
        return base.rstrip("/") if base else None

    def notification_url(self) -> Optional[str]:
        if self.settings.parent_notification_webhook_url:
            return self.settings.parent_notification_webhook_url
        base = self._base_url()
        return f"{base}{NOTIFICATIONS_PATH}" if base else None

    def activity_url(self) -> Optional[str]:
        base = self._base_url()
        return f"{base}{ACTIVITY_PATH}" if base else None

    def _post(self, url: str, payload: Dict[str, Any]) -> None:
        with httpx.Client(timeout=self.settings.webhook_timeout_s, transport=self.transport) as client:
            resp = client.post(
                url,
                json=payload,
                headers={SIGNATURE_HEADER: self.settings.webhook_secret or ""},
            )
        if not resp.is_success:
            logger.warning("Webhook %s returned %s", url, resp.status_code)

    def notify_parent(
        self,
        user_id: str,
        title: str,
        body: Optional[str] = None,
        type: str = "flashnote",
    ) -> None:
        with best_effort("notify_parent"):
            url = self.notification_url()
            if not url or not self.settings.webhook_secret:
                logger.debug("notify_parent skipped: webhook URL or secret not configured")
                return
            self._post(url, {
                "userId": user_id,
                "appId": self.settings.app_id,
                "type": type,
                "title": title,
                "body": body,
            })

    def push_activity(
        self,
        user_id: str,
        event: str,
        summary: Dict[str, Any],
        entity_id: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ) -> None:
        with best_effort("push_activity"):
            url = self.activity_url()
            if not url or not self.settings.webhook_secret:
                logger.debug("push_activity skipped: PARENT_APP_URL or secret not configured")
                return
            activity = {
                "event": event,
                "occurredAt": (occurred_at or datetime.now(timezone.utc)).isoformat(),
            }
            if entity_id is not None:
                activity["entityId"] = entity_id
            self._post(url, {
                "userId": user_id,
                "appId": self.settings.app_id,
                "activity": activity,
                "summary": summary,
            })
