"""Discord webhook notifier.

Sends restock notifications to a Discord channel via webhook.  Delivery
runs on a background worker so the monitor never waits on Discord; a
failed delivery is logged and dropped.
"""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import requests

from .config import DISCORD_WEBHOOK_URL, WEBHOOK_COLOR, WEBHOOK_FOOTER
from .utils import get_http_session, retryable_request

logger = logging.getLogger(__name__)


@dataclass
class RestockEvent:
    title: str
    url: str
    style: str
    size: str
    image_url: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@retryable_request
def _post(session: requests.Session, url: str, **kwargs) -> requests.Response:
    return session.post(url, **kwargs)


def build_embed(event: RestockEvent, *, footer: str = WEBHOOK_FOOTER, color: int = WEBHOOK_COLOR) -> dict:
    embed = {
        "title": event.title or "Unknown product",
        "url": event.url,
        "color": color,
        "fields": [
            {"name": "Color", "value": event.style or "-", "inline": True},
            {"name": "Size", "value": event.size or "-", "inline": True},
        ],
        "footer": {"text": footer},
        "timestamp": event.timestamp.isoformat(),
    }
    if event.image_url:
        embed["thumbnail"] = {"url": event.image_url}
    return embed


class DiscordNotifier:
    def __init__(
        self,
        webhook_url: Optional[str] = DISCORD_WEBHOOK_URL,
        *,
        footer: str = WEBHOOK_FOOTER,
        color: int = WEBHOOK_COLOR,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.webhook_url = webhook_url
        self.footer = footer
        self.color = color
        self.session = session or get_http_session()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="discord")

    def _deliver(self, event: RestockEvent) -> None:
        payload = {"embeds": [build_embed(event, footer=self.footer, color=self.color)]}
        try:
            _post(self.session, self.webhook_url, json=payload)
            logger.info("Sent restock notification for %s (%s / %s)", event.title, event.style, event.size)
        except Exception:
            logger.exception("Failed to deliver restock notification for %s", event.title)

    def notify(self, event: RestockEvent) -> Optional[Future]:
        """Queue `event` for delivery and return immediately."""
        if not self.webhook_url:
            logger.error("Discord webhook URL is not configured. Cannot send notification.")
            return None
        return self._executor.submit(self._deliver, event)

    def close(self) -> None:
        self._executor.shutdown(wait=True)
        self.session.close()


__all__ = ["DiscordNotifier", "RestockEvent", "build_embed"]
