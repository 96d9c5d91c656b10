"""Webhook notification client for trend alerts."""

from __future__ import annotations

import logging
import os
from typing import Optional

import httpx

from settings import Settings

logger = logging.getLogger(__name__)

_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class NotificationClient:
    """Posts alert text to the messaging endpoint (Slack ``chat.postMessage``)."""

    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None) -> None:
        self._url = settings.notify_url
        self._channel = settings.notify_channel
        self._token_env = settings.notify_token_env
        self._client = client or httpx.Client(timeout=settings.notify_timeout_seconds)

    def close(self) -> None:
        self._client.close()

    def notify(self, message: str) -> bool:
        token = os.getenv(self._token_env)
        if not token:
            logger.warning(
                "Failed to send notification: no API key in %s",
                self._token_env,
                extra={"reason": "missing credential"},
            )
            return False

        try:
            response = self._client.post(
                self._url,
                data={"token": token, "channel": self._channel, "text": message},
                headers={"Content-Type": _FORM_CONTENT_TYPE},
            )
            body = response.text
        except httpx.HTTPError as exc:
            logger.error("Notification transport error: %s", exc, extra={"reason": type(exc).__name__})
            return False

        # The only ":true" in a chat.postMessage reply is "ok":true, so a
        # substring check stands in for parsing the JSON body.
        if ":true" in body:
            logger.debug("Notification successful")
            return True
        logger.warning("Notification rejected by endpoint", extra={"reason": body[:200]})
        return False
