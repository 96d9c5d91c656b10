"""Bulk export of history dumps to a TCP sink."""

from __future__ import annotations

import logging
import socket

from settings import Settings

logger = logging.getLogger(__name__)


class TcpExporter:
    """Writes one newline-terminated UTF-8 payload per connection; nothing is read back."""

    def __init__(self, host: str, port: int, timeout: float = 10.0) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "TcpExporter":
        return cls(settings.export_host, settings.export_port, timeout=settings.notify_timeout_seconds)

    def export_data(self, json_text: str) -> bool:
        payload = json_text.encode("utf-8") + b"\n"
        try:
            with socket.create_connection((self.host, self.port), timeout=self.timeout) as conn:
                conn.sendall(payload)
        except OSError as exc:
            logger.error(
                "Export to %s:%s failed: %s",
                self.host,
                self.port,
                exc,
                extra={"reason": type(exc).__name__},
            )
            return False
        logger.debug("Exported %d bytes to %s:%s", len(payload), self.host, self.port)
        return True
