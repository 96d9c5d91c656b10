from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Iterable, Sequence

from settings import Settings, get_settings

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

_LEVEL_NAMES = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

_DEFAULT_EXTRA_KEYS = (
    "sensor_id",
    "tick",
    "command",
    "state",
    "pressure",
    "temperature",
    "trend",
    "entry_count",
    "reason",
)

_configured = False


class ContextualFormatter(logging.Formatter):

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or _DEFAULT_EXTRA_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context_parts: list[str] = []
        for key in self._extra_keys:
            if not hasattr(record, key):
                continue
            value = getattr(record, key, None)
            if value is None:
                continue
            context_parts.append(f"{key}={value}")
        if context_parts:
            return f"{message} | {' '.join(context_parts)}"
        return message


def resolve_level(settings: Settings) -> int:
    """Translate the configured level name, honouring the debug switch."""
    level = _LEVEL_NAMES.get(settings.log_level, logging.INFO)
    if settings.debug_enabled:
        level = min(level, logging.DEBUG)
    return level


def configure_logging(settings: Settings | None = None, force: bool = False) -> None:
    """Configure application-wide logging with contextual formatting."""
    global _configured
    if _configured and not force:
        return

    settings = settings or get_settings()
    log_level = resolve_level(settings)

    handlers: dict[str, dict] = {
        "default": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "contextual",
        }
    }
    if settings.log_file_path:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "level": log_level,
            "formatter": "contextual",
            "filename": settings.log_file_path,
            "encoding": "utf-8",
        }

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": "logging_config.ContextualFormatter",
                    "fmt": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                    "style": "%",
                    "extra_keys": list(_DEFAULT_EXTRA_KEYS),
                }
            },
            "handlers": handlers,
            "root": {"handlers": list(handlers), "level": log_level},
        }
    )

    _configured = True
