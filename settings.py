from __future__ import annotations

import os
from dataclasses import dataclass, replace
from functools import lru_cache
from threading import Lock
from typing import Any, Optional


_DEBUG_ENV = "BARO_DEBUG"
_SENSOR_ENABLED_ENV = "BARO_SENSOR{index}_ENABLED"
_LOG_LEVEL_ENV = "LOG_LEVEL"
_LOG_FILE_ENV = "BARO_LOG_FILE"
_PERIOD_ENV = "BARO_SAMPLE_PERIOD_SECONDS"
_TICKS_ENV = "BARO_TICKS_PER_SAMPLE"
_REPORT_ENV = "BARO_REPORT_EVERY"
_CAPACITY_ENV = "BARO_HISTORY_CAPACITY"
_SOURCE_ENV = "BARO_SENSOR_SOURCE"
_LIBRARY_ENV = "BARO_SENSOR_LIBRARY"
_NOTIFY_URL_ENV = "BARO_NOTIFY_URL"
_NOTIFY_CHANNEL_ENV = "BARO_NOTIFY_CHANNEL"
_NOTIFY_TOKEN_ENV = "BARO_NOTIFY_TOKEN_ENV"
_NOTIFY_TIMEOUT_ENV = "BARO_NOTIFY_TIMEOUT"
_EXPORT_HOST_ENV = "BARO_EXPORT_HOST"
_EXPORT_PORT_ENV = "BARO_EXPORT_PORT"

LOG_LEVELS = ("trace", "debug", "info", "warn", "error")
SENSOR_SOURCES = ("hardware", "synthetic")
SENSOR_IDS = ("sensor1", "sensor2", "sensor3")


@dataclass(frozen=True)
class Settings:
    debug_enabled: bool = False
    sensor1_enabled: bool = True
    sensor2_enabled: bool = True
    sensor3_enabled: bool = True
    log_level: str = "info"
    log_file_path: Optional[str] = None
    sample_period_seconds: float = 5.0
    ticks_per_sample: int = 60
    report_every_n_samples: int = 12
    history_capacity: int = 100
    sensor_source: str = "synthetic"
    sensor_library: str = "librsd.so"
    notify_url: str = "https://slack.com/api/chat.postMessage"
    notify_channel: str = "#drn"
    notify_token_env: str = "APPVIEW_SLACKBOT_TOKEN"
    notify_timeout_seconds: float = 10.0
    export_host: str = "127.0.0.1"
    export_port: int = 9400

    def sensor_enabled(self, sensor_id: str) -> bool:
        if sensor_id not in SENSOR_IDS:
            return False
        return bool(getattr(self, f"{sensor_id}_enabled"))

    def enabled_sensors(self) -> list[str]:
        return [sensor_id for sensor_id in SENSOR_IDS if self.sensor_enabled(sensor_id)]

    def with_overrides(self, **changes: Any) -> "Settings":
        """Return a copy with the non-``None`` values of ``changes`` applied."""
        applied = {key: value for key, value in changes.items() if value is not None}
        if "log_level" in applied:
            applied["log_level"] = _normalize_level(applied["log_level"], self.log_level)
        return replace(self, **applied)


class SettingsStore:
    """Lock-guarded holder for the rare administrative settings overwrite.

    Readers always get the frozen ``Settings`` value current at the time of
    the call, never a reference that a writer can change underneath them.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._lock = Lock()

    def snapshot(self) -> Settings:
        with self._lock:
            return self._settings

    def update(self, **changes: Any) -> Settings:
        with self._lock:
            self._settings = self._settings.with_overrides(**changes)
            return self._settings


def _normalize_level(value: str, default: str) -> str:
    candidate = value.strip().lower()
    if candidate == "warning":
        candidate = "warn"
    return candidate if candidate in LOG_LEVELS else default


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in {"1", "true", "yes", "on"}:
        return True
    if candidate in {"0", "false", "no", "off"}:
        return False
    return default


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    return _normalize_level(value, default)


def _read_sensor_source(default: str) -> str:
    candidate = _read_str_env(_SOURCE_ENV, default).lower()
    return candidate if candidate in SENSOR_SOURCES else default


@lru_cache
def get_settings() -> Settings:
    return Settings(
        debug_enabled=_read_bool_env(_DEBUG_ENV, False),
        sensor1_enabled=_read_bool_env(_SENSOR_ENABLED_ENV.format(index=1), True),
        sensor2_enabled=_read_bool_env(_SENSOR_ENABLED_ENV.format(index=2), True),
        sensor3_enabled=_read_bool_env(_SENSOR_ENABLED_ENV.format(index=3), True),
        log_level=_read_log_level("info"),
        log_file_path=_read_optional_env(_LOG_FILE_ENV, None),
        sample_period_seconds=_read_positive_float(_PERIOD_ENV, 5.0),
        ticks_per_sample=_read_positive_int(_TICKS_ENV, 60),
        report_every_n_samples=_read_positive_int(_REPORT_ENV, 12),
        history_capacity=_read_positive_int(_CAPACITY_ENV, 100),
        sensor_source=_read_sensor_source("synthetic"),
        sensor_library=_read_str_env(_LIBRARY_ENV, "librsd.so"),
        notify_url=_read_str_env(_NOTIFY_URL_ENV, "https://slack.com/api/chat.postMessage"),
        notify_channel=_read_str_env(_NOTIFY_CHANNEL_ENV, "#drn"),
        notify_token_env=_read_str_env(_NOTIFY_TOKEN_ENV, "APPVIEW_SLACKBOT_TOKEN"),
        notify_timeout_seconds=_read_positive_float(_NOTIFY_TIMEOUT_ENV, 10.0),
        export_host=_read_str_env(_EXPORT_HOST_ENV, "127.0.0.1"),
        export_port=_read_positive_int(_EXPORT_PORT_ENV, 9400),
    )
