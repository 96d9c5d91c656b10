"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class LogLevel(str, Enum):
    """Log verbosity names accepted by the daemon."""

    trace = "trace"
    debug = "debug"
    info = "info"
    warn = "warn"
    error = "error"


class WorkerStatus(BaseModel):
    """Snapshot of one sensor worker."""

    worker_id: str
    state: str
    running: bool
    samples_taken: int = Field(..., ge=0)
    reports_sent: int = Field(..., ge=0)
    history_size: int = Field(..., ge=0)


class CommandRequest(BaseModel):
    """Command to enqueue on a worker's command channel."""

    command: str = Field("dump", min_length=1, description="Only 'dump' is understood.")


class CommandAccepted(BaseModel):
    worker_id: str
    command: str


class DataLines(BaseModel):
    """Raw lines relayed from a worker's data channel."""

    worker_id: str
    lines: List[str] = Field(default_factory=list)


class HistoryDump(BaseModel):
    """A complete dump: header line plus retained history records."""

    worker_id: str
    header: Optional[str] = None
    entries: List[str] = Field(default_factory=list)
    complete: bool = False


class ExportResult(BaseModel):
    worker_id: str
    exported: bool


class ConfigView(BaseModel):
    """Runtime settings exposed to administrators."""

    debug_enabled: bool
    log_level: LogLevel
    log_file_path: Optional[str] = None
    enabled_sensors: List[str] = Field(default_factory=list)


class ConfigUpdate(BaseModel):
    debug_enabled: Optional[bool] = None
    log_level: Optional[LogLevel] = None
