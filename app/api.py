"""HTTP route definitions for the reporting surface."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app.schemas import (
    CommandAccepted,
    CommandRequest,
    ConfigUpdate,
    ConfigView,
    DataLines,
    ExportResult,
    HistoryDump,
    LogLevel,
    WorkerStatus,
)
from logging_config import configure_logging
from services.supervisor import Supervisor, UnknownWorkerError
from services.worker import header_entry_count, is_header
from settings import Settings, SettingsStore

router = APIRouter()


def get_supervisor(request: Request) -> Supervisor:
    return request.app.state.supervisor


def get_settings_store(request: Request) -> SettingsStore:
    return request.app.state.settings_store


def _require_worker(supervisor: Supervisor, worker_id: str) -> None:
    try:
        supervisor.get_worker(worker_id)
    except UnknownWorkerError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Sensor {worker_id!r} is not enabled.",
        ) from exc


def _config_view(settings: Settings) -> ConfigView:
    return ConfigView(
        debug_enabled=settings.debug_enabled,
        log_level=LogLevel(settings.log_level),
        log_file_path=settings.log_file_path,
        enabled_sensors=settings.enabled_sensors(),
    )


@router.get(
    "/sensors",
    response_model=list[WorkerStatus],
    summary="List running sensor workers.",
)
async def list_sensors(supervisor: Supervisor = Depends(get_supervisor)) -> list[WorkerStatus]:
    return [WorkerStatus(**entry) for entry in supervisor.status()]


@router.post(
    "/sensors/{worker_id}/commands",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=CommandAccepted,
    summary="Queue a command on a worker's command channel.",
)
async def send_command(
    worker_id: str,
    body: CommandRequest,
    supervisor: Supervisor = Depends(get_supervisor),
) -> CommandAccepted:
    _require_worker(supervisor, worker_id)
    if not supervisor.send_command(worker_id, body.command):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Command channel for {worker_id!r} is closed.",
        )
    return CommandAccepted(worker_id=worker_id, command=body.command)


@router.get(
    "/sensors/{worker_id}/data",
    response_model=DataLines,
    summary="Drain lines a worker has pushed onto its data channel.",
)
async def drain_data(
    worker_id: str,
    supervisor: Supervisor = Depends(get_supervisor),
) -> DataLines:
    _require_worker(supervisor, worker_id)
    return DataLines(worker_id=worker_id, lines=supervisor.drain_data(worker_id))


@router.get(
    "/sensors/{worker_id}/history",
    response_model=HistoryDump,
    summary="Request a history dump and wait for it to arrive.",
)
def get_history(
    worker_id: str,
    timeout: float = Query(10.0, gt=0, le=120),
    supervisor: Supervisor = Depends(get_supervisor),
) -> HistoryDump:
    _require_worker(supervisor, worker_id)
    lines = supervisor.collect_report(worker_id, timeout=timeout)
    if not lines or not is_header(lines[0]):
        return HistoryDump(worker_id=worker_id)
    header, entries = lines[0], lines[1:]
    complete = header_entry_count(header) == len(entries)
    return HistoryDump(worker_id=worker_id, header=header, entries=entries, complete=complete)


@router.post(
    "/sensors/{worker_id}/export",
    response_model=ExportResult,
    summary="Send a worker's history dump to the TCP export sink.",
)
def export_history(
    worker_id: str,
    timeout: float = Query(10.0, gt=0, le=120),
    supervisor: Supervisor = Depends(get_supervisor),
) -> ExportResult:
    _require_worker(supervisor, worker_id)
    if not supervisor.export(worker_id, timeout=timeout):
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Export of {worker_id!r} history failed.",
        )
    return ExportResult(worker_id=worker_id, exported=True)


@router.get("/admin/config", response_model=ConfigView, summary="Show runtime settings.")
async def read_config(store: SettingsStore = Depends(get_settings_store)) -> ConfigView:
    return _config_view(store.snapshot())


@router.patch("/admin/config", response_model=ConfigView, summary="Overwrite log verbosity settings.")
async def update_config(
    body: ConfigUpdate,
    store: SettingsStore = Depends(get_settings_store),
) -> ConfigView:
    updated = store.update(
        debug_enabled=body.debug_enabled,
        log_level=body.log_level.value if body.log_level is not None else None,
    )
    configure_logging(updated, force=True)
    return _config_view(updated)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
