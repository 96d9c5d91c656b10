from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

import typer
import uvicorn

from app.main import create_app
from app.schemas import LogLevel
from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_history, render_status
from logging_config import configure_logging
from services.supervisor import build_default_supervisor
from settings import get_settings

logger = logging.getLogger(__name__)


@dataclass
class CLIState:
    config: CLIConfig
    client: Optional[ApiClient] = field(default=None)


app = typer.Typer(
    help="Pressure telemetry daemon and tools for querying a running instance.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


def _get_client(ctx: typer.Context) -> ApiClient:
    state = _get_state(ctx)
    if state.client is None:
        state.client = ApiClient(state.config)
        ctx.call_on_close(state.client.close)
    return state.client


def _usage_and_fail(ctx: typer.Context, value: bool) -> None:
    if not value or ctx.resilient_parsing:
        return
    typer.echo(ctx.get_help())
    raise typer.Exit(code=1)


def _wait_for_interrupt() -> None:
    while True:
        time.sleep(1.0)


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Daemon API base URL (defaults to BARO_API_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds for requests to the daemon.",
    ),
) -> None:
    """Entry point for the CLI."""
    ctx.obj = CLIState(config=load_config(base_url=base_url, timeout=timeout))


@app.command("run", context_settings={"help_option_names": []})
def run_command(
    disable_sensor1: bool = typer.Option(False, "-s1", help="Disable the sensor1 worker."),
    disable_sensor2: bool = typer.Option(False, "-s2", help="Disable the sensor2 worker."),
    disable_sensor3: bool = typer.Option(False, "-s3", help="Disable the sensor3 worker."),
    debug: bool = typer.Option(False, "-d", "--debug", help="Raise log verbosity to debug."),
    level: Optional[LogLevel] = typer.Option(None, "-l", "--level", help="Log level.", case_sensitive=False),
    serve: bool = typer.Option(True, "--serve/--no-serve", help="Serve the reporting API while sampling."),
    host: str = typer.Option("127.0.0.1", "--host", help="Address for the reporting API."),
    port: int = typer.Option(8000, "--port", help="Port for the reporting API."),
    _help: bool = typer.Option(
        False,
        "-h",
        "--help",
        is_eager=True,
        expose_value=False,
        callback=_usage_and_fail,
        help="Show this message and exit.",
    ),
) -> None:
    """Start one sampling worker per enabled sensor."""
    settings = get_settings().with_overrides(
        sensor1_enabled=False if disable_sensor1 else None,
        sensor2_enabled=False if disable_sensor2 else None,
        sensor3_enabled=False if disable_sensor3 else None,
        debug_enabled=True if debug else None,
        log_level=level.value if level is not None else None,
    )
    configure_logging(settings)
    supervisor = build_default_supervisor(settings)

    if serve:
        typer.echo(f"Serving reporting API on http://{host}:{port}")
        uvicorn.run(create_app(supervisor), host=host, port=port, log_config=None)
        return

    supervisor.start()
    try:
        _wait_for_interrupt()
    except KeyboardInterrupt:
        typer.echo("Ctrl+C received! Cleaning up...")
        logger.info("Interrupted; stopping workers")
    finally:
        supervisor.shutdown()


@app.command("history")
def history_command(
    ctx: typer.Context,
    sensor_id: str = typer.Argument(..., help="Worker id, e.g. sensor1."),
    wait: float = typer.Option(10.0, "--wait", help="Seconds the daemon waits for the dump."),
) -> None:
    """Ask a running daemon for a sensor's history dump."""
    payload = _get_client(ctx).get_history(sensor_id, wait=wait)
    render_history(payload)


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """List the sensor workers of a running daemon."""
    render_status(_get_client(ctx).list_sensors())
