from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_history(payload: Dict[str, Any]) -> None:
    echo_heading("History Dump")
    echo_key_values(
        [
            ("sensor", payload.get("worker_id")),
            ("header", payload.get("header")),
            ("complete", payload.get("complete")),
        ]
    )

    entries = payload.get("entries") or []
    typer.echo()
    echo_heading("Entries")
    if entries:
        for entry in entries:
            typer.echo(f"  {entry}")
    else:
        typer.echo("No entries recorded.")


def render_status(workers: List[Dict[str, Any]]) -> None:
    echo_heading("Workers")
    if not workers:
        typer.echo("No sensor workers are running.")
        return
    for worker in workers:
        typer.echo(
            f"  - {worker.get('worker_id')}: state={worker.get('state')} "
            f"samples={worker.get('samples_taken')} reports={worker.get('reports_sent')} "
            f"history={worker.get('history_size')}"
        )
