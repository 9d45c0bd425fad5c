from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def _format_ts(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return str(value)
    try:
        moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return str(value)
    return moment.isoformat(timespec="seconds").replace("+00:00", "Z")


def _format_value(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, (int, float)):
        return f"{value:.2f}"
    return str(value)


def render_readings(readings: Iterable[Dict[str, Any]]) -> None:
    items = list(readings)
    echo_heading(f"Readings ({len(items)})")
    if not items:
        typer.echo("No readings buffered yet.")
        return
    for reading in items:
        typer.echo(
            f"{_format_ts(reading.get('ts'))}  "
            f"temp={_format_value(reading.get('temp'))}  "
            f"hum={_format_value(reading.get('hum'))}"
        )
