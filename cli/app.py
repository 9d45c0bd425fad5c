from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer
import uvicorn

from broker.simulator import publish_readings
from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_readings
from logging_config import configure_logging
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig


app = typer.Typer(
    help="Utilities for running and inspecting the telemetry dashboard.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Dashboard base URL (defaults to API_BASE_URL env or http://localhost:3000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    ctx.obj = CLIState(config=load_config(base_url=base_url, timeout=timeout))


@app.command("serve")
def serve_command(
    host: Optional[str] = typer.Option(None, "--host", help="Interface to bind (defaults to HOST env)."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to listen on (defaults to PORT env)."),
) -> None:
    """Run the dashboard server."""
    settings = get_settings()
    configure_logging()
    uvicorn.run(
        "app.main:app",
        host=host or settings.host,
        port=port or settings.port,
        log_config=None,
    )


@app.command("readings")
def readings_command(
    ctx: typer.Context,
    last: Optional[int] = typer.Option(
        None,
        "--last",
        "-n",
        min=1,
        help="Only show the most recent N readings.",
    ),
) -> None:
    """Print the readings currently retained by the server."""
    state = _get_state(ctx)
    client = ApiClient(state.config)
    try:
        readings = client.get_readings()
    finally:
        client.close()
    if last is not None:
        readings = readings[-last:]
    render_readings(readings)


@app.command("simulate")
def simulate_command(
    count: int = typer.Option(10, "--count", "-c", min=1, help="Number of readings to publish."),
    interval: float = typer.Option(2.0, "--interval", min=0.0, help="Seconds between readings."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for reproducible values."),
) -> None:
    """Publish simulated device readings to the configured broker topic."""
    settings = get_settings()
    configure_logging()
    typer.echo(f"Publishing {count} readings to {settings.topic} on {settings.broker_url} ...")
    try:
        published = publish_readings(
            url=settings.broker_url,
            topic=settings.topic,
            count=count,
            interval=interval,
            username=settings.broker_username,
            password=settings.broker_password,
            seed=seed,
        )
    except (OSError, ValueError) as exc:
        typer.secho(f"Simulation failed: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    typer.secho(f"Published {published}/{count} readings.", fg=typer.colors.GREEN)
