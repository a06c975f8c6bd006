"""
CLI interface for Beer Tap Tracker.

Serves the HTTP API and quotes the cost of a dispenser interval.
"""

import sys
from typing import Optional

import typer
import uvicorn
import yaml
from rich.console import Console
from rich.table import Table

from beer_tap_tracker.api.app import create_app
from beer_tap_tracker.config.loader import configure_logging, load_settings
from beer_tap_tracker.core.errors import DispenserError, InvalidDateOrder, InvalidFlowVolume
from beer_tap_tracker.core.pricing import calculate_total_spent, elapsed_seconds
from beer_tap_tracker.core.timestamps import parse_timestamp
from beer_tap_tracker.storage.repository import is_valid_flow_volume

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Beer Tap Tracker CLI."""
    if ctx.invoked_subcommand is None:
        console.print("Beer Tap Tracker - Use --help to see available commands")


@app.command()
def serve(
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML settings file"
    ),
    host: Optional[str] = typer.Option(
        None,
        "--host",
        help="Interface to bind (overrides settings)"
    ),
    port: Optional[int] = typer.Option(
        None,
        "--port",
        "-p",
        help="Port to listen on (overrides settings)"
    )
):
    """Run the dispenser HTTP API."""
    try:
        settings = load_settings(config)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error loading settings:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    configure_logging(settings.logging.level)

    bind_host = host or settings.server.host
    bind_port = port or settings.server.port
    console.print(f"[green]✓[/] Serving dispenser API on http://{bind_host}:{bind_port}/api")

    uvicorn.run(
        create_app(settings=settings),
        host=bind_host,
        port=bind_port,
        log_level=settings.logging.level.lower()
    )


@app.command()
def quote(
    flow_volume: float = typer.Option(
        ...,
        "--flow-volume",
        "-f",
        help="Dispenser flow in litres per second"
    ),
    opened_at: str = typer.Option(
        ...,
        "--opened-at",
        help="ISO-8601 time the tap was opened"
    ),
    closed_at: str = typer.Option(
        ...,
        "--closed-at",
        help="ISO-8601 time the tap was closed"
    ),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML settings file"
    )
):
    """
    Quote what a single open/close interval costs.

    Uses the same pricing as the API, including any configured price per litre.
    """
    try:
        settings = load_settings(config)
        if not is_valid_flow_volume(flow_volume):
            raise InvalidFlowVolume()

        start = parse_timestamp(opened_at)
        end = parse_timestamp(closed_at)
        if end <= start:
            raise InvalidDateOrder()

        price = settings.pricing.price_per_litre
        total = calculate_total_spent(start, end, flow_volume, price)
    except (DispenserError, FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    _display_quote(start, end, flow_volume, price, total)
    sys.exit(EXIT_CODE_PASS)


def _format_currency(amount: float) -> str:
    """Format currency with proper symbols and formatting."""
    return f"${abs(amount):,.2f}"


def _display_quote(start, end, flow_volume, price, total):
    """Display a quote as a one-row table."""
    seconds = elapsed_seconds(start, end)

    table = Table(title="Dispenser Spend Quote")
    table.add_column("Opened at")
    table.add_column("Closed at")
    table.add_column("Seconds", justify="right")
    table.add_column("Litres", justify="right")
    table.add_column("Price/litre", justify="right")
    table.add_column("Total", justify="right")
    table.add_row(
        start.isoformat(),
        end.isoformat(),
        f"{seconds:,.3f}",
        f"{float(seconds) * flow_volume:,.3f}",
        _format_currency(float(price)),
        _format_currency(total)
    )
    console.print(table)
    console.print(f"\n[bold]Total spent:[/bold] {_format_currency(total)}")


if __name__ == "__main__":
    app()
