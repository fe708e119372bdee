"""PetrolScan CLI.

Commands:
- init: Initialize database schema
- classify: Show how a raw fuel name is classified
- crawl: Run configured station crawlers
- ingest: Run the pipeline over an exported CSV/XLSX file
- records: List stored fuel price records
- runs: Show recent crawl runs
"""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from petrolscan.classification.classifier import classify as classify_fuel
from petrolscan.config import get_config
from petrolscan.core.logging import configure_logging
from petrolscan.crawlers.file_source import ObservationFileCrawler
from petrolscan.crawlers.registry import load_crawler_config
from petrolscan.db.connection import close_db, get_session, init_db
from petrolscan.db.store import FuelPriceStore
from petrolscan.models import Station
from petrolscan.pipeline.orchestrator import CrawlSupervisor

app = typer.Typer(
    name="petrolscan",
    help="PetrolScan - fuel price crawler for Czech petrol stations",
    no_args_is_help=True,
)

console = Console()


def _setup_logging() -> None:
    config = get_config()
    configure_logging(config.log_level, config.log_format)


@app.command()
def init(
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables"),
):
    """Initialize database schema."""
    config = get_config()
    console.print(f"[bold]Initializing database:[/bold] {config.db.url}")

    async def _init():
        try:
            if drop:
                console.print("[yellow]Dropping existing tables...[/yellow]")
            await init_db(drop=drop)
        finally:
            await close_db()

    asyncio.run(_init())
    console.print("[bold green]✓[/bold green] Database initialized")


@app.command()
def classify(
    station: str = typer.Argument(..., help="Station identifier, e.g. globus"),
    fuel_name: str = typer.Argument(..., help="Fuel name as shown on the website"),
):
    """Classify a raw fuel name without touching the database."""
    fuel_type, fuel_quality = classify_fuel(station, fuel_name)

    table = Table(show_header=False)
    table.add_row("Station", station)
    table.add_row("Fuel name", fuel_name)
    table.add_row("Type", fuel_type.value)
    table.add_row("Quality", fuel_quality.value)
    console.print(table)


@app.command()
def crawl(
    config_path: Path | None = typer.Option(None, "--config", help="Crawler sources YAML"),
    stations: list[str] | None = typer.Option(None, "--station", help="Only crawl these stations"),
):
    """Run enabled station crawlers and store changed prices."""
    _setup_logging()
    config = get_config()
    config_path = config_path or config.crawlers_config_path

    crawlers = load_crawler_config(config_path, stations=stations or None)
    if not crawlers:
        console.print("[yellow]No enabled crawlers matched[/yellow]")
        raise typer.Exit(code=1)

    console.print(f"[bold]Crawling {len(crawlers)} sources[/bold] ({config_path})")
    summary = asyncio.run(
        _run_supervised(crawlers, max_parallel=config.crawler.max_parallel_stations)
    )
    _print_summary(summary)

    if not summary["overall_success"]:
        raise typer.Exit(code=1)


@app.command()
def ingest(
    file: Path = typer.Argument(..., help="CSV/XLSX file with observations"),
    station: str = typer.Option(..., "--station", help="Station the file belongs to"),
):
    """Run the classification and change-detection pipeline over a file."""
    _setup_logging()

    try:
        station_id = Station(station.lower())
    except ValueError:
        known = ", ".join(s.value for s in Station)
        console.print(f"[red]Unknown station '{station}'.[/red] Known: {known}")
        raise typer.Exit(code=2)

    crawler = ObservationFileCrawler(
        source_name=f"{station_id.value}-file",
        station=station_id,
        config={"file_path": str(file)},
    )
    summary = asyncio.run(_run_supervised([crawler]))
    _print_summary(summary)

    if not summary["overall_success"]:
        raise typer.Exit(code=1)


@app.command()
def records(
    station_name: str | None = typer.Option(None, "--station-name", help="Filter by station name"),
    limit: int = typer.Option(50, "--limit", help="Max rows"),
):
    """List stored fuel price records, newest first."""

    async def _list():
        try:
            async with get_session() as session:
                store = FuelPriceStore(session)
                return await store.list_records(station_name=station_name, limit=limit)
        finally:
            await close_db()

    rows = asyncio.run(_list())

    table = Table(title="Fuel prices")
    table.add_column("Station")
    table.add_column("Location")
    table.add_column("GPS")
    table.add_column("Type")
    table.add_column("Quality")
    table.add_column("Fuel name")
    table.add_column("Price", justify="right")
    table.add_column("Updated")

    for row in rows:
        table.add_row(
            row.station_name,
            row.location_name,
            f"{row.lat:.5f}, {row.lon:.5f}",
            row.fuel_type.value,
            row.fuel_quality.value,
            row.fuel_name,
            f"{row.price:.2f}",
            row.timestamp.strftime("%Y-%m-%d %H:%M") if row.timestamp else "-",
        )

    console.print(table)


@app.command()
def runs(
    limit: int = typer.Option(20, "--limit", help="Max rows"),
):
    """Show recent crawl runs per station."""

    async def _runs():
        try:
            async with get_session() as session:
                return await FuelPriceStore(session).recent_runs(limit=limit)
        finally:
            await close_db()

    entries = asyncio.run(_runs())

    if not entries:
        console.print("[yellow]No crawl runs recorded yet[/yellow]")
        return

    table = Table(title="Crawl runs")
    table.add_column("Run")
    table.add_column("Started")
    table.add_column("Source")
    table.add_column("Status")
    table.add_column("New", justify="right")
    table.add_column("Updated", justify="right")
    table.add_column("Unchanged", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Duration", justify="right")

    for entry in entries:
        style = {"SUCCESS": "green", "PARTIAL_SUCCESS": "yellow"}.get(entry.status, "red")
        table.add_row(
            entry.run_id,
            entry.run_timestamp.strftime("%Y-%m-%d %H:%M"),
            entry.source_name,
            f"[{style}]{entry.status}[/{style}]",
            str(entry.records_inserted),
            str(entry.records_updated),
            str(entry.records_unchanged),
            str(entry.records_failed),
            f"{entry.duration_seconds or 0:.1f}s",
        )

    console.print(table)


async def _run_supervised(crawlers, max_parallel: int | None = None) -> dict:
    """Run crawlers under a supervisor; SIGINT/SIGTERM request a graceful stop."""
    supervisor = CrawlSupervisor(crawlers, max_parallel=max_parallel)
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, supervisor.request_stop)
        except (NotImplementedError, RuntimeError):
            # add_signal_handler is unavailable on Windows event loops
            pass

    try:
        return await supervisor.run()
    finally:
        await close_db()


def _print_summary(summary: dict) -> None:
    for result in summary["results"]:
        mark = "[green]✓[/green]" if result.success else "[red]✗[/red]"
        console.print(f"  {mark} {result.source_name}: {result.message}")

    console.print(
        f"\n[bold]Run {summary['run_id']}:[/bold] "
        f"{summary['successful_sources']}/{summary['total_sources']} sources successful"
    )
    if summary["stopped"]:
        console.print("[yellow]Run was stopped before all sources finished[/yellow]")


if __name__ == "__main__":
    app()
