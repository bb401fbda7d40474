"""CLI entry point for the catalog sync engine.

``run`` performs a single on-demand sync; ``schedule`` re-triggers the same
entry point on an interval. Both load the local catalog snapshot, run the
orchestrator and write the catalog and a JSON run report back to disk.
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from catalog_sync import __version__
from catalog_sync.errors import ProbeFailure
from catalog_sync.models.config import ConfigManager, SyncConfig
from catalog_sync.models.data_models import RunState, SyncReport
from catalog_sync.pipeline.orchestrator import sync_session
from catalog_sync.pipeline.output import JSONOutputFormatter
from catalog_sync.pipeline.scheduler import PeriodicTrigger
from catalog_sync.store.memory import InMemoryCatalogStore


console = Console()


def _common_options(func):
    options = [
        click.option(
            "--config", "-c",
            type=click.Path(path_type=Path),
            default="config/config.yaml",
            help="Path to configuration YAML file",
        ),
        click.option("--feed-url", "-u", type=str, help="Product feed URL (overrides config)"),
        click.option("--batch-size", "-b", type=int, help="Items per batch task (overrides config)"),
        click.option("--page-size", type=int, help="Items per HTTP request (overrides config)"),
        click.option("--workers", "-w", type=int, help="Number of concurrent workers (overrides config)"),
        click.option("--max-retries", type=int, help="Attempts per request (overrides config)"),
        click.option("--safe-max", type=int, help="Maximum items per run (overrides config)"),
        click.option("--timeout", "-t", type=float, help="Run timeout in seconds (overrides config)"),
        click.option(
            "--store", "-s",
            type=click.Path(path_type=Path),
            help="Catalog snapshot file (overrides config)",
        ),
        click.option(
            "--output", "-o",
            type=click.Path(path_type=Path),
            help="Run report JSON path (overrides config)",
        ),
        click.option(
            "--log-level", "-l",
            type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
            help="Logging level (overrides config)",
        ),
        click.option("--no-progress", is_flag=True, help="Disable progress display (useful for CI/CD)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _load_config(
    config: Path,
    feed_url: Optional[str],
    batch_size: Optional[int],
    page_size: Optional[int],
    workers: Optional[int],
    max_retries: Optional[int],
    safe_max: Optional[int],
    timeout: Optional[float],
    store: Optional[Path],
    log_level: Optional[str],
) -> SyncConfig:
    cli_overrides = {
        "feed_url": feed_url,
        "batch_size": batch_size,
        "page_size": page_size,
        "worker_count": workers,
        "max_retries": max_retries,
        "safe_max_items": safe_max,
        "run_timeout": timeout,
        "store_path": str(store) if store else None,
        "log_level": log_level.upper() if log_level else None,
    }
    return ConfigManager(config).load_config(cli_overrides)


@click.group()
@click.version_option(version=__version__, prog_name="catalog-sync")
def cli() -> None:
    """
    Catalog Sync - Concurrent product feed to catalog synchronization.

    Fetches the paginated product feed in parallel batches, creates or
    updates catalog products by external id, links categories and reports
    per-run statistics.
    """


@cli.command()
@_common_options
def run(
    config: Path,
    feed_url: Optional[str],
    batch_size: Optional[int],
    page_size: Optional[int],
    workers: Optional[int],
    max_retries: Optional[int],
    safe_max: Optional[int],
    timeout: Optional[float],
    store: Optional[Path],
    output: Optional[Path],
    log_level: Optional[str],
    no_progress: bool,
) -> None:
    """
    Run a single sync now.

    Examples:

        # Run with default configuration
        $ catalog-sync run

        # Smaller batches, more workers
        $ catalog-sync run --batch-size 10 --workers 8
    """
    try:
        sync_config = _load_config(
            config, feed_url, batch_size, page_size, workers,
            max_retries, safe_max, timeout, store, log_level,
        )
        output_path = output if output else sync_config.output_path

        _display_config_summary(sync_config, no_progress)

        catalog = InMemoryCatalogStore.load(sync_config.store_path)
        report = asyncio.run(_run_once(sync_config, catalog, output_path, no_progress))

        _display_results(report, output_path, no_progress)
        sys.exit(0)

    except ProbeFailure as e:
        console.print(f"\n[red]Sync failed:[/red] {e}", style="bold red")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Sync interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"\n[red]Error:[/red] {e}", style="bold red")
        sys.exit(1)


@cli.command()
@_common_options
@click.option("--interval", "-i", type=float, help="Seconds between runs (overrides config)")
@click.option("--iterations", "-n", type=int, help="Stop after this many runs (default: run forever)")
def schedule(
    config: Path,
    feed_url: Optional[str],
    batch_size: Optional[int],
    page_size: Optional[int],
    workers: Optional[int],
    max_retries: Optional[int],
    safe_max: Optional[int],
    timeout: Optional[float],
    store: Optional[Path],
    output: Optional[Path],
    log_level: Optional[str],
    no_progress: bool,
    interval: Optional[float],
    iterations: Optional[int],
) -> None:
    """Run a sync every --interval seconds."""
    try:
        sync_config = _load_config(
            config, feed_url, batch_size, page_size, workers,
            max_retries, safe_max, timeout, store, log_level,
        )
        output_path = output if output else sync_config.output_path
        every = interval if interval is not None else sync_config.schedule_interval

        _display_config_summary(sync_config, no_progress)
        console.print(f"[cyan]Scheduling sync every {every}s[/cyan]")

        catalog = InMemoryCatalogStore.load(sync_config.store_path)
        asyncio.run(_run_scheduled(sync_config, catalog, output_path, every, iterations, no_progress))
        sys.exit(0)

    except KeyboardInterrupt:
        console.print("\n[yellow]Scheduler stopped by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"\n[red]Error:[/red] {e}", style="bold red")
        sys.exit(1)


async def _run_once(
    config: SyncConfig,
    catalog: InMemoryCatalogStore,
    output_path: Path,
    no_progress: bool,
) -> SyncReport:
    """Run one sync, persisting the catalog and the report."""
    formatter = JSONOutputFormatter()
    async with sync_session(config, catalog) as orchestrator:
        if no_progress:
            console.print("[cyan]Running sync...[/cyan]")
            report = await orchestrator.trigger()
        else:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                TimeElapsedColumn(),
                console=console,
            ) as progress:
                task_id = progress.add_task("[cyan]Syncing catalog...", total=None)
                report = await orchestrator.trigger()
                progress.update(task_id, completed=True)

        catalog.save(config.store_path)
        formatter.save(report, str(output_path), status=orchestrator.status())
    return report


async def _run_scheduled(
    config: SyncConfig,
    catalog: InMemoryCatalogStore,
    output_path: Path,
    interval: float,
    iterations: Optional[int],
    no_progress: bool,
) -> int:
    formatter = JSONOutputFormatter()
    async with sync_session(config, catalog) as orchestrator:

        def on_report(report: SyncReport) -> None:
            catalog.save(config.store_path)
            formatter.save(report, str(output_path), status=orchestrator.status())
            _display_results(report, output_path, no_progress)

        trigger = PeriodicTrigger(orchestrator, interval, on_report=on_report)
        return await trigger.run(iterations)


def _display_config_summary(config: SyncConfig, no_progress: bool) -> None:
    """Display configuration summary before running."""
    if no_progress:
        return

    console.print("\n[bold cyan]Sync Configuration[/bold cyan]")
    console.print(f"  Feed: {config.feed_url}")
    console.print(f"  Batch Size: {config.batch_size} (page size {config.page_size})")
    console.print(f"  Workers: {config.worker_count}")
    console.print(f"  Max Items: {config.safe_max_items}")
    console.print(f"  Retries: {config.max_retries} attempts, backoff {config.initial_backoff}s-{config.max_backoff}s")
    console.print(f"  Catalog: {config.store_path}")
    console.print()


def _display_results(report: SyncReport, output_path: Path, no_progress: bool) -> None:
    """Display final run summary."""
    stats = report.stats
    if no_progress:
        console.print(
            f"✓ Sync {report.status.value}: {stats.created} created, "
            f"{stats.updated} updated, {stats.errors} errors"
        )
        console.print(f"✓ Report saved to: {output_path}")
        return

    title_style = "bold green" if report.status is RunState.SUCCEEDED and not stats.errors else "bold yellow"
    console.print(f"\n[{title_style}]Sync {report.status.value}![/{title_style}]\n")

    table = Table(title="Sync Statistics", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Items Processed", str(stats.items_processed))
    table.add_row("Products Created", str(stats.created))
    table.add_row("Products Updated", str(stats.updated))
    table.add_row("Categories Created", str(stats.categories_created))
    table.add_row("Batches Processed", f"{stats.batches_processed}/{report.task_count}")
    table.add_row("Batches Failed", str(stats.batches_failed))
    table.add_row("Errors", str(stats.errors))
    table.add_row("Duration", f"{report.duration_seconds:.2f}s")

    console.print(table)
    if report.timed_out:
        console.print(f"[yellow]{report.error}[/yellow]")
    console.print(f"\n[bold]Report saved to:[/bold] {output_path}\n")


if __name__ == "__main__":
    cli()
