"""
CLI Interface
=============
Command-line interface for the reading-order engine.

Usage:
    python -m readingorder analyze <pdf_path> [options]
    python -m readingorder render <cache_json> [options]
    python -m readingorder info <pdf_path>
"""

from __future__ import annotations

import json
import os
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from . import __version__
from .engine import AnalyzerConfig, AnalyzerEngine
from .exporter import export_pages
from .models import DocumentResult

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="readingorder")
def cli():
    """Reading-order reconstruction for typeset, multi-column PDFs."""
    pass


def _heuristic_options(func):
    """Options shared by commands that run the page analyzer."""
    options = [
        click.option(
            "--output", "-o",
            default="output",
            help="Output directory for exported text",
        ),
        click.option(
            "--title-threshold",
            default=0.5,
            type=float,
            help="Titles at or below this page height become section dividers",
        ),
        click.option(
            "--collision-tolerance",
            default=0.0,
            type=float,
            help="Edge tolerance for dropping table cell duplicates (0 = exact)",
        ),
        click.option(
            "--log-level",
            default="INFO",
            type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
            help="Logging level",
        ),
        click.option(
            "--log-file",
            default=None,
            help="Path to log file",
        ),
        click.option(
            "--json-output",
            is_flag=True,
            default=False,
            help="Print the page-number -> text mapping as JSON to stdout",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=True))
@_heuristic_options
@click.option(
    "--name", "-n",
    default="",
    help="Document name for cache and output files (defaults to filename)",
)
@click.option(
    "--cache-dir",
    default=None,
    help="Directory holding page caches (default: $READINGORDER_CACHE_DIR or ./cache)",
)
@click.option(
    "--page-start",
    default=None,
    type=int,
    help="First page (0-indexed)",
)
@click.option(
    "--page-end",
    default=None,
    type=int,
    help="End page (0-indexed, exclusive)",
)
@click.option(
    "--concurrency", "-j",
    default=4,
    type=int,
    help="Maximum number of pages sent to the layout service at once",
)
@click.option(
    "--keep-going",
    is_flag=True,
    default=False,
    help="Keep issuing requests after a page fails",
)
def analyze(
    pdf_path: str,
    output: str,
    title_threshold: float,
    collision_tolerance: float,
    log_level: str,
    log_file: str,
    json_output: bool,
    name: str,
    cache_dir: str,
    page_start: int,
    page_end: int,
    concurrency: int,
    keep_going: bool,
):
    """Fetch layout results for a PDF and reconstruct its reading order."""

    if json_output:
        # Suppress console output for JSON mode
        log_level = "ERROR"

    page_range = None
    if page_start is not None or page_end is not None:
        page_range = (page_start or 0, page_end if page_end is not None else 99999)

    config = AnalyzerConfig(
        title_promotion_threshold=title_threshold,
        collision_tolerance=collision_tolerance,
        concurrency=concurrency,
        stop_on_failure=not keep_going,
        cache_dir=cache_dir,
        document_name=name,
        page_range=page_range,
        output_dir=output,
        log_level=log_level,
        log_file=log_file,
    )

    if not json_output:
        _banner("Analyzing", pdf_path)

    try:
        engine = AnalyzerEngine(config)

        if json_output:
            result = engine.analyze(pdf_path)
        else:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=console,
            ) as progress:
                task = progress.add_task("Fetching pages...", total=None)

                def on_progress(finished: int, total: int):
                    progress.update(task, completed=finished, total=total)

                result = engine.analyze(pdf_path, progress_callback=on_progress)

        _finish(result, json_output)

    except FileNotFoundError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)
    except RuntimeError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/] {e}")
        if log_level == "DEBUG":
            console.print_exception()
        sys.exit(1)


@cli.command()
@click.argument("cache_json", type=click.Path(exists=True))
@_heuristic_options
def render(
    cache_json: str,
    output: str,
    title_threshold: float,
    collision_tolerance: float,
    log_level: str,
    log_file: str,
    json_output: bool,
):
    """Reconstruct reading order from an existing page cache (offline)."""

    if json_output:
        log_level = "ERROR"

    config = AnalyzerConfig(
        title_promotion_threshold=title_threshold,
        collision_tolerance=collision_tolerance,
        output_dir=output,
        log_level=log_level,
        log_file=log_file,
    )

    if not json_output:
        _banner("Rendering", cache_json)

    try:
        result = AnalyzerEngine(config).render_cache(cache_json)
        _finish(result, json_output)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/] {e}")
        if log_level == "DEBUG":
            console.print_exception()
        sys.exit(1)


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=True))
@click.option("--cache-dir", default=None, help="Directory holding page caches")
def info(pdf_path: str, cache_dir: str):
    """Display PDF file information and cache coverage."""
    from pathlib import Path

    from .page_extractor import get_page_count
    from .storage import PageCache

    page_count = get_page_count(pdf_path)
    cache = PageCache(Path(pdf_path).stem, cache_dir)
    cached = cache.load() if cache.path.exists() else {}

    console.print()
    table = Table(title="PDF Information", border_style="cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")

    table.add_row("File", os.path.basename(pdf_path))
    table.add_row("Pages", str(page_count))
    table.add_row(
        "File Size",
        f"{os.path.getsize(pdf_path) / 1024 / 1024:.2f} MB",
    )
    table.add_row("Cache File", str(cache.path))
    table.add_row("Cached Pages", f"{len(cached)} / {page_count}")

    console.print(table)
    console.print()


# ─── Display Helpers ──────────────────────────────────────────────────────────


def _banner(action: str, path: str):
    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Reading-Order Engine v{__version__}[/]\n"
            f"[dim]{action}: {os.path.basename(path)}[/]",
            border_style="cyan",
        )
    )
    console.print()


def _finish(result: DocumentResult, json_output: bool):
    if json_output:
        # Output clean JSON to stdout
        print(json.dumps(
            {str(k): v for k, v in sorted(export_pages(result.pages).items())},
            indent=2,
            ensure_ascii=False,
        ))
        return

    try:
        _display_results(result)
    except UnicodeEncodeError:
        # Windows console may not support special chars
        print(f"Analysis complete: {len(result.pages)} pages")


def _display_results(result: DocumentResult):
    """Display per-page results and the continuity report."""
    console.print()

    table = Table(title=f"Pages: {result.document_name}", border_style="cyan")
    table.add_column("Source", justify="right")
    table.add_column("Printed", justify="right")
    table.add_column("Title")
    table.add_column("Sections", justify="right")
    table.add_column("Paragraphs", justify="right")
    table.add_column("Strategy", justify="center")

    for page in result.pages:
        printed = str(page.logical_page_number)
        if not page.page_number_detected:
            printed = f"[dim]{printed}[/]"
        table.add_row(
            str(page.source_page_index),
            printed,
            page.title or "",
            str(len(page.sections)),
            str(page.paragraph_count),
            page.assembly_strategy.value,
        )

    console.print(table)
    console.print()
    _display_report_table(result.report.model_dump())


def _display_report_table(report: dict):
    """Display the continuity report as a rich table."""
    table = Table(title="Continuity Report", border_style="green")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Status", justify="center")

    def status_icon(count, threshold=0):
        if count <= threshold:
            return "[green]✓[/]"
        return "[red]✗[/]"

    total = report.get("total_pages", 0)
    rate = report.get("structured_rate", 0)
    table.add_row(
        "Pages Analyzed",
        str(total),
        "[green]✓[/]" if total > 0 else "[red]✗[/]",
    )
    table.add_row(
        "Pages With Sections",
        f"{report.get('pages_with_sections', 0)} ({rate}%)",
        "[green]✓[/]" if rate >= 90 else "[yellow]⚠[/]",
    )

    for label, key in [
        ("Missing Page Numbers", "missing_page_numbers"),
        ("Duplicate Page Numbers", "duplicate_page_numbers"),
        ("Defaulted Page Numbers", "defaulted_page_numbers"),
        ("Failed Fetches", "failed_fetches"),
        ("Skipped Fetches", "skipped_fetches"),
    ]:
        values = report.get(key, [])
        table.add_row(label, str(len(values)), status_icon(len(values)))

    fallback = report.get("fallback_pages", [])
    table.add_row("Linear Fallback Pages", str(len(fallback)), "[dim]-[/]")

    console.print(table)
    console.print()

    failed = report.get("failed_fetches", [])
    if failed:
        console.print(f"[red]Failed pages:[/] {', '.join(map(str, failed))}")
        console.print()


# ─── Entry point (for python -m readingorder.cli) ─────────────────────────────


if __name__ == "__main__":
    cli()
