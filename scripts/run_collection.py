#!/usr/bin/env python3
"""
Command-line interface for collecting job records.

Uses typer for clean CLI with subcommands.
"""

import sys
from pathlib import Path
from typing import List, Optional

import typer

# Add project root to path so we can import clearscout
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from clearscout.contexts.collection import CollectionState, URLFetcher
from clearscout.contexts.collection.orchestration import (
    STRATEGY_ORDER,
    STATUS_FAILED,
    _setup_logger,
    build_strategies,
    run_collection,
)
from clearscout.contexts.storage import get_record_sink
from clearscout.utils import load_config

app = typer.Typer(
    add_completion=False,
    help="clearscout job collection",
)


@app.command("run")
def run_command(
    strategies: Optional[List[str]] = typer.Argument(
        None,
        help="Strategies to run, in priority order (api, sitemap, directory). If none specified, runs all.",
    ),
    results_wanted: Optional[int] = typer.Option(
        None, "--results-wanted", "-n", help="Number of records to collect", min=0
    ),
    keywords: Optional[str] = typer.Option(None, "--keywords", "-k", help="Search keywords"),
    location: Optional[str] = typer.Option(None, "--location", "-l", help="City, state or zip"),
    clearance: Optional[str] = typer.Option(None, "--clearance", "-c", help="Security clearance level"),
    batch_width: Optional[int] = typer.Option(
        None, "--batch-width", "-b", help="Concurrent requests per batch", min=1
    ),
    html_only: bool = typer.Option(False, "--html-only", help="Skip the structured API strategy"),
    config: Optional[List[Path]] = typer.Option(
        None, "--config", help="Extra collection YAML files layered over config/collection.yaml"
    ),
    sink: Optional[str] = typer.Option(None, "--sink", "-s", help="Sink backend: jsonl or postgres"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Hide progress bars"),
):
    """
    Collect job records, falling back from the API to the sitemap to the directory walk.

    Examples:

        # Collect 50 records with default settings
        $ run_collection.py run

        # 20 records matching a keyword, HTML strategies only
        $ run_collection.py run -n 20 -k analyst --html-only

        # Only the sitemap strategy, into PostgreSQL
        $ run_collection.py run sitemap --sink postgres
    """
    if strategies:
        invalid = [s for s in strategies if s not in STRATEGY_ORDER]
        if invalid:
            typer.secho(f"Error: Unknown strategy(ies): {', '.join(invalid)}", fg=typer.colors.RED, err=True)
            typer.echo(f"\nAvailable strategies: {', '.join(STRATEGY_ORDER)}", err=True)
            raise typer.Exit(code=1)

    collection_config = load_config("collection", overrides=config)
    overrides = {
        "results_wanted": results_wanted,
        "keywords": keywords,
        "location": location,
        "clearance": clearance,
        "batch_width": batch_width,
    }
    for key, value in overrides.items():
        if value is not None:
            collection_config[key] = value
    if html_only:
        collection_config.prefer_html_only = True

    fetch_config = load_config("fetch")
    log_file = _setup_logger()
    typer.echo(f"Logging to: {log_file}")

    fetcher = URLFetcher.from_config(fetch_config)
    state = CollectionState(results_wanted=collection_config.results_wanted)

    try:
        with get_record_sink(sink) as record_sink:
            chain = build_strategies(collection_config, fetcher, record_sink, names=strategies, verbose=not quiet)
            report = run_collection(chain, state, verbose=not quiet)
    except KeyboardInterrupt:
        typer.secho("\n\nInterrupted by user", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=130)
    finally:
        fetcher.transport.close()

    for name, result in report.strategies.items():
        colour = typer.colors.RED if result["status"] == STATUS_FAILED else typer.colors.GREEN
        typer.secho(f"  {name:<10} {result['status']:<8} {result['saved']:4d} saved", fg=colour)
    typer.echo(f"Total: {report.total_saved}/{report.results_wanted}")


@app.command("strategies")
def strategies_command():
    """List the collection strategies in priority order."""
    typer.secho(f"Strategies ({len(STRATEGY_ORDER)}):", fg=typer.colors.BLUE, bold=True)
    for position, name in enumerate(STRATEGY_ORDER, start=1):
        typer.echo(f"  {position}. {name}")


if __name__ == "__main__":
    app()
