#!/usr/bin/env python3
"""Command line entry point for newsdesk.

Commands:
- init-db: create the database schema
- seed-feeds: load config/feeds.yaml into the feed registry
- ingest: run one ingestion (all due feeds, or selected feeds/categories)
- trending: recompute trending sets per category
- runs: show recent ingestion runs

Usage:
    newsdesk ingest --secret $CRON_SECRET
    newsdesk ingest --category business --secret $CRON_SECRET
    newsdesk trending --secret $TRENDING_CRON_SECRET
"""

import asyncio
import os
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from loguru import logger

from newsdesk.models.config import PipelineConfig
from newsdesk.storage.store import Store
from newsdesk.triggers import (
    IngestionTriggerResponse,
    TrendingTriggerResponse,
    TriggerStatus,
    trigger_ingestion,
    trigger_trending,
)
from newsdesk.utils.config_loader import load_feeds_config, load_pipeline_config
from newsdesk.utils.logging import setup_logging

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(help="RSS news ingestion and trending selection.")

EXIT_ERROR = 1
EXIT_UNAUTHORIZED = 4
EXIT_INTERRUPTED = 130

ConfigOption = Annotated[
    Path,
    typer.Option("--config", "-c", help="Path to pipeline configuration file"),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose logging")]


def print_header(title: str) -> None:
    """Print a formatted header."""
    print("\n" + "=" * 80)
    print(f"  {title}")
    print("=" * 80 + "\n")


def print_stats(label: str, value: Any) -> None:
    """Print a formatted stat line."""
    print(f"  • {label}: {value}")


def _bootstrap(config_file: Path, verbose: bool) -> tuple[PipelineConfig, Store]:
    config = load_pipeline_config(config_file)
    if verbose:
        config.logging.level = "DEBUG"
    setup_logging(config.logging)
    return config, Store.from_config(config.store)


def _exit_for(status: TriggerStatus) -> None:
    if status is TriggerStatus.UNAUTHORIZED:
        raise typer.Exit(code=EXIT_UNAUTHORIZED)
    if status is TriggerStatus.ERROR:
        raise typer.Exit(code=EXIT_ERROR)


def print_ingestion(response: IngestionTriggerResponse) -> None:
    print_header("📰 Ingestion Results")
    print_stats("Status", response.status.value)
    if response.run_id:
        print_stats("Run", response.run_id)
        print_stats("Overall status", response.overall_status)
        print_stats("Feeds processed", response.feeds_processed)
        print_stats("New articles", response.new_articles)
        print_stats("Skipped", response.skipped)
        print_stats("Errors", response.errors)
        print_stats("Duration", f"{response.duration_ms} ms")
    if response.message:
        print_stats("Message", response.message)


def print_trending(response: TrendingTriggerResponse) -> None:
    print_header("🔥 Trending Results")
    print_stats("Status", response.status.value)
    print_stats("Categories processed", response.categories_processed)
    print_stats("Total trending", response.total_trending)
    for result in response.results:
        detail = f"{result.trending} of {result.candidates} candidates"
        if result.error:
            detail = f"❌ {result.error}"
        print_stats(result.category, detail)
    if response.message:
        print_stats("Message", response.message)


@app.command("init-db")
def init_db(config_file: ConfigOption = Path("config/pipeline.yaml")) -> None:
    """Create all database tables."""
    _, store = _bootstrap(config_file, verbose=False)
    store.close()
    print("✅ Database schema ready")


@app.command("seed-feeds")
def seed_feeds(
    config_file: ConfigOption = Path("config/pipeline.yaml"),
    feeds_file: Annotated[
        Path, typer.Option("--feeds", "-f", help="Path to feeds configuration file")
    ] = Path("config/feeds.yaml"),
) -> None:
    """Insert or update the feeds listed in the feeds configuration file."""
    _, store = _bootstrap(config_file, verbose=False)
    try:
        feeds_config = load_feeds_config(feeds_file)
        for seed in feeds_config.feeds:
            feed_id = store.feeds.upsert_seed(seed)
            print_stats(f"[{feed_id}] {seed.name}", seed.category)
    finally:
        store.close()
    print(f"\n✅ {len(feeds_config.feeds)} feeds registered")


@app.command()
def ingest(
    feed_ids: Annotated[
        list[int] | None, typer.Option("--feed-id", help="Only ingest this feed (repeatable)")
    ] = None,
    categories: Annotated[
        list[str] | None, typer.Option("--category", help="Only ingest this category (repeatable)")
    ] = None,
    scheduled: Annotated[
        bool, typer.Option("--scheduled", help="Record the run as scheduled")
    ] = False,
    secret: Annotated[
        str | None, typer.Option("--secret", help="Shared secret (defaults to the configured env var)")
    ] = None,
    config_file: ConfigOption = Path("config/pipeline.yaml"),
    verbose: VerboseOption = False,
) -> None:
    """Run one ingestion. Without filters, every due feed is processed."""
    config, store = _bootstrap(config_file, verbose)
    secret = secret if secret is not None else os.getenv(config.security.ingestion_secret_env)

    try:
        response = asyncio.run(
            trigger_ingestion(
                store,
                config,
                secret,
                feed_ids=feed_ids,
                categories=categories,
                scheduled=scheduled,
                triggered_by="cli",
            )
        )
    except KeyboardInterrupt as e:
        print("\n\n⚠️  Ingestion interrupted by user")
        logger.warning("Ingestion interrupted by user")
        raise typer.Exit(code=EXIT_INTERRUPTED) from e
    except Exception as e:
        logger.exception("Unexpected ingestion error")
        print(f"\n❌ Ingestion failed with unexpected error: {e}")
        raise typer.Exit(code=EXIT_ERROR) from e
    finally:
        store.close()

    print_ingestion(response)
    _exit_for(response.status)


@app.command()
def trending(
    categories: Annotated[
        list[str] | None, typer.Option("--category", help="Only process this category (repeatable)")
    ] = None,
    secret: Annotated[
        str | None, typer.Option("--secret", help="Shared secret (defaults to the configured env var)")
    ] = None,
    config_file: ConfigOption = Path("config/pipeline.yaml"),
    verbose: VerboseOption = False,
) -> None:
    """Recompute the trending set of each category."""
    config, store = _bootstrap(config_file, verbose)
    secret = secret if secret is not None else os.getenv(config.security.trending_secret_env)

    try:
        response = asyncio.run(trigger_trending(store, config, secret, categories=categories))
    except KeyboardInterrupt as e:
        print("\n\n⚠️  Trending interrupted by user")
        logger.warning("Trending interrupted by user")
        raise typer.Exit(code=EXIT_INTERRUPTED) from e
    except Exception as e:
        logger.exception("Unexpected trending error")
        print(f"\n❌ Trending failed with unexpected error: {e}")
        raise typer.Exit(code=EXIT_ERROR) from e
    finally:
        store.close()

    print_trending(response)
    _exit_for(response.status)


@app.command()
def runs(
    limit: Annotated[int, typer.Option("--limit", "-n", help="Number of runs to show")] = 10,
    config_file: ConfigOption = Path("config/pipeline.yaml"),
) -> None:
    """Show recent ingestion runs with their per-feed summaries."""
    _, store = _bootstrap(config_file, verbose=False)
    try:
        recent = store.runs.recent_runs(limit)
    finally:
        store.close()

    if not recent:
        print("No ingestion runs recorded yet")
        return

    for run in recent:
        print_header(f"{run.run_id} ({run.overall_status.value})")
        print_stats("Started", run.started_at.strftime("%Y-%m-%d %H:%M:%S"))
        print_stats("Trigger", run.trigger.value)
        print_stats("Feeds", run.total_feeds)
        print_stats("New / skipped / errors", f"{run.total_new_articles} / {run.total_skipped} / {run.total_errors}")
        print_stats("Duration", f"{run.duration_ms} ms")
        for feed in run.feeds:
            line = f"{feed.status.value}, {feed.new_articles} new of {feed.items_fetched}"
            if feed.error_details:
                line += f" ({feed.error_details})"
            print_stats(feed.feed_name, line)


if __name__ == "__main__":
    app()
