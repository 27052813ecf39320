"""Step 2: Ingestion orchestration.

Selects feeds, fetches them concurrently, deduplicates and persists new items,
and records the run through the run logger.
"""

import asyncio
import secrets
import time
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TYPE_CHECKING

import aiohttp
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from newsdesk.clock import elapsed_ms, utc_now
from newsdesk.constants import (
    CONCURRENT_DUPLICATE_REASON,
    DEADLINE_EXCEEDED_MESSAGE,
    DUPLICATE_REASON,
    MAX_ERROR_DISPLAY,
)
from newsdesk.models.articles import NewArticle
from newsdesk.models.config import FetchConfig, IngestionConfig
from newsdesk.models.feeds import FeedConfig, FetchResult, IngestionScope, NormalizedItem
from newsdesk.models.runs import (
    FeedIngestionLog,
    IngestionRun,
    ItemAction,
    ItemOutcome,
    RunStatus,
    TriggerKind,
)
from newsdesk.steps.step1_fetch import fetch_feed_detailed
from newsdesk.storage.store import Store
from newsdesk.utils.logging import get_logger
from newsdesk.utils.slug import generate_unique_slug
from newsdesk.utils.text import calculate_reading_time

if TYPE_CHECKING:
    from loguru import Logger

Fetcher = Callable[..., Awaitable[FetchResult]]


def generate_run_id(trigger: TriggerKind) -> str:
    """Run id such as `manual-1718000000000-a1b2c3`."""
    return f"{trigger.value}-{int(time.time() * 1000)}-{secrets.token_hex(3)}"


def _millis_token() -> str:
    return str(int(time.time() * 1000))


def feed_status(items_fetched: int, errors: int) -> RunStatus:
    """Success with no errors, error when every item failed, partial otherwise."""
    if errors == 0:
        return RunStatus.SUCCESS
    if errors >= items_fetched:
        return RunStatus.ERROR
    return RunStatus.PARTIAL


def overall_status(feed_logs: list[FeedIngestionLog]) -> RunStatus:
    """
    Aggregate per-feed statuses.

    All feeds successful (or no feeds) is success, all feeds in error is
    error, any other mix is partial.
    """
    statuses = {log.status for log in feed_logs}
    if not statuses or statuses == {RunStatus.SUCCESS}:
        return RunStatus.SUCCESS
    if statuses == {RunStatus.ERROR}:
        return RunStatus.ERROR
    return RunStatus.PARTIAL


def select_feeds(store: Store, scope: IngestionScope) -> list[FeedConfig]:
    """Resolve a scope to feeds. Explicit ids or categories bypass the due check."""
    if scope.feed_ids:
        return store.feeds.by_ids(scope.feed_ids)
    if scope.categories:
        return store.feeds.by_categories(scope.categories)
    return store.feeds.due_feeds(utc_now())


def ingest_item(
    store: Store,
    item: NormalizedItem,
    feed: FeedConfig,
    run_id: str,
) -> ItemOutcome:
    """
    Deduplicate and persist one item.

    Store errors on insert become an `error` outcome instead of propagating.
    """
    outcome = ItemOutcome(
        run_id=run_id,
        feed_id=feed.id,
        feed_name=feed.name,
        item_title=item.title,
        item_url=item.link,
        item_published_at=item.published_at,
        action=ItemAction.NEW,
    )

    if store.articles.find_duplicate(item.link, item.title) is not None:
        return outcome.model_copy(update={"action": ItemAction.SKIPPED, "reason": DUPLICATE_REASON})

    try:
        slug = generate_unique_slug(item.title, store.articles.slug_exists, _millis_token)
        article_id = store.articles.insert(
            NewArticle(
                title=item.title,
                slug=slug,
                excerpt=item.description,
                content=item.description,
                featured_image=item.image_url,
                category=feed.category,
                source_name=item.source_name,
                source_url=item.link,
                reading_time=calculate_reading_time(item.description),
                published_at=item.published_at,
            )
        )
    except IntegrityError as e:
        # Another run inserted the same item between the check and the insert
        if store.articles.find_duplicate(item.link, item.title) is not None:
            return outcome.model_copy(
                update={"action": ItemAction.SKIPPED, "reason": CONCURRENT_DUPLICATE_REASON}
            )
        return outcome.model_copy(update={"action": ItemAction.ERROR, "error_message": str(e.orig)})
    except SQLAlchemyError as e:
        return outcome.model_copy(update={"action": ItemAction.ERROR, "error_message": str(e)})

    return outcome.model_copy(update={"article_id": article_id})


def _ingest_and_record(store: Store, item: NormalizedItem, feed: FeedConfig, run_id: str) -> ItemOutcome:
    outcome = ingest_item(store, item, feed, run_id)
    store.runs.record_item(outcome)
    return outcome


async def process_feed(
    store: Store,
    feed: FeedConfig,
    run_id: str,
    session: aiohttp.ClientSession,
    fetch_config: FetchConfig,
    fetcher: Fetcher = fetch_feed_detailed,
    log: "Logger | None" = None,
) -> FeedIngestionLog:
    """
    Fetch one feed and ingest its items sequentially, in feed order.

    Store calls run in worker threads so other feeds keep fetching meanwhile.
    """
    log = log or get_logger(__name__)
    started_at = utc_now()

    result = await fetcher(feed, fetch_config, session, log)

    new = skipped = errors = 0
    error_messages: list[str] = []

    for item in result.items:
        outcome = await asyncio.to_thread(_ingest_and_record, store, item, feed, run_id)

        if outcome.action is ItemAction.NEW:
            new += 1
        elif outcome.action is ItemAction.SKIPPED:
            skipped += 1
        else:
            errors += 1
            error_messages.append(f"{outcome.item_title[:60]}: {outcome.error_message}")

    await asyncio.to_thread(store.feeds.mark_fetched, feed.id)

    if error_messages:
        error_details = "; ".join(error_messages[:MAX_ERROR_DISPLAY])
        if len(error_messages) > MAX_ERROR_DISPLAY:
            error_details += f" (+{len(error_messages) - MAX_ERROR_DISPLAY} more)"
    else:
        error_details = result.describe_failure()

    completed_at = utc_now()
    entry = FeedIngestionLog(
        run_id=run_id,
        feed_id=feed.id,
        feed_name=feed.name,
        category=feed.category,
        status=feed_status(len(result.items), errors),
        items_fetched=len(result.items),
        new_articles=new,
        skipped_articles=skipped,
        errors_count=errors,
        error_details=error_details,
        duration_ms=elapsed_ms(started_at, completed_at),
        started_at=started_at,
        completed_at=completed_at,
    )
    await asyncio.to_thread(store.runs.record_feed, entry)
    return entry


def _failed_feed_log(
    feed: FeedConfig, run_id: str, started_at: datetime, message: str
) -> FeedIngestionLog:
    completed_at = utc_now()
    return FeedIngestionLog(
        run_id=run_id,
        feed_id=feed.id,
        feed_name=feed.name,
        category=feed.category,
        status=RunStatus.ERROR,
        error_details=message,
        duration_ms=elapsed_ms(started_at, completed_at),
        started_at=started_at,
        completed_at=completed_at,
    )


async def run_ingestion(
    store: Store,
    scope: IngestionScope | None = None,
    trigger: TriggerKind = TriggerKind.MANUAL,
    triggered_by: str | None = None,
    fetch_config: FetchConfig | None = None,
    ingestion_config: IngestionConfig | None = None,
    fetcher: Fetcher = fetch_feed_detailed,
    log: "Logger | None" = None,
) -> IngestionRun:
    """
    Execute one ingestion run.

    Feeds are fetched concurrently (bounded by `max_concurrent_feeds`); a slow
    or failing feed never aborts the others. Items of a feed are processed in
    order.

    Args:
        store: Persistent store
        scope: Which feeds to process (all due feeds when omitted)
        trigger: Scheduled or manual
        triggered_by: Free-form initiator label
        fetch_config: Fetcher configuration
        ingestion_config: Run deadline configuration
        fetcher: Feed fetcher, replaceable in tests
        log: Logger for the run

    Returns:
        IngestionRun with aggregate counters and one entry per feed
    """
    scope = scope or IngestionScope()
    fetch_config = fetch_config or FetchConfig()
    ingestion_config = ingestion_config or IngestionConfig()
    log = log or get_logger(__name__)

    started_at = utc_now()
    feeds = select_feeds(store, scope)

    run = IngestionRun(
        run_id=generate_run_id(trigger),
        trigger=trigger,
        triggered_by=triggered_by,
        total_feeds=len(feeds),
        started_at=started_at,
    )
    store.runs.start_run(run)
    log.info(f"Processing {len(feeds)} feeds", run_id=run.run_id, scope=scope.kind)

    feed_logs: list[FeedIngestionLog] = []
    try:
        if feeds:
            feed_logs = await _process_feeds(
                store, feeds, run.run_id, started_at, fetch_config, ingestion_config, fetcher, log
            )
    except BaseException:
        # The run row always gets a final status, even when the run is aborted
        aborted = _finalize_run(run, feed_logs, started_at, RunStatus.ERROR)
        try:
            store.runs.finish_run(aborted)
        except SQLAlchemyError as e:
            log.error("Could not record the aborted run", run_id=run.run_id, error=str(e))
        raise

    run = _finalize_run(run, feed_logs, started_at)
    store.runs.finish_run(run)
    return run


async def _process_feeds(
    store: Store,
    feeds: list[FeedConfig],
    run_id: str,
    started_at: datetime,
    fetch_config: FetchConfig,
    ingestion_config: IngestionConfig,
    fetcher: Fetcher,
    log: "Logger",
) -> list[FeedIngestionLog]:
    """Run every feed as its own task; a feed that fails or misses the deadline is logged as `error`."""
    semaphore = asyncio.Semaphore(fetch_config.max_concurrent_feeds)
    feed_logs: list[FeedIngestionLog] = []

    async with aiohttp.ClientSession() as session:

        async def process_with_semaphore(feed: FeedConfig) -> FeedIngestionLog:
            async with semaphore:
                return await process_feed(store, feed, run_id, session, fetch_config, fetcher, log)

        tasks = [asyncio.create_task(process_with_semaphore(feed)) for feed in feeds]
        try:
            _, pending = await asyncio.wait(tasks, timeout=ingestion_config.run_timeout_seconds)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            log.warning(f"Run deadline exceeded, {len(pending)} feeds cancelled", run_id=run_id)

        for feed, task in zip(feeds, tasks, strict=True):
            if task in pending:
                entry = _failed_feed_log(feed, run_id, started_at, DEADLINE_EXCEEDED_MESSAGE)
            elif (error := task.exception()) is not None:
                log.opt(exception=error).error(
                    f"Feed {feed.name} failed", feed_id=feed.id, run_id=run_id
                )
                entry = _failed_feed_log(feed, run_id, started_at, f"{type(error).__name__}: {error}")
            else:
                feed_logs.append(task.result())
                continue

            await asyncio.to_thread(store.runs.record_feed, entry)
            feed_logs.append(entry)

    return feed_logs


def _finalize_run(
    run: IngestionRun,
    feed_logs: list[FeedIngestionLog],
    started_at: datetime,
    status: RunStatus | None = None,
) -> IngestionRun:
    completed_at = utc_now()
    return run.model_copy(
        update={
            "total_items_fetched": sum(f.items_fetched for f in feed_logs),
            "total_new_articles": sum(f.new_articles for f in feed_logs),
            "total_skipped": sum(f.skipped_articles for f in feed_logs),
            "total_errors": sum(f.errors_count for f in feed_logs),
            "overall_status": status or overall_status(feed_logs),
            "duration_ms": elapsed_ms(started_at, completed_at),
            "completed_at": completed_at,
            "feeds": feed_logs,
        }
    )
