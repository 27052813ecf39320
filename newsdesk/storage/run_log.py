"""Run logger: persists ingestion runs, per-feed summaries and per-item outcomes."""

from typing import TYPE_CHECKING

from sqlalchemy import select, update
from sqlalchemy.engine import Engine

from newsdesk.constants import TITLE_LOG_PREVIEW
from newsdesk.models.runs import FeedIngestionLog, IngestionRun, ItemAction, ItemOutcome
from newsdesk.storage.database import (
    feed_ingestion_logs_table,
    ingestion_runs_table,
    item_outcomes_table,
)
from newsdesk.utils.logging import get_logger

if TYPE_CHECKING:
    from loguru import Logger


class RunLogger:
    """
    Writes the audit trail of ingestion runs.

    Every record is persisted and mirrored to the injected loguru logger, so
    the console shows the same per-item trail that ends up in the database.
    """

    def __init__(self, engine: Engine, log: "Logger | None" = None):
        self.engine = engine
        self.log = log or get_logger(__name__)

    def start_run(self, run: IngestionRun) -> None:
        with self.engine.begin() as conn:
            conn.execute(
                ingestion_runs_table.insert().values(
                    run_id=run.run_id,
                    trigger=run.trigger.value,
                    triggered_by=run.triggered_by,
                    total_feeds=run.total_feeds,
                    started_at=run.started_at,
                )
            )
        self.log.info(
            "Ingestion run started",
            run_id=run.run_id,
            trigger=run.trigger.value,
            feeds=run.total_feeds,
        )

    def record_item(self, outcome: ItemOutcome) -> None:
        values = outcome.model_dump()
        values["action"] = outcome.action.value
        with self.engine.begin() as conn:
            conn.execute(item_outcomes_table.insert().values(**values))

        title = outcome.item_title[:TITLE_LOG_PREVIEW]
        if outcome.action is ItemAction.NEW:
            self.log.debug(f"NEW: {title}", feed=outcome.feed_name, article_id=outcome.article_id)
        elif outcome.action is ItemAction.SKIPPED:
            self.log.debug(f"SKIPPED: {title}", feed=outcome.feed_name, reason=outcome.reason)
        else:
            self.log.warning(
                f"ERROR: {title}", feed=outcome.feed_name, error=outcome.error_message
            )

    def record_feed(self, entry: FeedIngestionLog) -> None:
        values = entry.model_dump()
        values["status"] = entry.status.value
        with self.engine.begin() as conn:
            conn.execute(feed_ingestion_logs_table.insert().values(**values))

        self.log.info(
            f"Feed {entry.feed_name}: {entry.status.value}",
            run_id=entry.run_id,
            fetched=entry.items_fetched,
            new=entry.new_articles,
            skipped=entry.skipped_articles,
            errors=entry.errors_count,
            duration_ms=entry.duration_ms,
        )

    def finish_run(self, run: IngestionRun) -> None:
        with self.engine.begin() as conn:
            conn.execute(
                update(ingestion_runs_table)
                .where(ingestion_runs_table.c.run_id == run.run_id)
                .values(
                    total_feeds=run.total_feeds,
                    total_items_fetched=run.total_items_fetched,
                    total_new_articles=run.total_new_articles,
                    total_skipped=run.total_skipped,
                    total_errors=run.total_errors,
                    overall_status=run.overall_status.value,
                    duration_ms=run.duration_ms,
                    completed_at=run.completed_at,
                )
            )
        self.log.info(
            f"Ingestion run finished: {run.overall_status.value}",
            run_id=run.run_id,
            new=run.total_new_articles,
            skipped=run.total_skipped,
            errors=run.total_errors,
            duration_ms=run.duration_ms,
        )

    def item_outcomes(self, run_id: str) -> list[ItemOutcome]:
        stmt = (
            select(item_outcomes_table)
            .where(item_outcomes_table.c.run_id == run_id)
            .order_by(item_outcomes_table.c.id)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [ItemOutcome.model_validate(dict(row)) for row in rows]

    def recent_runs(self, limit: int = 10) -> list[IngestionRun]:
        """Most recent runs first, each with its per-feed summaries."""
        with self.engine.connect() as conn:
            run_rows = (
                conn.execute(
                    select(ingestion_runs_table)
                    .order_by(ingestion_runs_table.c.started_at.desc(), ingestion_runs_table.c.id.desc())
                    .limit(limit)
                )
                .mappings()
                .all()
            )
            run_ids = [row["run_id"] for row in run_rows]
            feed_rows = (
                conn.execute(
                    select(feed_ingestion_logs_table)
                    .where(feed_ingestion_logs_table.c.run_id.in_(run_ids))
                    .order_by(feed_ingestion_logs_table.c.id)
                )
                .mappings()
                .all()
            )

        feeds_by_run: dict[str, list[FeedIngestionLog]] = {run_id: [] for run_id in run_ids}
        for row in feed_rows:
            feeds_by_run[row["run_id"]].append(FeedIngestionLog.model_validate(dict(row)))

        runs = []
        for row in run_rows:
            data = dict(row)
            data.pop("id", None)
            # Runs interrupted before finish_run have no status yet
            data["overall_status"] = data["overall_status"] or "error"
            runs.append(IngestionRun(**data, feeds=feeds_by_run[row["run_id"]]))
        return runs
