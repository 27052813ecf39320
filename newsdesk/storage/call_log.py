"""Analyzer call logger."""

from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.engine import Engine

from newsdesk.clock import utc_now
from newsdesk.constants import MAX_ERROR_MESSAGE_LENGTH, MAX_SUMMARY_LENGTH
from newsdesk.models.runs import AnalyzerCallLog, CallStatus
from newsdesk.storage.database import analyzer_call_logs_table
from newsdesk.utils.logging import AI_CHANNEL, get_logger
from newsdesk.utils.security import redact_secrets
from newsdesk.utils.text import truncate

if TYPE_CHECKING:
    from loguru import Logger


class AnalyzerCallLogger:
    """Persists one row per trending analyzer invocation and mirrors it to the ai log."""

    def __init__(self, engine: Engine, log: "Logger | None" = None):
        self.engine = engine
        self.log = log or get_logger(__name__, channel=AI_CHANNEL)

    def record(self, entry: AnalyzerCallLog) -> AnalyzerCallLog:
        """
        Truncate oversized text fields, then persist the entry.

        Returns:
            The entry as stored
        """
        stored = entry.model_copy(
            update={
                "error_message": truncate(
                    redact_secrets(entry.error_message) if entry.error_message else None,
                    MAX_ERROR_MESSAGE_LENGTH,
                ),
                "request_summary": truncate(entry.request_summary, MAX_SUMMARY_LENGTH),
                "response_summary": truncate(entry.response_summary, MAX_SUMMARY_LENGTH),
                "created_at": entry.created_at or utc_now(),
            }
        )

        values = stored.model_dump()
        values["status"] = stored.status.value
        with self.engine.begin() as conn:
            conn.execute(analyzer_call_logs_table.insert().values(**values))

        fields = {
            "provider": stored.provider,
            "model": stored.model,
            "category": stored.category,
            "input": stored.input_articles,
            "output": stored.output_trending,
            "prompt_tokens": stored.prompt_tokens,
            "duration_ms": stored.duration_ms,
        }
        if stored.status is CallStatus.SUCCESS:
            self.log.info(f"Trending analysis {stored.status.value}", **fields)
        else:
            self.log.warning(
                f"Trending analysis {stored.status.value}", error=stored.error_message, **fields
            )
        return stored

    def recent(self, limit: int = 20, category: str | None = None) -> list[AnalyzerCallLog]:
        stmt = select(analyzer_call_logs_table)
        if category is not None:
            stmt = stmt.where(analyzer_call_logs_table.c.category == category)
        stmt = stmt.order_by(analyzer_call_logs_table.c.id.desc()).limit(limit)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [AnalyzerCallLog.model_validate(dict(row)) for row in rows]
