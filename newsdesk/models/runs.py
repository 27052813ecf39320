"""Ingestion run and analyzer audit models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from newsdesk.models.articles import TrendingResult


class TriggerKind(str, Enum):
    """What started an ingestion run."""

    SCHEDULED = "scheduled"
    MANUAL = "manual"


class RunStatus(str, Enum):
    """Status of a feed or of a whole run."""

    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"


class ItemAction(str, Enum):
    """Outcome of a single feed item."""

    NEW = "new"
    SKIPPED = "skipped"
    ERROR = "error"


class CallStatus(str, Enum):
    """Outcome of one analyzer invocation."""

    SUCCESS = "success"
    ERROR = "error"
    FALLBACK = "fallback"


class ItemOutcome(BaseModel):
    """Audit row for one feed item within a run. Never mutated after creation."""

    run_id: str
    feed_id: int
    feed_name: str
    item_title: str
    item_url: str | None = None
    item_published_at: datetime | None = None
    action: ItemAction
    reason: str | None = Field(default=None, description="Why it was skipped")
    error_message: str | None = None
    article_id: int | None = Field(default=None, description="Set when action is NEW")


class FeedIngestionLog(BaseModel):
    """Per-feed summary within a run."""

    run_id: str
    feed_id: int
    feed_name: str
    category: str
    status: RunStatus
    items_fetched: int = Field(default=0, ge=0)
    new_articles: int = Field(default=0, ge=0)
    skipped_articles: int = Field(default=0, ge=0)
    errors_count: int = Field(default=0, ge=0)
    error_details: str | None = None
    duration_ms: int = Field(default=0, ge=0)
    started_at: datetime
    completed_at: datetime | None = None


class IngestionRun(BaseModel):
    """Structured report of one orchestrator invocation."""

    run_id: str
    trigger: TriggerKind
    triggered_by: str | None = None
    total_feeds: int = Field(default=0, ge=0)
    total_items_fetched: int = Field(default=0, ge=0)
    total_new_articles: int = Field(default=0, ge=0)
    total_skipped: int = Field(default=0, ge=0)
    total_errors: int = Field(default=0, ge=0)
    overall_status: RunStatus = Field(default=RunStatus.SUCCESS)
    duration_ms: int = Field(default=0, ge=0)
    started_at: datetime
    completed_at: datetime | None = None
    feeds: list[FeedIngestionLog] = Field(default_factory=list)


class AnalyzerCallLog(BaseModel):
    """Audit row for one trending analyzer invocation."""

    provider: str
    model: str
    category: str
    status: CallStatus
    input_articles: int = Field(default=0, ge=0)
    output_trending: int = Field(default=0, ge=0)
    prompt_tokens: int = Field(default=0, ge=0)
    duration_ms: int = Field(default=0, ge=0)
    error_message: str | None = None
    request_summary: str | None = None
    response_summary: str | None = None
    key_source: str | None = None
    created_at: datetime | None = None


class CategoryTrendingReport(BaseModel):
    """Trending outcome for one category."""

    category: str
    candidates: int = Field(default=0, ge=0)
    trending: list[TrendingResult] = Field(default_factory=list)
    batch_id: str | None = None
    duration_ms: int = Field(default=0, ge=0)
    error: str | None = None


class TrendingRunReport(BaseModel):
    """Result of a trending trigger across categories."""

    categories_processed: int = Field(default=0, ge=0)
    total_trending: int = Field(default=0, ge=0)
    results: list[CategoryTrendingReport] = Field(default_factory=list)
    duration_ms: int = Field(default=0, ge=0)

    @property
    def failed(self) -> list[CategoryTrendingReport]:
        return [r for r in self.results if r.error]
