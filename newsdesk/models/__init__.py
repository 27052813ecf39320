"""Pydantic data models for the pipeline."""

from newsdesk.models.articles import (
    Article,
    ArticleStatus,
    NewArticle,
    TrendingCandidate,
    TrendingResult,
)
from newsdesk.models.config import (
    DeliveryStrategy,
    FeedSeed,
    FeedsConfig,
    FetchConfig,
    IngestionConfig,
    LoggingConfig,
    PipelineConfig,
    PipelineMetadata,
    SecurityConfig,
    StoreConfig,
    TrendingConfig,
)
from newsdesk.models.feeds import (
    DeliveryAttempt,
    FeedConfig,
    FetchResult,
    IngestionScope,
    NormalizedItem,
)
from newsdesk.models.runs import (
    AnalyzerCallLog,
    CallStatus,
    CategoryTrendingReport,
    FeedIngestionLog,
    IngestionRun,
    ItemAction,
    ItemOutcome,
    RunStatus,
    TrendingRunReport,
    TriggerKind,
)

__all__ = [
    # Articles
    "Article",
    "ArticleStatus",
    "NewArticle",
    "TrendingCandidate",
    "TrendingResult",
    # Feeds
    "DeliveryAttempt",
    "FeedConfig",
    "FetchResult",
    "IngestionScope",
    "NormalizedItem",
    # Runs
    "AnalyzerCallLog",
    "CallStatus",
    "CategoryTrendingReport",
    "FeedIngestionLog",
    "IngestionRun",
    "ItemAction",
    "ItemOutcome",
    "RunStatus",
    "TrendingRunReport",
    "TriggerKind",
    # Config
    "DeliveryStrategy",
    "FeedSeed",
    "FeedsConfig",
    "FetchConfig",
    "IngestionConfig",
    "LoggingConfig",
    "PipelineConfig",
    "PipelineMetadata",
    "SecurityConfig",
    "StoreConfig",
    "TrendingConfig",
]
