"""Configuration models for the pipeline."""

from typing import Literal

from pydantic import BaseModel, Field

from newsdesk.constants import (
    DEFAULT_CANDIDATE_LIMIT,
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    DEFAULT_LLM_MAX_TOKENS,
    DEFAULT_LLM_TEMPERATURE,
    DEFAULT_LLM_TIMEOUT_SECONDS,
    DEFAULT_TRENDING_COUNT,
    DEFAULT_USER_AGENT,
    TRENDING_TTL_HOURS,
)


class FeedSeed(BaseModel):
    """A feed entry in config/feeds.yaml, loaded into the registry by `seed-feeds`."""

    name: str = Field(description="Feed name")
    url: str = Field(description="Feed URL")
    category: str = Field(description="Category assigned to every article of this feed")
    fetch_interval_minutes: int = Field(default=30, ge=1)
    enabled: bool = Field(default=True)


class FeedsConfig(BaseModel):
    """Configuration for all RSS feeds."""

    feeds: list[FeedSeed] = Field(description="List of RSS feeds")


class DeliveryStrategy(BaseModel):
    """One way of reaching a feed document.

    `url_template` may reference `{url}` (raw feed URL) or `{encoded_url}`
    (percent-encoded feed URL, for proxies taking it as a query parameter).
    """

    name: str = Field(description="Strategy name used in logs")
    format: Literal["xml", "json"] = Field(default="xml", description="Wire format returned")
    url_template: str = Field(default="{url}")
    enabled: bool = Field(default=True)


def _default_strategies() -> list[DeliveryStrategy]:
    return [
        DeliveryStrategy(name="direct", format="xml", url_template="{url}"),
        DeliveryStrategy(
            name="corsproxy", format="xml", url_template="https://corsproxy.io/?{encoded_url}"
        ),
        DeliveryStrategy(
            name="allorigins",
            format="xml",
            url_template="https://api.allorigins.win/raw?url={encoded_url}",
        ),
        DeliveryStrategy(
            name="rss2json",
            format="json",
            url_template="https://api.rss2json.com/v1/api.json?rss_url={encoded_url}",
        ),
    ]


class FetchConfig(BaseModel):
    """Feed fetcher configuration."""

    timeout_seconds: float = Field(default=DEFAULT_FETCH_TIMEOUT_SECONDS, gt=0)
    user_agent: str = Field(default=DEFAULT_USER_AGENT)
    max_concurrent_feeds: int = Field(default=10, ge=1)
    max_items_per_feed: int = Field(default=100, ge=1)
    strategies: list[DeliveryStrategy] = Field(default_factory=_default_strategies)


class IngestionConfig(BaseModel):
    """Ingestion orchestrator configuration."""

    run_timeout_seconds: float | None = Field(
        default=None, gt=0, description="Optional deadline for a whole run"
    )


class TrendingConfig(BaseModel):
    """Trending analyzer configuration."""

    enabled: bool = Field(default=True)
    provider: Literal["gemini", "openai"] = Field(default="gemini")
    llm_model: str = Field(default="gemini-2.5-flash-lite")
    base_url: str | None = Field(
        default=None, description="Base URL for OpenAI-compatible providers"
    )
    api_key_env: str | None = Field(
        default=None, description="Override the env var holding the provider API key"
    )
    temperature: float = Field(ge=0.0, le=2.0, default=DEFAULT_LLM_TEMPERATURE)
    max_tokens: int = Field(default=DEFAULT_LLM_MAX_TOKENS, gt=0)
    timeout_seconds: float = Field(default=DEFAULT_LLM_TIMEOUT_SECONDS, gt=0)
    target_count: int = Field(default=DEFAULT_TRENDING_COUNT, ge=1)
    candidate_limit: int = Field(default=DEFAULT_CANDIDATE_LIMIT, ge=1)
    ttl_hours: int = Field(default=TRENDING_TTL_HOURS, ge=1)


class StoreConfig(BaseModel):
    """Persistent store configuration."""

    database_url: str = Field(default="sqlite:///data/newsdesk.db")
    echo: bool = Field(default=False, description="Echo SQL statements")


class SecurityConfig(BaseModel):
    """Names of the environment variables holding trigger secrets."""

    ingestion_secret_env: str = Field(default="CRON_SECRET")
    trending_secret_env: str = Field(default="TRENDING_CRON_SECRET")


class LoggingConfig(BaseModel):
    """Logging configuration for loguru."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    serialize: bool = Field(default=False, description="Serialize file logs to JSON")
    colorize: bool = Field(default=True, description="Colorize console output")
    file_path: str = Field(default="logs/newsdesk.log")
    ai_file_path: str | None = Field(
        default="logs/ai.log", description="Separate sink for analyzer records"
    )
    rotation: str = Field(default="50 MB", description="Log rotation size/time")
    retention: str = Field(default="30 days", description="Log retention period")
    compression: str = Field(default="zip", description="Compression format for rotated logs")


class PipelineMetadata(BaseModel):
    """Pipeline metadata."""

    name: str = Field(default="newsdesk")
    version: str = Field(default="1.0.0")
    execution_mode: Literal["production", "development", "dry_run"] = Field(default="production")


class PipelineConfig(BaseModel):
    """Complete pipeline configuration."""

    pipeline: PipelineMetadata = Field(default_factory=PipelineMetadata)
    store: StoreConfig = Field(default_factory=StoreConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    trending: TrendingConfig = Field(default_factory=TrendingConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
