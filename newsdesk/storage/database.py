"""Table definitions and engine construction for the persistent store."""

from pathlib import Path

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from newsdesk.clock import utc_now
from newsdesk.errors import StoreError
from newsdesk.models.config import StoreConfig
from newsdesk.utils.logging import get_logger

logger = get_logger(__name__)

metadata = MetaData()

feeds_table = Table(
    "feeds",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("feed_url", String, nullable=False, unique=True),
    Column("category", String, nullable=False, index=True),
    Column("fetch_interval_minutes", Integer, nullable=False, default=30),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("last_fetched_at", DateTime, nullable=True),
    Column("created_at", DateTime, nullable=False, default=utc_now),
)

articles_table = Table(
    "articles",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String, nullable=False, index=True),
    Column("slug", String, nullable=False, unique=True),
    Column("excerpt", Text, nullable=False, default=""),
    Column("content", Text, nullable=False, default=""),
    Column("featured_image", String, nullable=True),
    Column("category", String, nullable=False, index=True),
    Column("source_name", String, nullable=False),
    # Unique so two overlapping runs cannot both insert the same item
    Column("source_url", String, nullable=False, unique=True),
    Column("status", String, nullable=False, default="published", index=True),
    Column("featured", Boolean, nullable=False, default=False),
    Column("ai_generated", Boolean, nullable=False, default=False),
    Column("requires_review", Boolean, nullable=False, default=False),
    Column("view_count", Integer, nullable=False, default=0),
    Column("reading_time", Integer, nullable=False, default=1),
    Column("published_at", DateTime, nullable=False, index=True),
    Column("created_at", DateTime, nullable=False, default=utc_now),
)

ingestion_runs_table = Table(
    "ingestion_runs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("run_id", String, nullable=False, unique=True),
    Column("trigger", String, nullable=False),
    Column("triggered_by", String, nullable=True),
    Column("total_feeds", Integer, nullable=False, default=0),
    Column("total_items_fetched", Integer, nullable=False, default=0),
    Column("total_new_articles", Integer, nullable=False, default=0),
    Column("total_skipped", Integer, nullable=False, default=0),
    Column("total_errors", Integer, nullable=False, default=0),
    Column("overall_status", String, nullable=True),
    Column("duration_ms", Integer, nullable=False, default=0),
    Column("started_at", DateTime, nullable=False),
    Column("completed_at", DateTime, nullable=True),
)

feed_ingestion_logs_table = Table(
    "feed_ingestion_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("run_id", String, ForeignKey("ingestion_runs.run_id"), nullable=False, index=True),
    Column("feed_id", Integer, nullable=False, index=True),
    Column("feed_name", String, nullable=False),
    Column("category", String, nullable=False),
    Column("status", String, nullable=False),
    Column("items_fetched", Integer, nullable=False, default=0),
    Column("new_articles", Integer, nullable=False, default=0),
    Column("skipped_articles", Integer, nullable=False, default=0),
    Column("errors_count", Integer, nullable=False, default=0),
    Column("error_details", Text, nullable=True),
    Column("duration_ms", Integer, nullable=False, default=0),
    Column("started_at", DateTime, nullable=False),
    Column("completed_at", DateTime, nullable=True),
)

item_outcomes_table = Table(
    "item_outcomes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("run_id", String, ForeignKey("ingestion_runs.run_id"), nullable=False, index=True),
    Column("feed_id", Integer, nullable=False),
    Column("feed_name", String, nullable=False),
    Column("item_title", String, nullable=False),
    Column("item_url", String, nullable=True),
    Column("item_published_at", DateTime, nullable=True),
    Column("action", String, nullable=False),
    Column("reason", String, nullable=True),
    Column("error_message", Text, nullable=True),
    Column("article_id", Integer, nullable=True),
    Column("created_at", DateTime, nullable=False, default=utc_now),
)

trending_results_table = Table(
    "trending_results",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("article_id", Integer, ForeignKey("articles.id"), nullable=False),
    Column("category", String, nullable=False, index=True),
    Column("rank_position", Integer, nullable=False),
    Column("ai_score", Float, nullable=False),
    Column("ai_reasoning", Text, nullable=True),
    Column("batch_id", String, nullable=False),
    Column("expires_at", DateTime, nullable=False),
    Column("created_at", DateTime, nullable=False, default=utc_now),
)

analyzer_call_logs_table = Table(
    "analyzer_call_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("provider", String, nullable=False),
    Column("model", String, nullable=False),
    Column("category", String, nullable=False, index=True),
    Column("status", String, nullable=False),
    Column("input_articles", Integer, nullable=False, default=0),
    Column("output_trending", Integer, nullable=False, default=0),
    Column("prompt_tokens", Integer, nullable=False, default=0),
    Column("duration_ms", Integer, nullable=False, default=0),
    Column("error_message", Text, nullable=True),
    Column("request_summary", Text, nullable=True),
    Column("response_summary", Text, nullable=True),
    Column("key_source", String, nullable=True),
    Column("created_at", DateTime, nullable=False, default=utc_now),
)


def create_db_engine(config: StoreConfig) -> Engine:
    """
    Create an engine for the configured database.

    SQLite parent directories are created on demand.

    Args:
        config: Store configuration

    Returns:
        SQLAlchemy engine
    """
    url = make_url(config.database_url)
    options: dict = {}
    if url.get_backend_name() == "sqlite":
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        else:
            # One shared connection, reachable from the worker threads ingestion writes from
            options = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}

    engine = create_engine(config.database_url, echo=config.echo, future=True, **options)
    logger.debug("Database engine created", backend=url.get_backend_name())
    return engine


def init_schema(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    try:
        metadata.create_all(engine)
    except SQLAlchemyError as e:
        raise StoreError(f"Failed to initialize schema: {e}") from e
    logger.info("Database schema ready", tables=len(metadata.tables))
