"""Persistent store (SQLAlchemy Core)."""

from newsdesk.storage.articles import ArticleRepository
from newsdesk.storage.call_log import AnalyzerCallLogger
from newsdesk.storage.database import create_db_engine, init_schema, metadata
from newsdesk.storage.feeds import FeedRegistry
from newsdesk.storage.run_log import RunLogger
from newsdesk.storage.store import Store
from newsdesk.storage.trending import TrendingRepository

__all__ = [
    "AnalyzerCallLogger",
    "ArticleRepository",
    "FeedRegistry",
    "RunLogger",
    "Store",
    "TrendingRepository",
    "create_db_engine",
    "init_schema",
    "metadata",
]
