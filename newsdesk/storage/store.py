"""Facade bundling the repositories that share one engine."""

from sqlalchemy.engine import Engine

from newsdesk.models.config import StoreConfig
from newsdesk.storage.articles import ArticleRepository
from newsdesk.storage.call_log import AnalyzerCallLogger
from newsdesk.storage.database import create_db_engine, init_schema
from newsdesk.storage.feeds import FeedRegistry
from newsdesk.storage.run_log import RunLogger
from newsdesk.storage.trending import TrendingRepository


class Store:
    def __init__(self, engine: Engine):
        self.engine = engine
        self.feeds = FeedRegistry(engine)
        self.articles = ArticleRepository(engine)
        self.runs = RunLogger(engine)
        self.calls = AnalyzerCallLogger(engine)
        self.trending = TrendingRepository(engine)

    @classmethod
    def from_config(cls, config: StoreConfig, create_schema: bool = True) -> "Store":
        engine = create_db_engine(config)
        if create_schema:
            init_schema(engine)
        return cls(engine)

    def close(self) -> None:
        self.engine.dispose()
