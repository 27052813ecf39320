"""Feed registry: read access to configured feeds plus fetch bookkeeping."""

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.engine import Engine, RowMapping

from newsdesk.clock import utc_now
from newsdesk.models.config import FeedSeed
from newsdesk.models.feeds import FeedConfig
from newsdesk.storage.database import feeds_table
from newsdesk.utils.logging import get_logger

logger = get_logger(__name__)


def _to_feed(row: RowMapping) -> FeedConfig:
    return FeedConfig(
        id=row["id"],
        name=row["name"],
        feed_url=row["feed_url"],
        category=row["category"],
        fetch_interval_minutes=row["fetch_interval_minutes"],
        is_active=row["is_active"],
        last_fetched_at=row["last_fetched_at"],
    )


class FeedRegistry:
    """Data access for the feeds table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def _select(self, stmt) -> list[FeedConfig]:
        with self.engine.connect() as conn:
            return [_to_feed(row) for row in conn.execute(stmt.order_by(feeds_table.c.id)).mappings()]

    def list_all(self) -> list[FeedConfig]:
        return self._select(select(feeds_table))

    def list_active(self) -> list[FeedConfig]:
        return self._select(select(feeds_table).where(feeds_table.c.is_active.is_(True)))

    def due_feeds(self, now: datetime | None = None) -> list[FeedConfig]:
        """Active feeds whose fetch interval has elapsed (or that were never fetched)."""
        now = now or utc_now()
        return [feed for feed in self.list_active() if feed.is_due(now)]

    def by_ids(self, feed_ids: Iterable[int]) -> list[FeedConfig]:
        """Active feeds with the given ids. Unknown or inactive ids are ignored."""
        ids = list(feed_ids)
        stmt = select(feeds_table).where(
            feeds_table.c.id.in_(ids), feeds_table.c.is_active.is_(True)
        )
        return self._select(stmt)

    def by_categories(self, categories: Iterable[str]) -> list[FeedConfig]:
        """Active feeds in any of the given categories."""
        names = list(categories)
        stmt = select(feeds_table).where(
            feeds_table.c.category.in_(names), feeds_table.c.is_active.is_(True)
        )
        return self._select(stmt)

    def get(self, feed_id: int) -> FeedConfig | None:
        feeds = self._select(select(feeds_table).where(feeds_table.c.id == feed_id))
        return feeds[0] if feeds else None

    def upsert_seed(self, seed: FeedSeed) -> int:
        """
        Insert a feed from config, or update name/category/cadence of an existing URL.

        `last_fetched_at` is left untouched on update.

        Returns:
            Feed id
        """
        with self.engine.begin() as conn:
            existing = conn.execute(
                select(feeds_table.c.id).where(feeds_table.c.feed_url == seed.url)
            ).scalar_one_or_none()

            values = {
                "name": seed.name,
                "category": seed.category,
                "fetch_interval_minutes": seed.fetch_interval_minutes,
                "is_active": seed.enabled,
            }

            if existing is not None:
                conn.execute(update(feeds_table).where(feeds_table.c.id == existing).values(**values))
                logger.debug("Feed updated", feed=seed.name, id=existing)
                return existing

            result = conn.execute(feeds_table.insert().values(feed_url=seed.url, **values))
            feed_id = result.inserted_primary_key[0]
            logger.debug("Feed registered", feed=seed.name, id=feed_id)
            return feed_id

    def mark_fetched(self, feed_id: int, at: datetime | None = None) -> None:
        """Record that a feed was processed. Only the orchestrator calls this."""
        with self.engine.begin() as conn:
            conn.execute(
                update(feeds_table)
                .where(feeds_table.c.id == feed_id)
                .values(last_fetched_at=at or utc_now())
            )
