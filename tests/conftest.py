"""Shared pytest fixtures and configuration."""

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from newsdesk.models.articles import NewArticle, TrendingCandidate
from newsdesk.models.config import DeliveryStrategy, FeedSeed, FetchConfig, StoreConfig, TrendingConfig
from newsdesk.models.feeds import FeedConfig
from newsdesk.storage.store import Store
from newsdesk.utils.prompt_loader import PromptLoader

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"


def rss_document(items: list[dict[str, str]]) -> str:
    """Build an RSS 2.0 document from item dicts (title, link, description, pubDate, extra)."""
    rendered = []
    for item in items:
        parts = [f"<title>{item['title']}</title>", f"<link>{item['link']}</link>"]
        if "description" in item:
            parts.append(f"<description>{item['description']}</description>")
        if "pubDate" in item:
            parts.append(f"<pubDate>{item['pubDate']}</pubDate>")
        parts.append(item.get("extra", ""))
        rendered.append(f"<item>{''.join(parts)}</item>")

    return f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">
    <channel>
        <title>Test Feed</title>
        <link>https://example.com</link>
        <description>Test</description>
        {''.join(rendered)}
    </channel>
</rss>"""


class FakeModel:
    """Language model double returning a canned answer (or raising)."""

    provider = "fake"
    model = "fake-model"
    key_source = "env:FAKE_API_KEY"

    def __init__(self, answer: str = "[]", error: Exception | None = None, delay: float = 0.0):
        self.answer = answer
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, str]] = []

    async def complete(self, system: str, user: str) -> str:
        self.calls.append((system, user))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.answer


@pytest.fixture
def store(tmp_path: Path) -> Store:
    """Store backed by a temporary SQLite file."""
    db_store = Store.from_config(StoreConfig(database_url=f"sqlite:///{tmp_path / 'test.db'}"))
    yield db_store
    db_store.close()


@pytest.fixture
def direct_fetch_config() -> FetchConfig:
    """Fetch configuration with only the direct strategy."""
    return FetchConfig(
        timeout_seconds=2,
        strategies=[DeliveryStrategy(name="direct", format="xml", url_template="{url}")],
    )


@pytest.fixture
def register_feed(store: Store) -> Callable[..., FeedConfig]:
    """Factory registering a feed and returning it as stored."""

    def _register(
        name: str = "Test Feed",
        url: str = "https://example.com/feed.xml",
        category: str = "technology",
        fetch_interval_minutes: int = 30,
        enabled: bool = True,
    ) -> FeedConfig:
        feed_id = store.feeds.upsert_seed(
            FeedSeed(
                name=name,
                url=url,
                category=category,
                fetch_interval_minutes=fetch_interval_minutes,
                enabled=enabled,
            )
        )
        return store.feeds.get(feed_id)

    return _register


@pytest.fixture
def insert_article(store: Store) -> Callable[..., int]:
    """Factory inserting a published article and returning its id."""
    counter = {"n": 0}

    def _insert(
        title: str | None = None,
        source_url: str | None = None,
        category: str = "technology",
        published_at: datetime | None = None,
    ) -> int:
        counter["n"] += 1
        n = counter["n"]
        title = title or f"Existing article number {n}"
        return store.articles.insert(
            NewArticle(
                title=title,
                slug=f"existing-article-{n}",
                excerpt=f"Excerpt {n}",
                content=f"Content {n}",
                category=category,
                source_name="Example.com",
                source_url=source_url or f"https://example.com/existing/{n}",
                published_at=published_at or datetime(2024, 5, 1, 8, 0) + timedelta(hours=n),
            )
        )

    return _insert


@pytest.fixture
def sample_candidates() -> list[TrendingCandidate]:
    """Ten candidates, id 1 oldest to id 10 newest."""
    base = datetime(2024, 5, 1, 8, 0)
    return [
        TrendingCandidate(
            id=i,
            title=f"Candidate headline number {i}",
            excerpt=f"Excerpt for candidate {i}",
            source_name="The Hindu",
            published_at=base + timedelta(hours=i),
        )
        for i in range(1, 11)
    ]


@pytest.fixture
def trending_config() -> TrendingConfig:
    return TrendingConfig(target_count=5, timeout_seconds=0.5)


@pytest.fixture
def prompt_loader() -> PromptLoader:
    return PromptLoader(PROMPTS_DIR)


@pytest.fixture
def make_rss() -> Callable[[list[dict[str, str]]], str]:
    """RSS document builder."""
    return rss_document


@pytest.fixture
def make_model() -> Callable[..., FakeModel]:
    """Factory for language model doubles."""
    return FakeModel
