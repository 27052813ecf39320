"""Integration tests for ingestion runs against a real SQLite store and mocked HTTP."""

import asyncio

import pytest
from aioresponses import aioresponses
from sqlalchemy.exc import OperationalError

from newsdesk.constants import DEADLINE_EXCEEDED_MESSAGE
from newsdesk.models.config import IngestionConfig
from newsdesk.models.feeds import FetchResult, IngestionScope, NormalizedItem
from newsdesk.models.runs import ItemAction, RunStatus, TriggerKind
from newsdesk.steps.step2_ingestion import run_ingestion

pytestmark = pytest.mark.integration

FEED_URL = "https://www.thehindu.com/news/cities/feeder/default.rss"


def city_items(make_rss, count: int = 3) -> str:
    return make_rss(
        [
            {
                "title": f"City council approves project number {n}",
                "link": f"https://www.thehindu.com/news/cities/project-{n}.ece",
                "description": f"Details about project {n}",
                "pubDate": f"Sat, 01 Jun 2024 0{n}:00:00 +0000",
            }
            for n in range(1, count + 1)
        ]
    )


class TestRunsOverHttp:
    """Runs using the real fetcher with mocked feed responses."""

    @pytest.mark.asyncio
    async def test_existing_url_is_skipped(self, store, register_feed, insert_article, direct_fetch_config, make_rss) -> None:
        feed = register_feed(url=FEED_URL, category="cities")
        insert_article(source_url="https://www.thehindu.com/news/cities/project-2.ece")

        with aioresponses() as mocked:
            mocked.get(FEED_URL, status=200, body=city_items(make_rss))
            run = await run_ingestion(store, fetch_config=direct_fetch_config)

        assert run.total_new_articles == 2
        assert run.total_skipped == 1
        assert run.overall_status is RunStatus.SUCCESS
        assert run.feeds[0].feed_id == feed.id
        assert store.articles.count() == 3

    @pytest.mark.asyncio
    async def test_second_run_is_idempotent(self, store, register_feed, direct_fetch_config, make_rss) -> None:
        feed = register_feed(url=FEED_URL, category="cities")
        scope = IngestionScope(feed_ids=[feed.id])

        with aioresponses() as mocked:
            mocked.get(FEED_URL, status=200, body=city_items(make_rss), repeat=True)
            first = await run_ingestion(store, scope, fetch_config=direct_fetch_config)
            second = await run_ingestion(store, scope, fetch_config=direct_fetch_config)

        assert first.total_new_articles == 3
        assert second.total_new_articles == 0
        assert second.total_skipped == 3
        assert store.articles.count() == 3
        assert [o.action for o in store.runs.item_outcomes(second.run_id)] == [ItemAction.SKIPPED] * 3

    @pytest.mark.asyncio
    async def test_unreachable_feed_does_not_stop_others(self, store, register_feed, direct_fetch_config, make_rss) -> None:
        register_feed(name="Down", url="https://down.example.com/feed.xml")
        register_feed(name="Cities", url=FEED_URL, category="cities")

        with aioresponses() as mocked:
            mocked.get("https://down.example.com/feed.xml", status=503)
            mocked.get(FEED_URL, status=200, body=city_items(make_rss))
            run = await run_ingestion(store, fetch_config=direct_fetch_config)

        by_name = {f.feed_name: f for f in run.feeds}
        assert by_name["Down"].items_fetched == 0
        assert "HTTP 503" in by_name["Down"].error_details
        assert by_name["Cities"].new_articles == 3
        assert run.total_feeds == 2

    @pytest.mark.asyncio
    async def test_scheduled_run_marks_feeds_fetched(self, store, register_feed, direct_fetch_config, make_rss) -> None:
        feed = register_feed(url=FEED_URL)

        with aioresponses() as mocked:
            mocked.get(FEED_URL, status=200, body=city_items(make_rss))
            run = await run_ingestion(store, trigger=TriggerKind.SCHEDULED, triggered_by="cron", fetch_config=direct_fetch_config)

        assert run.trigger is TriggerKind.SCHEDULED
        assert store.feeds.get(feed.id).last_fetched_at is not None
        assert store.feeds.due_feeds() == []


class TestFailureIsolation:
    """Store and deadline failures stay local to one feed."""

    @pytest.mark.asyncio
    async def test_insert_failures_in_one_feed(self, store, register_feed, monkeypatch) -> None:
        for n in range(4):
            register_feed(name=f"Healthy {n}", url=f"https://example.com/healthy-{n}.xml", category="healthy")
        register_feed(name="Broken", url="https://example.com/broken.xml", category="broken")

        original_insert = store.articles.insert

        def flaky_insert(article):
            if article.category == "broken":
                raise OperationalError("INSERT INTO articles", {}, Exception("database is locked"))
            return original_insert(article)

        monkeypatch.setattr(store.articles, "insert", flaky_insert)

        async def fetcher(feed, config, session, log):
            items = [
                NormalizedItem(title=f"{feed.name} headline {n}", link=f"{feed.feed_url}#{n}")
                for n in range(3)
            ]
            return FetchResult(feed_id=feed.id, items=items)

        run = await run_ingestion(store, fetcher=fetcher)

        by_name = {f.feed_name: f for f in run.feeds}
        assert by_name["Broken"].status is RunStatus.ERROR
        assert by_name["Broken"].errors_count == 3
        assert "database is locked" in by_name["Broken"].error_details
        assert all(by_name[f"Healthy {n}"].status is RunStatus.SUCCESS for n in range(4))
        assert run.overall_status is RunStatus.PARTIAL
        assert run.total_new_articles == 12
        assert run.total_errors == 3
        assert store.articles.count() == 12

    @pytest.mark.asyncio
    async def test_run_deadline_cancels_slow_feed(self, store, register_feed) -> None:
        fast = register_feed(name="Fast", url="https://example.com/fast.xml")
        slow = register_feed(name="Slow", url="https://example.com/slow.xml")

        async def fetcher(feed, config, session, log):
            if feed.id == slow.id:
                await asyncio.sleep(5)
            item = NormalizedItem(title=f"{feed.name} feed headline", link=f"{feed.feed_url}#1")
            return FetchResult(feed_id=feed.id, items=[item])

        run = await run_ingestion(
            store,
            ingestion_config=IngestionConfig(run_timeout_seconds=0.5),
            fetcher=fetcher,
        )

        by_name = {f.feed_name: f for f in run.feeds}
        assert by_name["Fast"].status is RunStatus.SUCCESS
        assert by_name["Slow"].status is RunStatus.ERROR
        assert by_name["Slow"].error_details == DEADLINE_EXCEEDED_MESSAGE
        assert run.overall_status is RunStatus.PARTIAL
        assert store.feeds.get(fast.id).last_fetched_at is not None
        assert store.feeds.get(slow.id).last_fetched_at is None
        assert store.runs.recent_runs(1)[0].feeds[1].feed_name == "Slow"


@pytest.mark.asyncio
async def test_default_fetcher_reads_http(store, register_feed, make_rss) -> None:
    register_feed(url=FEED_URL)
    with aioresponses() as mocked:
        mocked.get(FEED_URL, status=200, body=city_items(make_rss, count=1))
        run = await run_ingestion(store)

    assert run.total_new_articles == 1
