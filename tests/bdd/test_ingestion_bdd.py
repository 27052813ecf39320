"""BDD tests for feed ingestion."""

import asyncio

import pytest
from aioresponses import aioresponses
from pytest_bdd import given, parsers, scenarios, then, when

from newsdesk.models.config import PipelineConfig
from newsdesk.triggers import IngestionTriggerResponse, trigger_ingestion

scenarios("features/ingestion.feature")

ENV = {"CRON_SECRET": "ingest-secret"}


@pytest.fixture
def served() -> dict[str, dict]:
    """Mocked HTTP responses keyed by feed URL."""
    return {}


@pytest.fixture
def registered() -> dict[str, int]:
    """Feed ids keyed by feed name."""
    return {}


@pytest.fixture
def pipeline_config(direct_fetch_config) -> PipelineConfig:
    return PipelineConfig(fetch=direct_fetch_config)


@pytest.fixture
def responses() -> list[IngestionTriggerResponse]:
    return []


def ingest(store, config, served, secret="ingest-secret", feed_ids=None) -> IngestionTriggerResponse:
    with aioresponses() as mocked:
        for url, response in served.items():
            mocked.get(url, repeat=True, **response)
        return asyncio.run(trigger_ingestion(store, config, secret, feed_ids=feed_ids, env=ENV))


# Given Steps


@given("an empty news store")
def empty_store(store) -> None:
    assert store.articles.count() == 0


@given(parsers.parse('a feed "{name}" in category "{category}" serving {count:d} items'))
def feed_serving_items(register_feed, make_rss, served, registered, name, category, count) -> None:
    url = f"https://example.com/{category}/feed.xml"
    feed = register_feed(name=name, url=url, category=category)
    registered[name] = feed.id
    served[url] = {
        "status": 200,
        "body": make_rss(
            [
                {
                    "title": f"{category.title()} story number {n} of the day",
                    "link": f"https://example.com/{category}/{n}",
                    "pubDate": f"Sat, 01 Jun 2024 0{n}:00:00 +0000",
                }
                for n in range(1, count + 1)
            ]
        ),
    }


@given(parsers.parse('an unreachable feed "{name}"'))
def unreachable_feed(register_feed, served, registered, name) -> None:
    url = "https://mirror.example.com/down.xml"
    registered[name] = register_feed(name=name, url=url).id
    served[url] = {"status": 500}


@given(parsers.parse('the article "{url}" already exists'))
def existing_article(insert_article, url) -> None:
    insert_article(source_url=url)


# When Steps


@when("an ingestion run is triggered")
def run_triggered(store, pipeline_config, served, responses) -> None:
    responses.append(ingest(store, pipeline_config, served))


@when(parsers.parse('an ingestion run is triggered with the secret "{secret}"'))
def run_triggered_with_secret(store, pipeline_config, served, responses, secret) -> None:
    responses.append(ingest(store, pipeline_config, served, secret=secret))


@when("the feed is ingested again explicitly")
def run_again(store, pipeline_config, served, registered, responses) -> None:
    responses.append(ingest(store, pipeline_config, served, feed_ids=list(registered.values())))


# Then Steps


@then(parsers.parse('the run status is "{status}"'))
def run_status(responses, status) -> None:
    assert responses[-1].overall_status == status


@then(parsers.parse("{count:d} new articles are stored for the run"))
def new_articles(responses, count) -> None:
    assert responses[-1].new_articles == count


@then(parsers.parse("{count:d} item is skipped as a duplicate"))
def skipped_duplicate(store, responses, count) -> None:
    response = responses[-1]
    assert response.skipped == count
    skipped = [o for o in store.runs.item_outcomes(response.run_id) if o.reason]
    assert all(o.reason.startswith("Duplicate") for o in skipped)


@then(parsers.parse("the store holds {count:d} articles"))
def store_holds(store, count) -> None:
    assert store.articles.count() == count


@then(parsers.parse("the last run skipped {count:d} items"))
def last_run_skipped(responses, count) -> None:
    assert responses[-1].skipped == count


@then(parsers.parse('the feed "{name}" reports "{text}"'))
def feed_reports(store, name, text) -> None:
    run = store.runs.recent_runs(1)[0]
    entry = next(f for f in run.feeds if f.feed_name == name)
    assert text in entry.error_details


@then(parsers.parse('the trigger answers "{status}"'))
def trigger_answers(responses, status) -> None:
    assert responses[-1].status.value == status
