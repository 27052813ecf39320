"""Unit tests for feed models."""

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from newsdesk.models.feeds import DeliveryAttempt, FeedConfig, FetchResult, IngestionScope, NormalizedItem

NOW = datetime(2024, 6, 1, 12, 0)


def make_feed(**overrides) -> FeedConfig:
    data = {
        "id": 1,
        "name": "The Hindu - Cricket",
        "feed_url": "https://www.thehindu.com/sport/cricket/feeder/default.rss",
        "category": "sports",
        "fetch_interval_minutes": 30,
    }
    data.update(overrides)
    return FeedConfig(**data)


class TestFeedDueCheck:
    """Test FeedConfig.is_due."""

    def test_never_fetched_is_due(self) -> None:
        assert make_feed(last_fetched_at=None).is_due(NOW) is True

    def test_not_due_one_minute_before_interval(self) -> None:
        feed = make_feed(last_fetched_at=NOW - timedelta(minutes=29))
        assert feed.is_due(NOW) is False

    def test_due_exactly_at_interval(self) -> None:
        feed = make_feed(last_fetched_at=NOW - timedelta(minutes=30))
        assert feed.is_due(NOW) is True

    def test_due_after_interval(self) -> None:
        feed = make_feed(last_fetched_at=NOW - timedelta(hours=5))
        assert feed.is_due(NOW) is True

    def test_inactive_never_due(self) -> None:
        assert make_feed(is_active=False, last_fetched_at=None).is_due(NOW) is False

    def test_interval_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            make_feed(fetch_interval_minutes=0)


class TestIngestionScope:
    def test_empty_scope_means_due_feeds(self) -> None:
        assert IngestionScope().kind == "due"

    def test_feed_ids_scope(self) -> None:
        assert IngestionScope(feed_ids=[1, 2]).kind == "feeds"

    def test_categories_scope(self) -> None:
        assert IngestionScope(categories=["sports"]).kind == "categories"

    def test_both_selectors_rejected(self) -> None:
        with pytest.raises(ValidationError):
            IngestionScope(feed_ids=[1], categories=["sports"])


class TestFetchResult:
    def test_strategy_is_first_successful_attempt(self) -> None:
        item = NormalizedItem(title="A headline long enough", link="https://example.com/a")
        result = FetchResult(
            feed_id=1,
            items=[item],
            attempts=[
                DeliveryAttempt(strategy="direct", url="u", error="HTTP 403"),
                DeliveryAttempt(strategy="allorigins", url="u", items=1),
            ],
        )
        assert result.strategy == "allorigins"
        assert result.describe_failure() is None

    def test_failure_description_lists_attempts(self) -> None:
        result = FetchResult(
            feed_id=1,
            attempts=[
                DeliveryAttempt(strategy="direct", url="u", error="HTTP 500"),
                DeliveryAttempt(strategy="rss2json", url="u"),
            ],
        )
        assert result.strategy is None
        description = result.describe_failure()
        assert "direct: HTTP 500" in description
        assert "rss2json: no items" in description
