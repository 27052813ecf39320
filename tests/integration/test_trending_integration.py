"""Integration tests for trending recomputation against a real SQLite store."""

import json

import pytest
from sqlalchemy.exc import OperationalError

from newsdesk.constants import FALLBACK_REASONING
from newsdesk.models.config import TrendingConfig
from newsdesk.models.runs import CallStatus
from newsdesk.steps.step3_trending import TrendingAnalyzer, run_trending

pytestmark = pytest.mark.integration


@pytest.fixture
def seeded_sports(insert_article) -> list[int]:
    """Ten published sports articles, oldest first."""
    return [insert_article(title=f"Sports headline number {n}", category="sports") for n in range(10)]


def make_analyzer(store, config, model, prompt_loader) -> TrendingAnalyzer:
    return TrendingAnalyzer(config, store.calls, model=model, prompt_loader=prompt_loader)


class TestTrendingRuns:
    @pytest.mark.asyncio
    async def test_model_timeout_persists_recency_set(
        self, store, seeded_sports, trending_config, make_model, prompt_loader
    ) -> None:
        analyzer = make_analyzer(store, trending_config, make_model("[]", delay=2.0), prompt_loader)

        report = await run_trending(store, analyzer, ["sports"])

        expected = list(reversed(seeded_sports))[:5]
        stored = store.trending.get("sports")
        assert [r.article_id for r in stored] == expected
        assert [r.rank for r in stored] == [1, 2, 3, 4, 5]
        assert all(r.reasoning == FALLBACK_REASONING for r in stored)
        assert report.total_trending == 5

        call = store.calls.recent(1, category="sports")[0]
        assert call.status is CallStatus.FALLBACK
        assert call.input_articles == 10
        assert call.output_trending == 5

    @pytest.mark.asyncio
    async def test_model_ranking_persisted(
        self, store, seeded_sports, trending_config, make_model, prompt_loader
    ) -> None:
        picks = [seeded_sports[2], seeded_sports[7], seeded_sports[4]]
        answer = json.dumps(
            [{"articleId": a, "rank": i + 1, "score": 90 - i, "reasoning": "Widely covered"} for i, a in enumerate(picks)]
        )
        model = make_model(f"```json\n{answer}\n```")

        await run_trending(store, make_analyzer(store, trending_config, model, prompt_loader), ["sports"])

        assert [r.article_id for r in store.trending.get("sports")] == picks
        assert "[ID:" in model.calls[0][1]

    @pytest.mark.asyncio
    async def test_small_category_skips_model(self, store, insert_article, trending_config, make_model, prompt_loader) -> None:
        ids = [insert_article(category="belgaum") for _ in range(3)]
        model = make_model()

        report = await run_trending(store, make_analyzer(store, trending_config, model, prompt_loader))

        assert model.calls == []
        assert sorted(r.article_id for r in store.trending.get("belgaum")) == sorted(ids)
        assert report.categories_processed == 1

    @pytest.mark.asyncio
    async def test_rerun_replaces_previous_set(
        self, store, seeded_sports, trending_config, make_model, prompt_loader
    ) -> None:
        analyzer = make_analyzer(store, trending_config, None, prompt_loader)

        first = await run_trending(store, analyzer, ["sports"])
        second = await run_trending(store, analyzer, ["sports"])

        assert len(store.trending.get("sports")) == 5
        assert store.trending.batch_ids("sports") == {second.results[0].batch_id}
        assert first.results[0].batch_id is not None

    @pytest.mark.asyncio
    async def test_store_failure_isolated_to_category(
        self, store, insert_article, make_model, prompt_loader, monkeypatch
    ) -> None:
        insert_article(category="sports")
        insert_article(category="business")
        config = TrendingConfig(target_count=5)
        original_replace = store.trending.replace

        def failing_replace(category, *args, **kwargs):
            if category == "business":
                raise OperationalError("DELETE FROM trending_results", {}, Exception("disk I/O error"))
            return original_replace(category, *args, **kwargs)

        monkeypatch.setattr(store.trending, "replace", failing_replace)

        report = await run_trending(store, make_analyzer(store, config, make_model(), prompt_loader), config=config)

        by_category = {r.category: r for r in report.results}
        assert "disk I/O error" in by_category["business"].error
        assert by_category["sports"].error is None
        assert len(store.trending.get("sports")) == 1
        assert [r.category for r in report.failed] == ["business"]
