"""Trending set persistence."""

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.engine import Engine

from newsdesk.models.articles import TrendingResult
from newsdesk.storage.database import trending_results_table


class TrendingRepository:
    """Stores the current trending set of each category."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def replace(
        self,
        category: str,
        results: list[TrendingResult],
        batch_id: str,
        expires_at: datetime,
    ) -> None:
        """Delete the category's previous set and insert the new one in one transaction."""
        with self.engine.begin() as conn:
            conn.execute(
                delete(trending_results_table).where(trending_results_table.c.category == category)
            )
            if results:
                conn.execute(
                    trending_results_table.insert(),
                    [
                        {
                            "article_id": r.article_id,
                            "category": category,
                            "rank_position": r.rank,
                            "ai_score": r.score,
                            "ai_reasoning": r.reasoning,
                            "batch_id": batch_id,
                            "expires_at": expires_at,
                        }
                        for r in results
                    ],
                )

    def get(self, category: str) -> list[TrendingResult]:
        """Current set for a category ordered by rank."""
        stmt = (
            select(
                trending_results_table.c.article_id,
                trending_results_table.c.rank_position,
                trending_results_table.c.ai_score,
                trending_results_table.c.ai_reasoning,
            )
            .where(trending_results_table.c.category == category)
            .order_by(trending_results_table.c.rank_position)
        )
        with self.engine.connect() as conn:
            return [
                TrendingResult(
                    article_id=row["article_id"],
                    rank=row["rank_position"],
                    score=row["ai_score"],
                    reasoning=row["ai_reasoning"] or "",
                )
                for row in conn.execute(stmt).mappings()
            ]

    def batch_ids(self, category: str) -> set[str]:
        stmt = (
            select(trending_results_table.c.batch_id)
            .where(trending_results_table.c.category == category)
            .distinct()
        )
        with self.engine.connect() as conn:
            return set(conn.execute(stmt).scalars())
