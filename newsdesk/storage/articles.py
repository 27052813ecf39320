"""Article repository."""

from sqlalchemy import func, or_, select
from sqlalchemy.engine import Engine

from newsdesk.models.articles import Article, ArticleStatus, NewArticle, TrendingCandidate
from newsdesk.storage.database import articles_table


class ArticleRepository:
    """Reads and inserts rows of the articles table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def find_duplicate(self, source_url: str, title: str) -> int | None:
        """Id of an existing article with the same source URL or the same exact title."""
        stmt = (
            select(articles_table.c.id)
            .where(or_(articles_table.c.source_url == source_url, articles_table.c.title == title))
            .limit(1)
        )
        with self.engine.connect() as conn:
            return conn.execute(stmt).scalar_one_or_none()

    def slug_exists(self, slug: str) -> bool:
        stmt = select(articles_table.c.id).where(articles_table.c.slug == slug).limit(1)
        with self.engine.connect() as conn:
            return conn.execute(stmt).first() is not None

    def insert(self, article: NewArticle) -> int:
        """
        Insert an article and return its id.

        Raises:
            sqlalchemy.exc.IntegrityError: If the slug or source URL already exists
        """
        values = article.model_dump()
        values["status"] = article.status.value
        with self.engine.begin() as conn:
            result = conn.execute(articles_table.insert().values(**values))
            return result.inserted_primary_key[0]

    def get(self, article_id: int) -> Article | None:
        stmt = select(articles_table).where(articles_table.c.id == article_id)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        return Article.model_validate(dict(row)) if row else None

    def count(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(articles_table)).scalar_one()

    def recent_candidates(self, category: str, limit: int) -> list[TrendingCandidate]:
        """Newest published articles of a category, shaped for the trending analyzer."""
        stmt = (
            select(
                articles_table.c.id,
                articles_table.c.title,
                articles_table.c.excerpt,
                articles_table.c.source_name,
                articles_table.c.published_at,
            )
            .where(
                articles_table.c.category == category,
                articles_table.c.status == ArticleStatus.PUBLISHED.value,
            )
            .order_by(articles_table.c.published_at.desc(), articles_table.c.id.desc())
            .limit(limit)
        )
        with self.engine.connect() as conn:
            return [TrendingCandidate(**row) for row in conn.execute(stmt).mappings()]

    def categories_with_articles(self) -> list[str]:
        """Distinct categories that have at least one published article."""
        stmt = (
            select(articles_table.c.category)
            .where(articles_table.c.status == ArticleStatus.PUBLISHED.value)
            .group_by(articles_table.c.category)
            .order_by(articles_table.c.category)
        )
        with self.engine.connect() as conn:
            return list(conn.execute(stmt).scalars())
