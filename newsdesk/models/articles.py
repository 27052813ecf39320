"""Article and trending data models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ArticleStatus(str, Enum):
    """Article lifecycle status."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class NewArticle(BaseModel):
    """Article row about to be inserted by the ingestion orchestrator."""

    title: str = Field(description="Article title")
    slug: str = Field(description="Unique URL slug")
    excerpt: str = Field(description="Short excerpt")
    content: str = Field(description="Article body")
    featured_image: str | None = Field(default=None)
    category: str = Field(description="Category inherited from the feed")
    source_name: str = Field(description="Attributed source name")
    source_url: str = Field(description="Canonical link of the source item")
    status: ArticleStatus = Field(default=ArticleStatus.PUBLISHED)
    featured: bool = Field(default=False)
    ai_generated: bool = Field(default=False)
    requires_review: bool = Field(default=False)
    view_count: int = Field(default=0, ge=0)
    reading_time: int = Field(default=1, ge=1, description="Minutes")
    published_at: datetime = Field(description="Publication time (UTC)")


class Article(NewArticle):
    """Persisted article."""

    id: int = Field(description="Article id")
    created_at: datetime | None = Field(default=None)


class TrendingCandidate(BaseModel):
    """Minimal projection of an article passed to the trending analyzer."""

    id: int
    title: str
    excerpt: str = ""
    source_name: str = ""
    published_at: datetime


class TrendingResult(BaseModel):
    """One ranked article in a category's trending set."""

    model_config = ConfigDict(populate_by_name=True)

    article_id: int = Field(alias="articleId", description="Ranked article id")
    rank: int = Field(ge=1, description="1 = most trending")
    score: float = Field(description="Advisory score, display only")
    reasoning: str = Field(default="", description="Short explanation")
