"""Feed registry and fetched item models."""

from datetime import datetime, timedelta

from pydantic import BaseModel, Field, model_validator

from newsdesk.clock import utc_now


class FeedConfig(BaseModel):
    """A configured feed as stored in the registry."""

    id: int = Field(description="Registry identifier")
    name: str = Field(description="Feed name")
    feed_url: str = Field(description="Feed URL")
    category: str = Field(description="Category for ingested articles")
    fetch_interval_minutes: int = Field(ge=1, description="Minimum minutes between fetches")
    is_active: bool = Field(default=True)
    last_fetched_at: datetime | None = Field(default=None, description="Last fetch (UTC)")

    def is_due(self, now: datetime | None = None) -> bool:
        """Active and never fetched, or the fetch interval has fully elapsed."""
        if not self.is_active:
            return False
        if self.last_fetched_at is None:
            return True
        now = now or utc_now()
        return now - self.last_fetched_at >= timedelta(minutes=self.fetch_interval_minutes)


class NormalizedItem(BaseModel):
    """Feed item in the common shape, independent of the wire format."""

    title: str = Field(min_length=1)
    link: str = Field(min_length=1)
    description: str = Field(default="")
    published_at: datetime = Field(default_factory=utc_now)
    image_url: str | None = Field(default=None)
    source_name: str = Field(default="Unknown Source")
    guid: str | None = Field(default=None)


class IngestionScope(BaseModel):
    """Selects which feeds an ingestion run processes.

    Empty scope means "all due feeds". Explicit feed ids or categories bypass
    the due-check.
    """

    feed_ids: list[int] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _single_selector(self) -> "IngestionScope":
        if self.feed_ids and self.categories:
            raise ValueError("Scope accepts feed ids or categories, not both")
        return self

    @property
    def kind(self) -> str:
        if self.feed_ids:
            return "feeds"
        if self.categories:
            return "categories"
        return "due"


class DeliveryAttempt(BaseModel):
    """One try at reaching a feed through a delivery strategy."""

    strategy: str
    url: str
    items: int = Field(default=0, ge=0)
    error: str | None = Field(default=None)
    duration_ms: int = Field(default=0, ge=0)

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.items > 0


class FetchResult(BaseModel):
    """Items of one feed plus the attempts made to get them."""

    feed_id: int
    items: list[NormalizedItem] = Field(default_factory=list)
    attempts: list[DeliveryAttempt] = Field(default_factory=list)

    @property
    def strategy(self) -> str | None:
        """Name of the strategy that delivered the items, if any."""
        for attempt in self.attempts:
            if attempt.succeeded:
                return attempt.strategy
        return None

    def describe_failure(self) -> str | None:
        """Summary of why nothing was delivered, None when items were delivered."""
        if self.items:
            return None
        if not self.attempts:
            return "No delivery strategy enabled"
        details = "; ".join(f"{a.strategy}: {a.error or 'no items'}" for a in self.attempts)
        return f"No strategy delivered items ({details})"
