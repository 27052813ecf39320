"""Entry points invoked by a scheduler or an operator.

Both triggers check a shared secret before doing anything and translate the
outcome into a flat response that a caller (CLI, cron wrapper, HTTP handler)
can report directly.
"""

import os
from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, ValidationError

from newsdesk.errors import MissingCredentialsError, UnauthorizedError
from newsdesk.llm import create_language_model
from newsdesk.llm.base import LanguageModel
from newsdesk.models.config import PipelineConfig
from newsdesk.models.feeds import IngestionScope
from newsdesk.models.runs import TriggerKind
from newsdesk.steps.step1_fetch import fetch_feed_detailed
from newsdesk.steps.step2_ingestion import Fetcher, run_ingestion
from newsdesk.steps.step3_trending import TrendingAnalyzer, run_trending
from newsdesk.storage.store import Store
from newsdesk.utils.logging import AI_CHANNEL, get_logger
from newsdesk.utils.prompt_loader import PromptLoader
from newsdesk.utils.security import verify_secret

if TYPE_CHECKING:
    from loguru import Logger


class TriggerStatus(str, Enum):
    OK = "ok"
    UNAUTHORIZED = "unauthorized"
    ERROR = "error"


class IngestionTriggerResponse(BaseModel):
    """Counts reported back to whoever triggered an ingestion run."""

    status: TriggerStatus
    run_id: str | None = None
    overall_status: str | None = None
    feeds_processed: int = 0
    new_articles: int = 0
    skipped: int = 0
    errors: int = 0
    duration_ms: int = 0
    message: str | None = None


class CategoryCount(BaseModel):
    category: str
    candidates: int = 0
    trending: int = 0
    error: str | None = None


class TrendingTriggerResponse(BaseModel):
    """Counts reported back to whoever triggered a trending recomputation."""

    status: TriggerStatus
    categories_processed: int = 0
    total_trending: int = 0
    results: list[CategoryCount] = Field(default_factory=list)
    duration_ms: int = 0
    message: str | None = None


def authorize(presented: str | None, env_name: str, env: Mapping[str, str]) -> None:
    """
    Raises:
        UnauthorizedError: If the presented secret does not match `env[env_name]`
    """
    if not verify_secret(presented, env.get(env_name)):
        raise UnauthorizedError()


async def trigger_ingestion(
    store: Store,
    config: PipelineConfig,
    secret: str | None,
    feed_ids: list[int] | None = None,
    categories: list[str] | None = None,
    scheduled: bool = False,
    triggered_by: str | None = None,
    env: Mapping[str, str] | None = None,
    fetcher: Fetcher = fetch_feed_detailed,
    log: "Logger | None" = None,
) -> IngestionTriggerResponse:
    """
    Authorize and run one ingestion.

    Args:
        store: Persistent store
        config: Pipeline configuration
        secret: Secret presented by the caller
        feed_ids: Restrict the run to these feeds (due check bypassed)
        categories: Restrict the run to feeds in these categories (due check bypassed)
        scheduled: Mark the run as scheduled rather than manual
        triggered_by: Initiator label stored with the run
        env: Environment to read the expected secret from (os.environ by default)
        fetcher: Feed fetcher, replaceable in tests
        log: Logger

    Returns:
        IngestionTriggerResponse; `unauthorized` means nothing was executed
    """
    env = os.environ if env is None else env
    log = log or get_logger(__name__)

    try:
        authorize(secret, config.security.ingestion_secret_env, env)
    except UnauthorizedError as e:
        log.warning("Ingestion trigger rejected", reason=str(e))
        return IngestionTriggerResponse(status=TriggerStatus.UNAUTHORIZED, message=str(e))

    try:
        scope = IngestionScope(feed_ids=feed_ids or [], categories=categories or [])
    except ValidationError as e:
        return IngestionTriggerResponse(status=TriggerStatus.ERROR, message=str(e))

    trigger = TriggerKind.SCHEDULED if scheduled else TriggerKind.MANUAL
    try:
        run = await run_ingestion(
            store,
            scope,
            trigger=trigger,
            triggered_by=triggered_by or trigger.value,
            fetch_config=config.fetch,
            ingestion_config=config.ingestion,
            fetcher=fetcher,
            log=log,
        )
    # Store outages and any other unexpected failure are reported, not raised
    except Exception as e:
        log.exception("Ingestion run failed")
        return IngestionTriggerResponse(
            status=TriggerStatus.ERROR, message=f"{type(e).__name__}: {e}"
        )

    return IngestionTriggerResponse(
        status=TriggerStatus.OK,
        run_id=run.run_id,
        overall_status=run.overall_status.value,
        feeds_processed=run.total_feeds,
        new_articles=run.total_new_articles,
        skipped=run.total_skipped,
        errors=run.total_errors,
        duration_ms=run.duration_ms,
    )


def build_language_model(
    config: PipelineConfig, env: Mapping[str, str] | None = None, log: "Logger | None" = None
) -> LanguageModel | None:
    """Configured model, or None when its credentials are missing (analyzer falls back)."""
    log = log or get_logger(__name__, channel=AI_CHANNEL)
    try:
        return create_language_model(config.trending, env)
    except MissingCredentialsError as e:
        log.warning("Language model unavailable, recency fallback will be used", error=str(e))
        return None


async def trigger_trending(
    store: Store,
    config: PipelineConfig,
    secret: str | None,
    categories: list[str] | None = None,
    model: LanguageModel | None = None,
    prompt_loader: PromptLoader | None = None,
    env: Mapping[str, str] | None = None,
    log: "Logger | None" = None,
) -> TrendingTriggerResponse:
    """
    Authorize and recompute trending sets.

    Args:
        store: Persistent store
        config: Pipeline configuration
        secret: Secret presented by the caller
        categories: Categories to process (all with published articles when omitted)
        model: Language model to use; built from config and env when omitted
        prompt_loader: Prompt template source
        env: Environment for the secret and API keys (os.environ by default)
        log: Logger

    Returns:
        TrendingTriggerResponse with per-category counts
    """
    env = os.environ if env is None else env
    log = log or get_logger(__name__, channel=AI_CHANNEL)

    try:
        authorize(secret, config.security.trending_secret_env, env)
    except UnauthorizedError as e:
        log.warning("Trending trigger rejected", reason=str(e))
        return TrendingTriggerResponse(status=TriggerStatus.UNAUTHORIZED, message=str(e))

    if not config.trending.enabled:
        log.info("Trending analysis is disabled, skipping")
        return TrendingTriggerResponse(status=TriggerStatus.OK, message="Trending disabled")

    analyzer = TrendingAnalyzer(
        config.trending,
        store.calls,
        model=model or build_language_model(config, env, log),
        prompt_loader=prompt_loader,
        log=log,
    )

    try:
        report = await run_trending(store, analyzer, categories, config.trending, log)
    except Exception as e:
        log.exception("Trending run failed")
        return TrendingTriggerResponse(
            status=TriggerStatus.ERROR, message=f"{type(e).__name__}: {e}"
        )

    failed = report.failed
    status = TriggerStatus.ERROR if failed and len(failed) == len(report.results) else TriggerStatus.OK
    return TrendingTriggerResponse(
        status=status,
        categories_processed=report.categories_processed,
        total_trending=report.total_trending,
        results=[
            CategoryCount(
                category=r.category,
                candidates=r.candidates,
                trending=len(r.trending),
                error=r.error,
            )
            for r in report.results
        ],
        duration_ms=report.duration_ms,
        message="; ".join(f"{r.category}: {r.error}" for r in failed) or None,
    )
