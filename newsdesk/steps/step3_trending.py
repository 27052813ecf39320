"""Step 3: Trending selection.

Ranks the recent articles of a category with a language model and falls back
to a deterministic recency ranking whenever the model path fails. The result
replaces the category's trending set.
"""

import asyncio
import json
import re
import time
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.exc import SQLAlchemyError

from newsdesk.clock import utc_now
from newsdesk.constants import (
    BELOW_THRESHOLD_REASONING,
    DEFAULT_CANDIDATE_LIMIT,
    FALLBACK_REASONING,
    FALLBACK_SCORE_STEP,
    FALLBACK_TOP_SCORE,
    MAX_SUMMARY_LENGTH,
    PROMPT_EXCERPT_LENGTH,
    SHORTCUT_SCORE_STEP,
    SHORTCUT_TOP_SCORE,
)
from newsdesk.errors import MissingCredentialsError, ModelResponseError, NewsdeskError
from newsdesk.llm.base import LanguageModel
from newsdesk.models.articles import TrendingCandidate, TrendingResult
from newsdesk.models.config import TrendingConfig
from newsdesk.models.runs import (
    AnalyzerCallLog,
    CallStatus,
    CategoryTrendingReport,
    TrendingRunReport,
)
from newsdesk.storage.call_log import AnalyzerCallLogger
from newsdesk.storage.store import Store
from newsdesk.utils.logging import AI_CHANNEL, get_logger
from newsdesk.utils.prompt_loader import PromptLoader, get_prompt_loader
from newsdesk.utils.text import estimate_tokens

if TYPE_CHECKING:
    from loguru import Logger

PROMPT_NAME = "trending_analysis"
NO_PROVIDER = "none"

_FENCE_START_RE = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
_FENCE_END_RE = re.compile(r"\n?```\s*$")


class ParsedRanking(BaseModel):
    """Outcome of parsing a model answer. `error` is set when nothing could be read."""

    entries: list[TrendingResult] = Field(default_factory=list)
    discarded: int = Field(default=0, ge=0, description="Elements failing shape validation")
    error: str | None = None


def format_candidates(candidates: list[TrendingCandidate], limit: int = DEFAULT_CANDIDATE_LIMIT) -> str:
    """One prompt line per candidate, capped at `limit` candidates."""
    lines = []
    for c in candidates[:limit]:
        excerpt = c.excerpt[:PROMPT_EXCERPT_LENGTH] if c.excerpt else "No excerpt"
        lines.append(
            f'[ID:{c.id}] "{c.title}" — {excerpt} '
            f"(Source: {c.source_name}, Published: {c.published_at.isoformat()})"
        )
    return "\n".join(lines)


def build_prompts(
    candidates: list[TrendingCandidate],
    category: str,
    count: int,
    loader: PromptLoader | None = None,
    limit: int = DEFAULT_CANDIDATE_LIMIT,
) -> tuple[str, str]:
    """Render (system instruction, user payload) for one category."""
    loader = loader or get_prompt_loader()
    return loader.render(
        PROMPT_NAME,
        category=category,
        count=count,
        articles=format_candidates(candidates, limit),
    )


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` markdown fence, if present."""
    cleaned = text.strip()
    cleaned = _FENCE_START_RE.sub("", cleaned)
    cleaned = _FENCE_END_RE.sub("", cleaned)
    return cleaned.strip()


def _extract_array(data: Any) -> list[Any] | None:
    if isinstance(data, list):
        return data
    # Some providers wrap the array in an object when asked for JSON output
    if isinstance(data, dict):
        for value in data.values():
            if isinstance(value, list):
                return value
    return None


def parse_ranking(text: str) -> ParsedRanking:
    """
    Parse a model answer into ranking entries.

    Elements that fail validation are counted as discarded; the rest are kept.
    """
    try:
        data = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as e:
        return ParsedRanking(error=f"Invalid JSON: {e}")

    elements = _extract_array(data)
    if elements is None:
        return ParsedRanking(error=f"Expected a JSON array, got {type(data).__name__}")

    entries: list[TrendingResult] = []
    discarded = 0
    for element in elements:
        try:
            entries.append(TrendingResult.model_validate(element))
        except ValidationError:
            discarded += 1

    return ParsedRanking(entries=entries, discarded=discarded)


def validate_ranking(
    entries: list[TrendingResult],
    candidates: list[TrendingCandidate],
    target_count: int,
) -> list[TrendingResult]:
    """
    Keep entries for known, distinct candidates, ordered by claimed rank.

    The result holds at most `target_count` entries ranked 1..k. Scores are
    kept as reported and never used for ordering.
    """
    known_ids = {c.id for c in candidates}
    seen: set[int] = set()
    kept: list[TrendingResult] = []

    for entry in sorted(entries, key=lambda e: e.rank):
        if entry.article_id not in known_ids or entry.article_id in seen:
            continue
        seen.add(entry.article_id)
        kept.append(entry)

    return [
        entry.model_copy(update={"rank": position})
        for position, entry in enumerate(kept[:target_count], start=1)
    ]


def descending_scores(top: float, step: float, count: int) -> list[float]:
    """
    `count` strictly decreasing positive scores starting at `top`.

    The step shrinks for long lists so the last score stays above zero.
    """
    if count:
        step = min(step, top / count)
    return [top - i * step for i in range(count)]


def below_threshold_ranking(candidates: list[TrendingCandidate]) -> list[TrendingResult]:
    """Every candidate in input order, used when there are too few to rank."""
    scores = descending_scores(SHORTCUT_TOP_SCORE, SHORTCUT_SCORE_STEP, len(candidates))
    return [
        TrendingResult(
            article_id=c.id,
            rank=i + 1,
            score=scores[i],
            reasoning=BELOW_THRESHOLD_REASONING,
        )
        for i, c in enumerate(candidates)
    ]


def fallback_ranking(candidates: list[TrendingCandidate], target_count: int) -> list[TrendingResult]:
    """Newest first (ties broken by id), deterministic for a given input."""
    ordered = sorted(candidates, key=lambda c: (-c.published_at.timestamp(), c.id))[:target_count]
    scores = descending_scores(FALLBACK_TOP_SCORE, FALLBACK_SCORE_STEP, len(ordered))
    return [
        TrendingResult(
            article_id=c.id,
            rank=i + 1,
            score=scores[i],
            reasoning=FALLBACK_REASONING,
        )
        for i, c in enumerate(ordered)
    ]


class TrendingAnalyzer:
    """
    Ranks a category's candidates and writes every invocation to the call log.

    Args:
        config: Trending configuration (provider names, timeout, limits)
        call_logger: Analyzer call logger
        model: Language model, or None when no credentials are configured
        prompt_loader: Prompt template source
        log: Logger bound to the ai channel
    """

    def __init__(
        self,
        config: TrendingConfig,
        call_logger: AnalyzerCallLogger,
        model: LanguageModel | None = None,
        prompt_loader: PromptLoader | None = None,
        log: "Logger | None" = None,
    ):
        self.config = config
        self.call_logger = call_logger
        self.model = model
        self.prompt_loader = prompt_loader
        self.log = log or get_logger(__name__, channel=AI_CHANNEL)

    @property
    def provider(self) -> str:
        return self.model.provider if self.model else self.config.provider

    @property
    def model_name(self) -> str:
        return self.model.model if self.model else self.config.llm_model

    def _record(self, category: str, status: CallStatus, started: float, **fields: Any) -> None:
        self.call_logger.record(
            AnalyzerCallLog(
                provider=fields.pop("provider", self.provider),
                model=fields.pop("model", self.model_name),
                category=category,
                status=status,
                duration_ms=int((time.monotonic() - started) * 1000),
                key_source=fields.pop("key_source", self.model.key_source if self.model else None),
                **fields,
            )
        )

    async def _ask_model(self, system: str, user: str) -> str:
        if self.model is None:
            raise MissingCredentialsError(f"No API key configured for provider '{self.config.provider}'")
        return await asyncio.wait_for(
            self.model.complete(system, user), timeout=self.config.timeout_seconds
        )

    async def analyze(
        self,
        candidates: list[TrendingCandidate],
        category: str,
        target_count: int | None = None,
    ) -> list[TrendingResult]:
        """
        Select up to `target_count` trending articles from `candidates`.

        Never raises for model failures: timeouts, transport errors, unusable
        answers and missing credentials all produce the recency fallback.

        Returns:
            Ranked results, ranks contiguous from 1
        """
        count = self.config.target_count if target_count is None else target_count
        if count < 1:
            raise ValueError(f"target_count must be at least 1, got {count}")
        started = time.monotonic()

        if len(candidates) <= count:
            results = below_threshold_ranking(candidates)
            self._record(
                category,
                CallStatus.SUCCESS,
                started,
                provider=NO_PROVIDER,
                model=NO_PROVIDER,
                key_source=None,
                input_articles=len(candidates),
                output_trending=len(results),
                request_summary=f"{len(candidates)} candidates <= target {count}, model not called",
            )
            return results

        try:
            system, user = build_prompts(
                candidates, category, count, self.prompt_loader, self.config.candidate_limit
            )
        except (FileNotFoundError, ValueError) as e:
            results = fallback_ranking(candidates, count)
            self._record(
                category,
                CallStatus.ERROR,
                started,
                input_articles=len(candidates),
                output_trending=len(results),
                error_message=f"Prompt unavailable: {e}",
            )
            return results

        prompt_tokens = estimate_tokens(system + user)
        request_summary = (
            f"{min(len(candidates), self.config.candidate_limit)} articles for [{category}], "
            f"target {count}, ~{prompt_tokens} tokens"
        )
        self.log.debug(f"System prompt for [{category}]", prompt=system)
        self.log.debug(f"User prompt for [{category}]", prompt=user[:3000])

        raw: str | None = None
        try:
            raw = await self._ask_model(system, user)
            self.log.debug(f"Raw response for [{category}]", response=raw[:5000])

            parsed = parse_ranking(raw)
            if parsed.error:
                raise ModelResponseError(parsed.error)

            results = validate_ranking(parsed.entries, candidates, count)
            if not results:
                raise ModelResponseError(
                    f"No usable entries in model answer ({len(parsed.entries)} parsed, "
                    f"{parsed.discarded} discarded)"
                )
        except TimeoutError:
            error_message = f"Model call timed out after {self.config.timeout_seconds}s"
        # Provider SDKs raise their own exception types; any of them means fallback
        except Exception as e:
            error_message = f"{type(e).__name__}: {e}"
        else:
            self._record(
                category,
                CallStatus.SUCCESS,
                started,
                input_articles=len(candidates),
                output_trending=len(results),
                prompt_tokens=prompt_tokens,
                request_summary=request_summary,
                response_summary=raw[:MAX_SUMMARY_LENGTH],
            )
            return results

        results = fallback_ranking(candidates, count)
        self._record(
            category,
            CallStatus.FALLBACK,
            started,
            input_articles=len(candidates),
            output_trending=len(results),
            prompt_tokens=prompt_tokens,
            error_message=error_message,
            request_summary=request_summary,
            response_summary=raw[:MAX_SUMMARY_LENGTH] if raw else None,
        )
        return results


def make_batch_id(category: str) -> str:
    return f"{category}-{int(time.time() * 1000)}"


async def run_trending(
    store: Store,
    analyzer: TrendingAnalyzer,
    categories: list[str] | None = None,
    config: TrendingConfig | None = None,
    log: "Logger | None" = None,
) -> TrendingRunReport:
    """
    Recompute the trending set of each category.

    Categories are processed one after another. A store failure in one
    category is reported for that category and does not stop the others.

    Args:
        store: Persistent store
        analyzer: Trending analyzer
        categories: Categories to process (all categories with published articles when empty)
        config: Trending configuration
        log: Logger

    Returns:
        TrendingRunReport with one entry per category
    """
    config = config or analyzer.config
    log = log or get_logger(__name__, channel=AI_CHANNEL)
    started = time.monotonic()

    if not categories:
        categories = store.articles.categories_with_articles()

    log.info(f"Trending analysis for {len(categories)} categories", categories=categories)

    results: list[CategoryTrendingReport] = []
    for category in categories:
        category_started = time.monotonic()
        try:
            candidates = store.articles.recent_candidates(category, config.candidate_limit)
            trending = await analyzer.analyze(candidates, category, config.target_count)
            batch_id = make_batch_id(category)
            store.trending.replace(
                category,
                trending,
                batch_id=batch_id,
                expires_at=utc_now() + timedelta(hours=config.ttl_hours),
            )
        except (SQLAlchemyError, NewsdeskError) as e:
            log.error(f"Trending failed for [{category}]", error=str(e))
            results.append(
                CategoryTrendingReport(
                    category=category,
                    duration_ms=int((time.monotonic() - category_started) * 1000),
                    error=str(e),
                )
            )
            continue

        log.info(
            f"Trending updated for [{category}]",
            candidates=len(candidates),
            trending=len(trending),
            batch_id=batch_id,
        )
        results.append(
            CategoryTrendingReport(
                category=category,
                candidates=len(candidates),
                trending=trending,
                batch_id=batch_id,
                duration_ms=int((time.monotonic() - category_started) * 1000),
            )
        )

    return TrendingRunReport(
        categories_processed=len(results),
        total_trending=sum(len(r.trending) for r in results),
        results=results,
        duration_ms=int((time.monotonic() - started) * 1000),
    )
