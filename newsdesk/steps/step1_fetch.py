"""Step 1: Feed fetching and item normalization.

Turns a configured feed into a list of `NormalizedItem`, whatever the wire
format. Delivery strategies (direct, CORS-style proxies, a JSON converter) are
tried in order until one returns items.
"""

import calendar
import json
import re
import time
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, urlparse

import aiohttp
import feedparser
from pydantic import ValidationError

from newsdesk.clock import to_naive_utc, utc_now
from newsdesk.constants import FEED_ACCEPT_HEADER, MIN_TITLE_LENGTH
from newsdesk.models.config import DeliveryStrategy, FetchConfig
from newsdesk.models.feeds import DeliveryAttempt, FeedConfig, FetchResult, NormalizedItem
from newsdesk.utils.logging import get_logger
from newsdesk.utils.text import strip_html, truncate_description

if TYPE_CHECKING:
    from feedparser import FeedParserDict
    from loguru import Logger

logger = get_logger(__name__)

UNKNOWN_SOURCE = "Unknown Source"
GOOGLE_NEWS_HOST = "news.google.com"

# Outlets whose display name differs from their host name
KNOWN_SOURCES: dict[str, str] = {
    "hindustantimes.com": "Hindustan Times",
    "thehindu.com": "The Hindu",
    "news.google.com": "News.google.com",
    "oneindia.com": "OneIndia",
}

IMAGE_EXTENSION_RE = re.compile(r"\.(jpg|jpeg|png|gif|webp)", re.IGNORECASE)
IMG_SRC_RE = re.compile(r"<img[^>]+src=[\"']([^\"']+)[\"']", re.IGNORECASE)
GOOGLE_ANCHOR_RE = re.compile(r"<a\s+href=[\"']([^\"']+)[\"'][^>]*>([^<]+)</a>")
GOOGLE_FONT_RE = re.compile(r"<font[^>]*>([^<]+)</font>")


def get_source_name(feed_url: str) -> str:
    """
    Display name of the outlet behind a feed URL.

    Examples:
        >>> get_source_name("https://www.thehindu.com/news/national/feeder/default.rss")
        'The Hindu'
        >>> get_source_name("https://www.example.org/rss")
        'Example.org'
    """
    for marker, name in KNOWN_SOURCES.items():
        if marker in feed_url:
            return name

    host = urlparse(feed_url).hostname
    if not host:
        return UNKNOWN_SOURCE
    host = host.removeprefix("www.")
    return host[:1].upper() + host[1:]


def is_google_news(feed_url: str) -> bool:
    return GOOGLE_NEWS_HOST in feed_url


def parse_google_news_description(description: str) -> tuple[str, str, str] | None:
    """
    Extract (title, link, source) from a Google News item description.

    Google News wraps each item as `<a href="URL">Title</a> <font>Source</font>`.
    """
    anchor = GOOGLE_ANCHOR_RE.search(description)
    if not anchor:
        return None
    font = GOOGLE_FONT_RE.search(description)
    source = strip_html(font.group(1)) if font else KNOWN_SOURCES[GOOGLE_NEWS_HOST]
    return strip_html(anchor.group(2)), anchor.group(1), source


def split_title_source(title: str) -> tuple[str, str | None]:
    """Split a trailing " - Source" off a title. Returns (title, source or None)."""
    parts = title.split(" - ")
    if len(parts) > 1 and parts[-1].strip():
        return " - ".join(parts[:-1]), parts[-1].strip()
    return title, None


def parse_date_string(value: Any) -> datetime | None:
    """Parse RFC 822 or ISO 8601 timestamps into naive UTC. Returns None when unparseable."""
    if not value or not isinstance(value, str):
        return None
    value = value.strip()
    try:
        return to_naive_utc(parsedate_to_datetime(value))
    except (TypeError, ValueError, IndexError):
        pass
    try:
        return to_naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None


def _image_from_html(html_text: str | None) -> str | None:
    if not html_text:
        return None
    match = IMG_SRC_RE.search(html_text)
    return match.group(1) if match else None


def _text(value: Any) -> str | None:
    """The value when it is a non-empty string, None for anything else."""
    return value if isinstance(value, str) and value.strip() else None


def normalize_item(
    *,
    title: Any,
    link: Any,
    description: Any,
    published_at: datetime | None,
    image_url: Any,
    source_name: str,
    guid: Any,
    google_news: bool = False,
) -> NormalizedItem | None:
    """
    Apply the common cleanup rules to one raw item.

    Fields of the wrong type are treated as absent, so a malformed optional
    field never costs the item.

    Returns:
        The normalized item, or None when the item has no usable title or link
    """
    title, link, description = _text(title), _text(link), _text(description)
    image_url = _text(image_url) or _image_from_html(description)
    guid = _text(guid)

    if google_news and description:
        google = parse_google_news_description(description)
        if google:
            title, link, source_name = google
            description = title

    if not title or not link:
        return None

    clean_title = strip_html(title)
    if len(clean_title) < MIN_TITLE_LENGTH:
        return None

    clean_description = strip_html(description) or clean_title
    link = link.strip()

    try:
        return NormalizedItem(
            title=clean_title,
            link=link,
            description=truncate_description(clean_description),
            published_at=published_at or utc_now(),
            image_url=image_url,
            source_name=source_name,
            guid=guid or link,
        )
    except ValidationError as e:
        logger.debug(f"Dropped item {link}: {e}")
        return None


def _entry_date(entry: "FeedParserDict") -> datetime | None:
    # feedparser normalizes *_parsed fields to UTC struct_time
    for field in ("published_parsed", "updated_parsed", "created_parsed"):
        parsed = entry.get(field)
        if parsed:
            try:
                return to_naive_utc(datetime.fromtimestamp(calendar.timegm(parsed), tz=UTC))
            except (OverflowError, ValueError, OSError) as e:
                logger.debug(f"Failed to parse date from {field}: {e}")
    return None


def _entry_image(entry: "FeedParserDict") -> str | None:
    for media in entry.get("media_content") or []:
        if media.get("url"):
            return media["url"]

    for thumb in entry.get("media_thumbnail") or []:
        if thumb.get("url"):
            return thumb["url"]

    enclosures = entry.get("enclosures") or []
    for enclosure in enclosures:
        href = enclosure.get("href") or enclosure.get("url")
        if href and str(enclosure.get("type", "")).startswith("image/"):
            return href
    for enclosure in enclosures:
        href = enclosure.get("href") or enclosure.get("url")
        if href and IMAGE_EXTENSION_RE.search(href):
            return href

    return None


def _entry_description(entry: "FeedParserDict") -> str | None:
    if entry.get("summary"):
        return entry.summary
    if entry.get("content"):
        return entry.content[0].get("value")
    return None


def parse_xml_feed(content: str, feed_url: str) -> list[NormalizedItem]:
    """
    Parse RSS 2.0 / Atom XML into normalized items.

    Raises:
        ValueError: If the document is malformed and yields no entries
    """
    parsed = feedparser.parse(content)

    if parsed.bozo and not parsed.entries:
        error_msg = str(parsed.get("bozo_exception", "Unknown parse error"))
        raise ValueError(f"Malformed feed: {error_msg}")

    source_name = get_source_name(feed_url)
    google_news = is_google_news(feed_url)
    items = []

    for entry in parsed.entries:
        item = normalize_item(
            title=entry.get("title"),
            link=entry.get("link"),
            description=_entry_description(entry),
            published_at=_entry_date(entry),
            image_url=_entry_image(entry),
            source_name=source_name,
            guid=entry.get("id"),
            google_news=google_news,
        )
        if item:
            items.append(item)

    return items


def _json_image(raw: dict[str, Any]) -> str | None:
    if thumbnail := _text(raw.get("thumbnail")):
        return thumbnail
    enclosure = raw.get("enclosure")
    if isinstance(enclosure, dict):
        link = _text(enclosure.get("link")) or _text(enclosure.get("url"))
        if link and (
            str(enclosure.get("type", "")).startswith("image/") or IMAGE_EXTENSION_RE.search(link)
        ):
            return link
    return None


def parse_json_feed(content: str, feed_url: str) -> list[NormalizedItem]:
    """
    Parse a JSON-wrapped feed into normalized items.

    Accepts the rss2json shape `{"status": "ok", "items": [...]}` or a bare list of items.

    Raises:
        ValueError: If the payload is not JSON or reports a failure status
    """
    data = json.loads(content)

    if isinstance(data, dict):
        if data.get("status") != "ok":
            raise ValueError(f"Converter returned status {data.get('status')!r}: {data.get('message', '')}")
        entries = data.get("items") or []
    elif isinstance(data, list):
        entries = data
    else:
        raise ValueError("Unexpected JSON feed payload")

    default_source = get_source_name(feed_url)
    google_news = is_google_news(feed_url)
    items = []

    for raw in entries:
        if not isinstance(raw, dict):
            continue

        title = _text(raw.get("title"))
        source_name = default_source
        if google_news and title:
            title, source = split_title_source(title)
            source_name = source or default_source

        item = normalize_item(
            title=title,
            link=_text(raw.get("link")) or _text(raw.get("url")),
            description=_text(raw.get("description")) or _text(raw.get("content")),
            published_at=parse_date_string(
                raw.get("pubDate") or raw.get("published") or raw.get("isoDate")
            ),
            image_url=_json_image(raw),
            source_name=source_name,
            guid=raw.get("guid"),
        )
        if item:
            items.append(item)

    return items


def _looks_like_json(content: str) -> bool:
    return content.lstrip()[:1] in ("{", "[")


def build_strategy_url(strategy: DeliveryStrategy, feed_url: str) -> str:
    return strategy.url_template.format(url=feed_url, encoded_url=quote(feed_url, safe=""))


async def _download(session: aiohttp.ClientSession, url: str, config: FetchConfig) -> str:
    headers = {"User-Agent": config.user_agent, "Accept": FEED_ACCEPT_HEADER}
    timeout = aiohttp.ClientTimeout(total=config.timeout_seconds)
    async with session.get(url, headers=headers, timeout=timeout) as response:
        response.raise_for_status()
        return await response.text()


async def _attempt(
    session: aiohttp.ClientSession,
    feed: FeedConfig,
    strategy: DeliveryStrategy,
    config: FetchConfig,
) -> tuple[DeliveryAttempt, list[NormalizedItem]]:
    url = build_strategy_url(strategy, feed.feed_url)
    started = time.monotonic()
    items: list[NormalizedItem] = []
    error = None

    content = None
    try:
        content = await _download(session, url, config)
    except aiohttp.ClientResponseError as e:
        error = f"HTTP {e.status}"
    except (aiohttp.ClientError, TimeoutError) as e:
        error = f"{type(e).__name__}: {e}" if str(e) else type(e).__name__

    if content is not None:
        try:
            if strategy.format == "json" or _looks_like_json(content):
                items = parse_json_feed(content, feed.feed_url)
            else:
                items = parse_xml_feed(content, feed.feed_url)
        except ValueError as e:
            error = str(e)
        # Any failure while walking the document counts as a failed attempt
        except Exception as e:
            error = f"Parse error: {type(e).__name__}: {e}"

    items = items[: config.max_items_per_feed]
    attempt = DeliveryAttempt(
        strategy=strategy.name,
        url=url,
        items=len(items),
        error=error,
        duration_ms=int((time.monotonic() - started) * 1000),
    )
    return attempt, items


async def fetch_feed_detailed(
    feed: FeedConfig,
    config: FetchConfig | None = None,
    session: aiohttp.ClientSession | None = None,
    log: "Logger | None" = None,
) -> FetchResult:
    """
    Fetch one feed, trying delivery strategies in order until one yields items.

    Never raises for network or parse failures; they are reported as attempts.

    Args:
        feed: Feed to fetch
        config: Fetch configuration (defaults apply when omitted)
        session: Shared HTTP session; a private one is opened when omitted
        log: Logger to report attempts to

    Returns:
        FetchResult with the items of the first successful strategy
    """
    config = config or FetchConfig()
    log = log or logger

    if session is None:
        async with aiohttp.ClientSession() as own_session:
            return await fetch_feed_detailed(feed, config, own_session, log)

    result = FetchResult(feed_id=feed.id)
    for strategy in config.strategies:
        if not strategy.enabled:
            continue

        attempt, items = await _attempt(session, feed, strategy, config)
        result.attempts.append(attempt)

        if items:
            result.items = items
            log.debug(
                f"Fetched {len(items)} items from {feed.name}",
                strategy=strategy.name,
                duration_ms=attempt.duration_ms,
            )
            return result

        log.debug(
            f"Strategy {strategy.name} delivered nothing for {feed.name}",
            error=attempt.error,
        )

    log.warning(f"All delivery strategies failed for {feed.name}", feed_id=feed.id)
    return result


async def fetch_feed(
    feed: FeedConfig,
    config: FetchConfig | None = None,
    session: aiohttp.ClientSession | None = None,
) -> list[NormalizedItem]:
    """Fetch one feed and return its normalized items (empty on failure)."""
    result = await fetch_feed_detailed(feed, config, session)
    return result.items
