"""Application-wide constants.

Contains configuration constants used across the codebase to avoid magic numbers
and maintain consistency.
"""

# Feed Fetching
DEFAULT_FETCH_TIMEOUT_SECONDS = 12  # Per delivery attempt
DEFAULT_USER_AGENT = "newsdesk/1.0 RSS Reader"
FEED_ACCEPT_HEADER = "application/rss+xml, application/xml, text/xml, application/json;q=0.9"

# Item Normalization
MIN_TITLE_LENGTH = 10  # Shorter titles are treated as invalid items
MAX_DESCRIPTION_LENGTH = 500  # Longer descriptions are cut to 497 chars + "..."
TITLE_LOG_PREVIEW = 80  # Characters of a title shown in log lines

# Articles
READING_WORDS_PER_MINUTE = 200
MAX_SLUG_LENGTH = 200

# Trending Analysis
DEFAULT_TRENDING_COUNT = 7  # Trending articles kept per category
DEFAULT_CANDIDATE_LIMIT = 50  # Most recent articles offered to the model
PROMPT_EXCERPT_LENGTH = 120  # Excerpt characters per candidate in the prompt
TRENDING_TTL_HOURS = 4
BELOW_THRESHOLD_REASONING = "included — below threshold"
FALLBACK_REASONING = "selected by recency (fallback)"
SHORTCUT_TOP_SCORE = 100.0
SHORTCUT_SCORE_STEP = 10.0
FALLBACK_TOP_SCORE = 90.0
FALLBACK_SCORE_STEP = 5.0
CHARS_PER_TOKEN = 4  # Rough prompt token estimate

# Call Log Truncation
MAX_ERROR_MESSAGE_LENGTH = 2000
MAX_SUMMARY_LENGTH = 1000

# LLM Configuration
DEFAULT_LLM_TEMPERATURE = 0.3  # Default temperature for LLM calls
DEFAULT_LLM_MAX_TOKENS = 1000
DEFAULT_LLM_TIMEOUT_SECONDS = 45
DEFAULT_LLM_MAX_RETRIES = 3  # Default max retries for LLM calls
DEFAULT_RETRY_MIN_WAIT = 2  # Minimum wait time between retries (seconds)
DEFAULT_RETRY_MAX_WAIT = 10  # Maximum wait time between retries (seconds)

# Feed Processing
MAX_ERROR_DISPLAY = 5  # Maximum number of errors to display in logs

# Ingestion Outcomes
DUPLICATE_REASON = "Duplicate: Article already exists in database"
CONCURRENT_DUPLICATE_REASON = f"{DUPLICATE_REASON} (concurrent insert)"
DEADLINE_EXCEEDED_MESSAGE = "Run deadline exceeded before the feed finished"
