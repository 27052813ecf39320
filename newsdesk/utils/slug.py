"""URL slug generation utilities."""

from collections.abc import Callable

from slugify import slugify

from newsdesk.constants import MAX_SLUG_LENGTH


def generate_slug(text: str, max_length: int = MAX_SLUG_LENGTH) -> str:
    """Generate a URL-safe slug from text.

    Args:
        text: Input text (e.g., article title)
        max_length: Maximum slug length

    Returns:
        URL-safe slug

    Examples:
        >>> generate_slug("OpenAI Releases GPT-5")
        'openai-releases-gpt-5'
        >>> generate_slug("Sensex & Nifty: markets close higher!")
        'sensex-nifty-markets-close-higher'
    """
    slug = slugify(text, max_length=max_length, word_boundary=True, separator="-", lowercase=True)
    return slug or "untitled"


def generate_unique_slug(
    text: str,
    exists: Callable[[str], bool],
    token: Callable[[], str],
    max_length: int = MAX_SLUG_LENGTH,
) -> str:
    """
    Generate a slug not yet used in the store by appending a token on collision.

    Args:
        text: Input text (e.g., article title)
        exists: Returns True when a slug is already taken
        token: Produces a disambiguating suffix (a millisecond timestamp in production)
        max_length: Maximum slug length of the base part

    Returns:
        Unique URL-safe slug

    Examples:
        >>> generate_unique_slug("Test Article", lambda s: False, lambda: "1")
        'test-article'
        >>> generate_unique_slug("Test Article", lambda s: s == "test-article", lambda: "1700")
        'test-article-1700'
    """
    base_slug = generate_slug(text, max_length=max_length)

    if not exists(base_slug):
        return base_slug

    while True:
        unique_slug = f"{base_slug}-{token()}"
        if not exists(unique_slug):
            return unique_slug
