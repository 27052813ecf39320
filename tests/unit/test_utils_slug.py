"""Unit tests for slug utilities."""

from newsdesk.utils.slug import generate_slug, generate_unique_slug


class TestGenerateSlug:
    """Test generate_slug function."""

    def test_basic_slug_generation(self) -> None:
        """Test basic slug generation."""
        assert generate_slug("Hello World") == "hello-world"
        assert generate_slug("ISRO Launches PSLV-C58") == "isro-launches-pslv-c58"

    def test_slug_with_special_characters(self) -> None:
        """Test slug generation with special characters."""
        assert generate_slug("Sensex & Nifty: Markets Rally!") == "sensex-nifty-markets-rally"
        assert generate_slug("Budget (2024) - Part 1") == "budget-2024-part-1"

    def test_slug_max_length(self) -> None:
        """Test slug generation with max length."""
        long_title = "This is a very long title that should be truncated"
        slug = generate_slug(long_title, max_length=20)
        assert len(slug) <= 20
        assert slug == "this-is-a-very-long"

    def test_slug_with_unicode(self) -> None:
        """Test slug generation with unicode characters."""
        assert generate_slug("Café résumé") == "cafe-resume"

    def test_slug_empty_string(self) -> None:
        """Test slug generation with empty string."""
        assert generate_slug("") == "untitled"
        assert generate_slug("!!!???") == "untitled"


class TestGenerateUniqueSlug:
    """Test generate_unique_slug function."""

    def test_unique_slug_no_collision(self) -> None:
        """Base slug is returned when it is free."""
        slug = generate_unique_slug("Test Article", lambda s: False, lambda: "123")
        assert slug == "test-article"

    def test_unique_slug_with_collision(self) -> None:
        """A token is appended when the base slug is taken."""
        existing = {"test-article"}
        slug = generate_unique_slug("Test Article", existing.__contains__, lambda: "1700000000000")
        assert slug == "test-article-1700000000000"

    def test_unique_slug_retries_until_free(self) -> None:
        """A new token is drawn while the suffixed slug is still taken."""
        existing = {"test-article", "test-article-1"}
        tokens = iter(["1", "2"])
        slug = generate_unique_slug("Test Article", existing.__contains__, lambda: next(tokens))
        assert slug == "test-article-2"
