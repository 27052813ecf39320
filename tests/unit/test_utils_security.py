"""Unit tests for trigger secret handling."""

from newsdesk.utils.security import is_configured_key, redact_secrets, verify_secret


class TestVerifySecret:
    def test_matching_secret(self) -> None:
        assert verify_secret("s3cret", "s3cret") is True

    def test_wrong_secret(self) -> None:
        assert verify_secret("guess", "s3cret") is False

    def test_missing_presented_secret(self) -> None:
        assert verify_secret(None, "s3cret") is False

    def test_unconfigured_secret_rejects_everything(self) -> None:
        assert verify_secret("", None) is False
        assert verify_secret("", "") is False


def test_redact_secrets_masks_query_keys_and_bearer_tokens() -> None:
    text = "GET https://api.example.com/v1?api_key=abc123&q=x Authorization: Bearer tok.en-1"
    redacted = redact_secrets(text)
    assert "abc123" not in redacted
    assert "tok.en-1" not in redacted
    assert "q=x" in redacted


def test_placeholder_keys_are_not_configured() -> None:
    assert is_configured_key("YOUR_GEMINI_API_KEY") is False
    assert is_configured_key("  ") is False
    assert is_configured_key(None) is False
    assert is_configured_key("AIza-real") is True
