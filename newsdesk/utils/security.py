"""Trigger authentication and secret redaction."""

import hmac
import re


def verify_secret(presented: str | None, expected: str | None) -> bool:
    """Constant-time comparison of a presented trigger secret.

    A missing expected secret means the trigger is not configured, and every
    request is rejected.
    """
    if not expected or presented is None:
        return False
    return hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))


def redact_secrets(text: str) -> str:
    """Redact common secret patterns from logs and error strings."""
    if not isinstance(text, str):
        return text

    redacted = text

    # Query params like apiKey=, api_key=, key=, token=, secret=
    redacted = re.sub(
        r"(?i)(api[_-]?key|key|token|secret)=([^&\s]+)", r"\1=***REDACTED***", redacted
    )

    # Authorization: Bearer <token>
    redacted = re.sub(r"(?i)Bearer\s+[A-Za-z0-9._\-]+", "Bearer ***REDACTED***", redacted)

    return redacted


def is_configured_key(value: str | None) -> bool:
    """Return True if an env var-like key is configured (not empty or placeholder)."""
    if not value:
        return False
    s = value.strip()
    if not s:
        return False
    return ("YOUR_" not in s) and ("your_" not in s)
