"""Utility functions and helpers."""

from newsdesk.utils.config_loader import load_feeds_config, load_pipeline_config, load_yaml_config
from newsdesk.utils.logging import get_logger, setup_logging
from newsdesk.utils.prompt_loader import PromptLoader, get_prompt_loader
from newsdesk.utils.security import redact_secrets, verify_secret
from newsdesk.utils.slug import generate_slug, generate_unique_slug
from newsdesk.utils.text import (
    calculate_reading_time,
    estimate_tokens,
    strip_html,
    truncate_description,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "generate_slug",
    "generate_unique_slug",
    "load_yaml_config",
    "load_feeds_config",
    "load_pipeline_config",
    "PromptLoader",
    "get_prompt_loader",
    "verify_secret",
    "redact_secrets",
    "strip_html",
    "truncate_description",
    "calculate_reading_time",
    "estimate_tokens",
]
