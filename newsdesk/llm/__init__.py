"""Language model providers for the trending analyzer."""

import os
from collections.abc import Mapping

from newsdesk.errors import MissingCredentialsError
from newsdesk.llm.base import LanguageModel
from newsdesk.llm.gemini import GeminiModel
from newsdesk.llm.openai_compat import OpenAICompatibleModel
from newsdesk.models.config import TrendingConfig
from newsdesk.utils.security import is_configured_key

# First configured variable wins
PROVIDER_KEY_ENV: dict[str, tuple[str, ...]] = {
    "gemini": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "openai": ("OPENAI_API_KEY",),
}


def resolve_api_key(
    config: TrendingConfig, env: Mapping[str, str] | None = None
) -> tuple[str, str]:
    """
    Find the API key for the configured provider.

    Returns:
        (api_key, key_source) where key_source names the variable, e.g. "env:GEMINI_API_KEY"

    Raises:
        MissingCredentialsError: If no candidate variable holds a usable key
    """
    env = os.environ if env is None else env
    names = (config.api_key_env,) if config.api_key_env else PROVIDER_KEY_ENV[config.provider]

    for name in names:
        value = env.get(name)
        if is_configured_key(value):
            return value.strip(), f"env:{name}"

    raise MissingCredentialsError(
        f"No API key for provider '{config.provider}' (checked {', '.join(names)})"
    )


def create_language_model(
    config: TrendingConfig, env: Mapping[str, str] | None = None
) -> LanguageModel:
    """Build the configured provider.

    Raises:
        MissingCredentialsError: If the provider has no API key
    """
    api_key, key_source = resolve_api_key(config, env)
    if config.provider == "gemini":
        return GeminiModel(config, api_key, key_source)
    return OpenAICompatibleModel(config, api_key, key_source)


__all__ = [
    "PROVIDER_KEY_ENV",
    "GeminiModel",
    "LanguageModel",
    "OpenAICompatibleModel",
    "create_language_model",
    "resolve_api_key",
]
