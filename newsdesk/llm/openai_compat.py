"""OpenAI-compatible chat completions implementation of the language model interface."""

import aiohttp
from loguru import logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from newsdesk.constants import (
    DEFAULT_LLM_MAX_RETRIES,
    DEFAULT_RETRY_MAX_WAIT,
    DEFAULT_RETRY_MIN_WAIT,
)
from newsdesk.errors import ModelResponseError
from newsdesk.models.config import TrendingConfig

DEFAULT_BASE_URL = "https://api.openai.com/v1"


class OpenAICompatibleModel:
    """
    Posts to `{base_url}/chat/completions`.

    Works with OpenAI and with providers exposing the same endpoint
    (DeepSeek, Sarvam, local gateways) through `trending.base_url`.
    """

    provider = "openai"

    def __init__(self, config: TrendingConfig, api_key: str, key_source: str | None = None):
        self.model = config.llm_model
        self.key_source = key_source
        self.temperature = config.temperature
        self.max_tokens = config.max_tokens
        self.base_url = (config.base_url or DEFAULT_BASE_URL).rstrip("/")
        self._api_key = api_key

    @retry(
        stop=stop_after_attempt(DEFAULT_LLM_MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=DEFAULT_RETRY_MIN_WAIT, max=DEFAULT_RETRY_MAX_WAIT),
        retry=retry_if_exception_type(aiohttp.ClientError),
        reraise=True,
    )
    async def complete(self, system: str, user: str) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}

        logger.debug("Calling chat completions API", model=self.model, base_url=self.base_url)

        async with (
            aiohttp.ClientSession() as session,
            session.post(f"{self.base_url}/chat/completions", json=payload, headers=headers) as response,
        ):
            response.raise_for_status()
            data = await response.json(content_type=None)

        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ModelResponseError(f"Unexpected chat completions payload: {e}") from e

        if not text:
            raise ModelResponseError("Chat completions returned an empty message")
        return text
