"""Gemini implementation of the language model interface."""

from google import genai
from loguru import logger
from tenacity import retry, stop_after_attempt, wait_exponential

from newsdesk.constants import (
    DEFAULT_LLM_MAX_RETRIES,
    DEFAULT_RETRY_MAX_WAIT,
    DEFAULT_RETRY_MIN_WAIT,
)
from newsdesk.errors import ModelResponseError
from newsdesk.models.config import TrendingConfig


class GeminiModel:
    """Calls Gemini through the google-genai async client."""

    provider = "gemini"

    def __init__(self, config: TrendingConfig, api_key: str, key_source: str | None = None):
        self.model = config.llm_model
        self.key_source = key_source
        self.temperature = config.temperature
        self.max_tokens = config.max_tokens
        self._client = genai.Client(api_key=api_key)

    @retry(
        stop=stop_after_attempt(DEFAULT_LLM_MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=DEFAULT_RETRY_MIN_WAIT, max=DEFAULT_RETRY_MAX_WAIT),
        reraise=True,
    )
    async def complete(self, system: str, user: str) -> str:
        logger.debug("Calling Gemini API", model=self.model, prompt_chars=len(system) + len(user))

        response = await self._client.aio.models.generate_content(
            model=self.model,
            contents=user,
            config={
                "system_instruction": system,
                "temperature": self.temperature,
                "max_output_tokens": self.max_tokens,
                "response_mime_type": "application/json",
            },
        )

        text = response.text
        if not text:
            raise ModelResponseError("Gemini returned an empty response")

        logger.debug("Gemini API response received", response_text=text[:200])
        return text
