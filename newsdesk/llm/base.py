"""Language model interface used by the trending analyzer."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class LanguageModel(Protocol):
    """A chat model answering a system instruction plus a user payload with text."""

    provider: str
    model: str
    key_source: str | None

    async def complete(self, system: str, user: str) -> str:
        """Return the raw text of the model's answer.

        Raises:
            LLMError: On transport or provider failures (after retries)
        """
        ...
