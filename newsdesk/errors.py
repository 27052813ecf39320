"""Exception hierarchy shared by the ingestion and trending pipelines."""


class NewsdeskError(Exception):
    """Base exception for pipeline errors."""

    def __init__(self, message: str, component: str, recoverable: bool = False):
        self.component = component
        self.recoverable = recoverable
        super().__init__(message)


class UnauthorizedError(NewsdeskError):
    """Trigger rejected because the shared secret did not match."""

    def __init__(self, message: str = "Unauthorized", component: str = "trigger"):
        super().__init__(message, component, recoverable=False)


class StoreError(NewsdeskError):
    """Persistent store could not be read or written."""

    def __init__(self, message: str, component: str = "store"):
        super().__init__(message, component, recoverable=False)


class LLMError(NewsdeskError):
    """Language model call failed; callers fall back to recency ranking."""

    def __init__(self, message: str, component: str = "llm"):
        super().__init__(message, component, recoverable=True)


class MissingCredentialsError(LLMError):
    """No API key is configured for the selected provider."""


class ModelResponseError(LLMError):
    """Model answered, but the answer cannot be used."""
