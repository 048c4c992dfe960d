"""
Text Generation Clients - Shared Contract

Every provider the generation adapter can route to satisfies
`LLMClientProtocol`. Concrete clients inherit error wrapping, call
counters and logging from `BaseLLMClient`.

Layout:
    - LLMClientProtocol: what the adapter calls
    - BaseLLMClient: shared plumbing around one `_call_api`
    - Concrete clients (OpenAIClient, GeminiClient, OllamaClient,
      MockLLMClient) extend base

Retry Policy:
    None. A failed call raises once; the orchestrator decides what a
    failure means for the run.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Protocol, runtime_checkable

from loguru import logger

from clinical_suggestion_pipeline.core.exceptions import (
    LLMContentFilteredError,
    LLMError,
    LLMRateLimitError,
)


RATE_LIMIT_MARKERS = ("rate limit", "rate_limit", "quota", "429", "resource exhausted")


# =============================================================================
# STAGE 1: CLIENT CONTRACT
# =============================================================================


@runtime_checkable
class LLMClientProtocol(Protocol):
    """
    Anything that turns a compiled prompt into raw model text.

    Test doubles (see tests/stubs.py) satisfy it structurally without
    inheriting from BaseLLMClient.

    Required Methods:
        generate(prompt) → Generate text from prompt (async)

    Properties:
        model_name    → Name of the model being used
        provider_name → Name of the provider (openai, gemini, ollama, mock)
    """

    async def generate(self, prompt: str) -> str:
        """
        Return the model output for one prompt.

        Raises:
            LLMError: Provider failure of any kind
        """
        ...

    @property
    def model_name(self) -> str:
        ...

    @property
    def provider_name(self) -> str:
        ...


# =============================================================================
# STAGE 2: BASE CLIENT
# =============================================================================


class BaseLLMClient(ABC):
    """
    Shared plumbing for concrete provider clients.

    Subclasses supply:
        - _call_api(prompt): one async request to the provider
        - provider_name: registry id of the provider

    Provided here:
        - Wrapping of unexpected errors in LLMError
        - Success / failure counters
        - Logging
    """

    def __init__(self, model_name: str, api_key: str = "", request_timeout: float = 60.0):
        """
        Args:
            model_name: Name of model to use
            api_key: API key for the provider (empty for keyless providers)
            request_timeout: Per-request timeout in seconds
        """
        self._api_key = api_key
        self._model_name = model_name
        self._request_timeout = request_timeout

        self._total_calls = 0
        self._failed_calls = 0

    # =========================================================================
    # STAGE 3: PUBLIC API
    # =========================================================================

    async def generate(self, prompt: str) -> str:
        """
        Generate text from prompt.

        Algorithm:
            1. Call the provider API once
            2. Track metrics
            3. Wrap unexpected errors in LLMError

        Raises:
            LLMError: If the call fails (or one of its subclasses)
        """
        try:
            result = await self._call_api(prompt)
        except LLMError as e:
            self._failed_calls += 1
            logger.warning(f"LLM call failed | Provider: {self.provider_name} | {e}")
            raise
        except Exception as e:
            self._failed_calls += 1
            logger.error(f"Unexpected error in LLM call | Provider: {self.provider_name} | {e}")
            raise LLMError(str(e), provider=self.provider_name, original_error=e) from e

        self._total_calls += 1
        logger.debug(
            f"LLM call succeeded | Provider: {self.provider_name} | "
            f"Model: {self.model_name} | Chars: {len(result)}"
        )
        return result

    # =========================================================================
    # STAGE 4: ABSTRACT METHODS
    # =========================================================================

    @abstractmethod
    async def _call_api(self, prompt: str) -> str:
        """
        Send one request and return its text.

        Raises:
            LLMError: Typed provider failure (untyped ones are wrapped by generate)
        """
        ...

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Registry id, e.g. "ollama"."""
        ...

    # =========================================================================
    # STAGE 5: SHARED HELPERS AND COUNTERS
    # =========================================================================

    def _translate_error(self, error: Exception, filter_markers: Iterable[str] = ()) -> LLMError:
        """
        Map an SDK exception without a typed equivalent onto the LLMError family.

        SDKs report quota and moderation failures in different exception
        classes across versions, so the message text is matched.
        """
        message = str(error).lower()

        if any(marker in message for marker in RATE_LIMIT_MARKERS):
            return LLMRateLimitError(provider=self.provider_name, original_error=error)

        if any(marker in message for marker in filter_markers):
            return LLMContentFilteredError(provider=self.provider_name, reason=str(error))

        return LLMError(
            f"{self.provider_name} API error: {error}", provider=self.provider_name, original_error=error
        )

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def total_calls(self) -> int:
        """Calls that returned text."""
        return self._total_calls

    @property
    def failed_calls(self) -> int:
        return self._failed_calls

    @property
    def success_rate(self) -> float:
        """Share of calls that returned text, in percent (100 before any call)."""
        total = self._total_calls + self._failed_calls
        if total == 0:
            return 100.0
        return (self._total_calls / total) * 100
