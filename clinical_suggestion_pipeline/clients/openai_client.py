"""
OpenAI Client - Chat Completions over AsyncOpenAI

Sends the compiled prompt as one user message and returns the first
choice's text. The SDK is imported when the client is built, so the
package imports without `openai` installed.
"""

from loguru import logger

from clinical_suggestion_pipeline.clients.llm_client import BaseLLMClient
from clinical_suggestion_pipeline.core.exceptions import (
    LLMContentFilteredError,
    LLMError,
    LLMRateLimitError,
)


CONTENT_FILTER_MARKERS = ("content_filter", "content management policy")


class OpenAIClient(BaseLLMClient):
    """
    OpenAI chat completions client.

    Error Mapping:
        openai.RateLimitError          → LLMRateLimitError
        finish_reason "content_filter" → LLMContentFilteredError
        anything else                  → LLMError (via message markers)

    Example:
        >>> client = OpenAIClient(api_key="sk-...", model_name="gpt-4")
        >>> text = await client.generate(prompt)
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "gpt-4",
        request_timeout: float = 60.0,
        temperature: float = 0.3,
        max_tokens: int = 1024,
    ):
        """
        Args:
            api_key: OpenAI API key
            model_name: Chat model id
            request_timeout: Per-request timeout in seconds
            temperature: Sampling temperature
            max_tokens: Upper bound on completion length
        """
        super().__init__(model_name=model_name, api_key=api_key, request_timeout=request_timeout)

        self._temperature = temperature
        self._max_tokens = max_tokens

        try:
            import openai
        except ImportError as e:
            raise LLMError("The openai package is required for the openai provider", provider="openai") from e

        self._sdk = openai
        self._client = openai.AsyncOpenAI(api_key=api_key, timeout=request_timeout)

        logger.info(f"OpenAIClient ready | Model: {model_name} | Timeout: {request_timeout}s")

    async def _call_api(self, prompt: str) -> str:
        """
        Raises:
            LLMRateLimitError: Quota or rate limit reached
            LLMContentFilteredError: Completion stopped by moderation
            LLMError: Any other failure, or an empty completion
        """
        try:
            response = await self._client.chat.completions.create(
                model=self._model_name,
                messages=[{"role": "user", "content": prompt}],
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except self._sdk.RateLimitError as e:
            raise LLMRateLimitError(provider="openai", original_error=e) from e
        except self._sdk.OpenAIError as e:
            raise self._translate_error(e, CONTENT_FILTER_MARKERS) from e

        choice = response.choices[0] if response.choices else None
        if choice is None:
            raise LLMError("OpenAI returned no choices", provider="openai")

        if choice.finish_reason == "content_filter":
            raise LLMContentFilteredError(provider="openai", reason="content_filter")

        if not choice.message.content:
            raise LLMError("OpenAI returned an empty completion", provider="openai")

        return choice.message.content

    @property
    def provider_name(self) -> str:
        return "openai"
