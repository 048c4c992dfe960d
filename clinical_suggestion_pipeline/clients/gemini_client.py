"""
Gemini Client - google-generativeai Async Generation

Wraps `GenerativeModel.generate_content_async`. Prompt-level blocks and
empty candidates are reported as domain errors instead of surfacing the
SDK's `response.text` ValueError.
"""

from typing import Any

from loguru import logger

from clinical_suggestion_pipeline.clients.llm_client import BaseLLMClient
from clinical_suggestion_pipeline.core.exceptions import LLMContentFilteredError, LLMError


# Clinical vocabulary (symptoms, drugs, injuries) trips the default filters
SAFETY_SETTINGS = [
    {"category": category, "threshold": "BLOCK_NONE"}
    for category in (
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    )
]

SAFETY_FILTER_MARKERS = ("blocked", "safety")


def _candidate_text(response: Any) -> str:
    """Concatenated text parts of the first candidate ("" when there are none)."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return ""

    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    return "".join(part.text for part in parts if getattr(part, "text", ""))


class GeminiClient(BaseLLMClient):
    """
    Gemini client with relaxed safety settings.

    Example:
        >>> client = GeminiClient(api_key="...", model_name="gemini-1.5-flash")
        >>> text = await client.generate(prompt)
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-1.5-flash",
        request_timeout: float = 60.0,
    ):
        """
        Args:
            api_key: Google AI Studio key
            model_name: Gemini model id
            request_timeout: Per-request timeout in seconds
        """
        super().__init__(model_name=model_name, api_key=api_key, request_timeout=request_timeout)

        try:
            import google.generativeai as genai
        except ImportError as e:
            raise LLMError(
                "The google-generativeai package is required for the gemini provider", provider="gemini"
            ) from e

        genai.configure(api_key=api_key)
        self._model = genai.GenerativeModel(model_name=model_name, safety_settings=SAFETY_SETTINGS)

        logger.info(f"GeminiClient ready | Model: {model_name} | Timeout: {request_timeout}s")

    async def _call_api(self, prompt: str) -> str:
        """
        Raises:
            LLMRateLimitError: Quota exhausted
            LLMContentFilteredError: Prompt blocked by safety filters
            LLMError: Any other failure, or no text in the response
        """
        try:
            response = await self._model.generate_content_async(
                prompt,
                request_options={"timeout": self._request_timeout},
            )
        except Exception as e:
            raise self._translate_error(e, SAFETY_FILTER_MARKERS) from e

        feedback = getattr(response, "prompt_feedback", None)
        block_reason = getattr(feedback, "block_reason", None)
        if block_reason:
            raise LLMContentFilteredError(provider="gemini", reason=str(block_reason))

        text = _candidate_text(response)
        if not text:
            raise LLMError("Gemini returned no text", provider="gemini")

        return text

    @property
    def provider_name(self) -> str:
        return "gemini"
