"""
Ollama Client - Local Model Server Implementation

This module provides the concrete implementation of LLMClient for a local
Ollama server, calling its REST API directly with httpx.

Endpoint:
    POST {base_url}/api/generate
    {"model": "...", "prompt": "...", "stream": false}
    → {"response": "...", ...}
"""

from typing import Optional

import httpx
from loguru import logger

from clinical_suggestion_pipeline.clients.llm_client import BaseLLMClient
from clinical_suggestion_pipeline.core.exceptions import LLMError, LLMRateLimitError


GENERATE_PATH = "/api/generate"


class OllamaClient(BaseLLMClient):
    """
    Ollama REST API client for suggestion generation.

    What it does:
        Posts a non-streaming generate request and returns the `response`
        field of the JSON body.

    Why it exists:
        1. Runs suggestion generation fully offline on local models
        2. Needs no SDK, only an HTTP client

    Example:
        >>> client = OllamaClient(base_url="http://localhost:11434", model_name="llama3")
        >>> text = await client.generate(prompt)
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model_name: str = "llama3",
        request_timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Root URL of the Ollama server
            model_name: Ollama model tag
            request_timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        super().__init__(model_name=model_name, request_timeout=request_timeout)

        self._base_url = base_url.rstrip("/")
        self._transport = transport

        logger.info(f"OllamaClient initialized | Model: {model_name} | URL: {self._base_url}")

    async def _call_api(self, prompt: str) -> str:
        """
        Make the actual Ollama API call.

        Raises:
            LLMError: If the server is unreachable or answers badly
            LLMRateLimitError: If the server answers 429
        """
        payload = {"model": self._model_name, "prompt": prompt, "stream": False}

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._request_timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(GENERATE_PATH, json=payload)
                response.raise_for_status()
                body = response.json()

        except httpx.HTTPStatusError as e:
            if e.response.status_code == 429:
                raise LLMRateLimitError(provider="ollama", original_error=e)
            raise LLMError(
                f"Ollama API error: HTTP {e.response.status_code}", provider="ollama", original_error=e
            )
        except httpx.HTTPError as e:
            raise LLMError(f"Ollama request failed: {e}", provider="ollama", original_error=e)
        except ValueError as e:
            raise LLMError("Ollama returned invalid JSON", provider="ollama", original_error=e)

        text = body.get("response") if isinstance(body, dict) else None
        if not text:
            raise LLMError("Ollama returned empty response", provider="ollama")

        return text

    @property
    def provider_name(self) -> str:
        return "ollama"
