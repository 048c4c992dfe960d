import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from clinical_suggestion_pipeline.clients import MockLLMClient, OllamaClient
from clinical_suggestion_pipeline.clients.gemini_client import GeminiClient
from clinical_suggestion_pipeline.clients.llm_client import BaseLLMClient
from clinical_suggestion_pipeline.clients.mock_client import MAX_MOCK_SUGGESTIONS
from clinical_suggestion_pipeline.clients.openai_client import OpenAIClient
from clinical_suggestion_pipeline.core.exceptions import (
    LLMContentFilteredError,
    LLMError,
    LLMRateLimitError,
)


class _ExplodingClient(BaseLLMClient):
    async def _call_api(self, prompt: str) -> str:
        raise ConnectionError("socket closed")

    @property
    def provider_name(self) -> str:
        return "exploding"


class TestBaseLLMClient:
    """Error wrapping and counters."""

    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped(self):
        client = _ExplodingClient(model_name="x")

        with pytest.raises(LLMError) as exc_info:
            await client.generate("p")

        assert isinstance(exc_info.value.original_error, ConnectionError)
        assert exc_info.value.provider == "exploding"
        assert client.failed_calls == 1
        assert client.success_rate == 0.0

    def test_translate_error_by_message(self):
        client = _ExplodingClient(model_name="x")

        assert isinstance(client._translate_error(RuntimeError("429 Resource exhausted")), LLMRateLimitError)
        assert isinstance(
            client._translate_error(RuntimeError("Prompt blocked: SAFETY"), ("blocked",)),
            LLMContentFilteredError,
        )

        plain = client._translate_error(RuntimeError("bad gateway"))
        assert type(plain) is LLMError
        assert "exploding API error" in str(plain)


class TestMockLLMClient:
    """Keyword-driven canned output."""

    @pytest.mark.asyncio
    async def test_pain_keywords_first(self):
        client = MockLLMClient()

        lines = (await client.generate("Paciente con DOLOR lumbar")).splitlines()
        first = json.loads(lines[0])

        assert first["type"] == "recommendation"
        assert "EVA" in first["content"]
        assert json.loads(lines[1])["type"] == "warning"

    @pytest.mark.asyncio
    async def test_accent_insensitive_and_capped(self):
        client = MockLLMClient()

        raw = await client.generate("Hipertensión, diabetes y fiebre")

        assert len(raw.splitlines()) == MAX_MOCK_SUGGESTIONS
        assert "presión arterial" in raw

    @pytest.mark.asyncio
    async def test_defaults_without_keywords(self):
        raw = await MockLLMClient().generate("Control rutinario")

        assert [json.loads(line)["type"] for line in raw.splitlines()] == ["recommendation", "info", "warning"]
        assert MockLLMClient().provider_name == "mock"


class TestOllamaClient:
    """REST calls through an httpx mock transport."""

    @staticmethod
    def _client(handler):
        return OllamaClient(
            base_url="http://ollama.test/",
            model_name="llama3",
            transport=httpx.MockTransport(handler),
        )

    @pytest.mark.asyncio
    async def test_posts_non_streaming_request(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"response": "[TIPO: info] ok", "done": True})

        text = await self._client(handler).generate("hola")

        assert text == "[TIPO: info] ok"
        assert seen["url"] == "http://ollama.test/api/generate"
        assert seen["body"] == {"model": "llama3", "prompt": "hola", "stream": False}

    @pytest.mark.asyncio
    async def test_rate_limit(self):
        client = self._client(lambda request: httpx.Response(429, json={"error": "busy"}))

        with pytest.raises(LLMRateLimitError):
            await client.generate("hola")

    @pytest.mark.asyncio
    async def test_server_error(self):
        client = self._client(lambda request: httpx.Response(500, text="oops"))

        with pytest.raises(LLMError, match="HTTP 500"):
            await client.generate("hola")

    @pytest.mark.asyncio
    async def test_empty_response(self):
        client = self._client(lambda request: httpx.Response(200, json={"response": ""}))

        with pytest.raises(LLMError):
            await client.generate("hola")

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(LLMError):
            await self._client(handler).generate("hola")


def _chat_completion(content, finish_reason="stop"):
    return SimpleNamespace(
        choices=[SimpleNamespace(finish_reason=finish_reason, message=SimpleNamespace(content=content))]
    )


class TestOpenAIClient:
    """Chat completion calls against a faked AsyncOpenAI."""

    @staticmethod
    def _client(**create_kwargs):
        client = OpenAIClient(api_key="sk-test", model_name="gpt-4", temperature=0.1, max_tokens=256)
        client._client = MagicMock()
        client._client.chat.completions.create = AsyncMock(**create_kwargs)
        return client

    @pytest.mark.asyncio
    async def test_returns_first_choice(self):
        client = self._client(return_value=_chat_completion("[TIPO: info] ok"))

        text = await client.generate("hola")

        assert text == "[TIPO: info] ok"
        client._client.chat.completions.create.assert_awaited_once_with(
            model="gpt-4",
            messages=[{"role": "user", "content": "hola"}],
            temperature=0.1,
            max_tokens=256,
        )
        assert client.total_calls == 1

    @pytest.mark.asyncio
    async def test_rate_limit(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        error = openai.RateLimitError("slow down", response=httpx.Response(429, request=request), body=None)
        client = self._client(side_effect=error)

        with pytest.raises(LLMRateLimitError) as exc_info:
            await client.generate("hola")

        assert exc_info.value.original_error is error
        assert client.failed_calls == 1

    @pytest.mark.asyncio
    async def test_content_filter_finish_reason(self):
        client = self._client(return_value=_chat_completion(None, finish_reason="content_filter"))

        with pytest.raises(LLMContentFilteredError):
            await client.generate("hola")

    @pytest.mark.asyncio
    async def test_policy_rejection_message(self):
        error = openai.OpenAIError("Rejected by our content management policy")
        client = self._client(side_effect=error)

        with pytest.raises(LLMContentFilteredError):
            await client.generate("hola")

    @pytest.mark.asyncio
    async def test_other_sdk_error(self):
        client = self._client(side_effect=openai.OpenAIError("bad gateway"))

        with pytest.raises(LLMError, match="openai API error") as exc_info:
            await client.generate("hola")

        assert type(exc_info.value) is LLMError

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [SimpleNamespace(choices=[]), _chat_completion("")],
        ids=["no-choices", "empty-content"],
    )
    async def test_empty_completion(self, response):
        client = self._client(return_value=response)

        with pytest.raises(LLMError) as exc_info:
            await client.generate("hola")

        assert type(exc_info.value) is LLMError
        assert client.provider_name == "openai"


def _gemini_response(*texts, block_reason=None):
    parts = [SimpleNamespace(text=text) for text in texts]
    candidates = [SimpleNamespace(content=SimpleNamespace(parts=parts))] if texts else []
    return SimpleNamespace(prompt_feedback=SimpleNamespace(block_reason=block_reason), candidates=candidates)


class TestGeminiClient:
    """generate_content_async against a faked GenerativeModel."""

    @staticmethod
    def _client(**generate_kwargs):
        client = GeminiClient(api_key="test-key", model_name="gemini-1.5-flash", request_timeout=12.0)
        client._model = MagicMock()
        client._model.generate_content_async = AsyncMock(**generate_kwargs)
        return client

    @pytest.mark.asyncio
    async def test_joins_candidate_parts(self):
        client = self._client(return_value=_gemini_response("[TIPO: warning] ", "Riesgo de sangrado"))

        text = await client.generate("hola")

        assert text == "[TIPO: warning] Riesgo de sangrado"
        client._model.generate_content_async.assert_awaited_once_with(
            "hola", request_options={"timeout": 12.0}
        )

    @pytest.mark.asyncio
    async def test_blocked_prompt(self):
        client = self._client(return_value=_gemini_response(block_reason="SAFETY"))

        with pytest.raises(LLMContentFilteredError) as exc_info:
            await client.generate("hola")

        assert exc_info.value.reason == "SAFETY"

    @pytest.mark.asyncio
    async def test_safety_error_message(self):
        client = self._client(side_effect=RuntimeError("Response was blocked due to SAFETY"))

        with pytest.raises(LLMContentFilteredError):
            await client.generate("hola")

    @pytest.mark.asyncio
    async def test_quota_error_message(self):
        client = self._client(side_effect=RuntimeError("429 Quota exceeded for this project"))

        with pytest.raises(LLMRateLimitError):
            await client.generate("hola")

    @pytest.mark.asyncio
    async def test_no_text(self):
        client = self._client(return_value=_gemini_response())

        with pytest.raises(LLMError, match="no text") as exc_info:
            await client.generate("hola")

        assert type(exc_info.value) is LLMError
        assert client.provider_name == "gemini"
