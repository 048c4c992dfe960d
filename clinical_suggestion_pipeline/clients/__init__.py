"""
Clients Layer - LLM API Client Abstractions

This layer provides clean abstractions over LLM providers (OpenAI, Gemini,
Ollama, and an offline mock), enabling the rest of the system to work with
any provider interchangeably.

Submodules:
    llm_client.py    → Protocol and base implementation
    openai_client.py → OpenAI implementation (AsyncOpenAI)
    gemini_client.py → Google Gemini implementation
    ollama_client.py → Local Ollama server over httpx
    mock_client.py   → Deterministic keyword-driven responses

Why Abstraction Layer:
    1. Swappable providers without changing business logic
    2. Centralized error translation
    3. Testability via stub implementations
"""

from clinical_suggestion_pipeline.clients.llm_client import (
    LLMClientProtocol,
    BaseLLMClient,
)
from clinical_suggestion_pipeline.clients.openai_client import OpenAIClient
from clinical_suggestion_pipeline.clients.gemini_client import GeminiClient
from clinical_suggestion_pipeline.clients.ollama_client import OllamaClient
from clinical_suggestion_pipeline.clients.mock_client import MockLLMClient

__all__ = [
    "LLMClientProtocol",
    "BaseLLMClient",
    "OpenAIClient",
    "GeminiClient",
    "OllamaClient",
    "MockLLMClient",
]
