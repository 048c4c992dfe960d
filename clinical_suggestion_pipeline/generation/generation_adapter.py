"""
Generation Adapter - Provider-Agnostic Text Generation

This module hides provider-specific clients behind a single call:
prompt + provider id → raw text. It does not retry, cache responses or
interpret what the model returns.

Provider Registry:
    openai  → OpenAIClient   (AsyncOpenAI)
    gemini  → GeminiClient   (google-generativeai)
    ollama  → OllamaClient   (httpx → local Ollama server)
    mock    → MockLLMClient  (deterministic, offline)
    <any>   → registered with `register(provider_id, client)`

Clients built from configuration are created on first use and then reused.

Pipeline Position:
    PromptBuilder → [GenerationAdapter] → ResponseParser
                     ^^^^^^^^^^^^^^^^^
                     You are here
"""

from typing import Callable, Dict, List, Optional

from loguru import logger

from clinical_suggestion_pipeline.clients.gemini_client import GeminiClient
from clinical_suggestion_pipeline.clients.llm_client import LLMClientProtocol
from clinical_suggestion_pipeline.clients.mock_client import MockLLMClient
from clinical_suggestion_pipeline.clients.ollama_client import OllamaClient
from clinical_suggestion_pipeline.clients.openai_client import OpenAIClient
from clinical_suggestion_pipeline.core.config import PipelineConfiguration
from clinical_suggestion_pipeline.core.enums import LLMProvider
from clinical_suggestion_pipeline.core.exceptions import UnknownProviderError


ClientFactory = Callable[[], LLMClientProtocol]


class GenerationAdapter:
    """
    Routes a prompt to the client registered for a provider id.

    What it does:
        Keeps a registry of ready clients and of factories for clients that
        have not been built yet. `generate` resolves the provider, builds
        its client if needed and forwards the prompt.

    Errors:
        UnknownProviderError for an unregistered provider. Anything the
        client raises (LLMError and subclasses, or a factory's error)
        propagates unchanged.

    Example:
        >>> adapter = GenerationAdapter(default_provider="mock")
        >>> adapter.register("mock", MockLLMClient())
        >>> raw = await adapter.generate(prompt)
    """

    def __init__(
        self,
        clients: Optional[Dict[str, LLMClientProtocol]] = None,
        default_provider: str = LLMProvider.MOCK.value,
        client_factories: Optional[Dict[str, ClientFactory]] = None,
    ):
        """
        Args:
            clients: Ready-made clients keyed by provider id
            default_provider: Provider used when `generate` gets none
            client_factories: Lazy constructors keyed by provider id
        """
        self._clients: Dict[str, LLMClientProtocol] = dict(clients or {})
        self._factories: Dict[str, ClientFactory] = dict(client_factories or {})
        self._default_provider = default_provider

    # =========================================================================
    # STAGE 1: REGISTRY
    # =========================================================================

    def register(self, provider_id: str, client: LLMClientProtocol) -> None:
        """Register (or replace) the client for a provider id."""
        self._clients[provider_id] = client
        logger.debug(f"Registered LLM client | Provider: {provider_id}")

    def register_factory(self, provider_id: str, factory: ClientFactory) -> None:
        """Register a constructor called the first time `provider_id` is used."""
        self._factories[provider_id] = factory

    @property
    def default_provider(self) -> str:
        return self._default_provider

    @property
    def available_providers(self) -> List[str]:
        return sorted(set(self._clients) | set(self._factories))

    def get_client(self, provider: Optional[str] = None) -> LLMClientProtocol:
        """
        Resolve (and lazily build) the client for a provider.

        Raises:
            UnknownProviderError: If nothing is registered for the provider
        """
        provider_id = provider or self._default_provider

        client = self._clients.get(provider_id)
        if client is not None:
            return client

        factory = self._factories.get(provider_id)
        if factory is None:
            raise UnknownProviderError(provider_id, available=self.available_providers)

        client = factory()
        self._clients[provider_id] = client
        logger.info(f"Created LLM client | Provider: {provider_id} | Model: {client.model_name}")
        return client

    # =========================================================================
    # STAGE 2: GENERATION
    # =========================================================================

    async def generate(self, prompt: str, provider: Optional[str] = None) -> str:
        """
        Generate raw text for a prompt.

        Args:
            prompt: Compiled prompt
            provider: Provider id (defaults to the adapter's default)

        Returns:
            Raw text exactly as the client returned it
        """
        client = self.get_client(provider)

        logger.info(
            f"Generating suggestions | Provider: {client.provider_name} | "
            f"Model: {client.model_name} | Prompt chars: {len(prompt)}"
        )
        return await client.generate(prompt)

    # =========================================================================
    # STAGE 3: FACTORY METHODS
    # =========================================================================

    @classmethod
    def from_config(cls, config: PipelineConfiguration) -> "GenerationAdapter":
        """
        Build an adapter with lazy factories for every built-in provider.

        Clients are not constructed here, so a missing key for a provider
        that is never used does not fail startup.
        """
        factories: Dict[str, ClientFactory] = {
            LLMProvider.OPENAI.value: lambda: OpenAIClient(
                api_key=config.openai_api_key,
                model_name=config.openai_model,
                request_timeout=config.request_timeout,
            ),
            LLMProvider.GEMINI.value: lambda: GeminiClient(
                api_key=config.gemini_api_key,
                model_name=config.gemini_model,
                request_timeout=config.request_timeout,
            ),
            LLMProvider.OLLAMA.value: lambda: OllamaClient(
                base_url=config.ollama_base_url,
                model_name=config.ollama_model,
                request_timeout=config.request_timeout,
            ),
            LLMProvider.MOCK.value: MockLLMClient,
        }

        return cls(default_provider=config.llm_provider, client_factories=factories)
