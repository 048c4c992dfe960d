"""
Configuration for the Clinical Suggestion Pipeline

Settings for building the suggestion pipeline. Values come from the
process environment (a .env file is read first when present), are checked
once by `validate()` and are then handed to each component at construction.

Configuration Hierarchy:
    PipelineConfiguration (main config)
    ├── LLM Settings (provider, API keys, model names, timeout)
    ├── Parsing Settings (unknown type policy, excerpt length)
    ├── Validation Settings (validate generated suggestions)
    ├── Metrics Settings (time saved per suggestion)
    └── Logging Settings (log level)

Usage:
    from clinical_suggestion_pipeline.core.config import PipelineConfiguration

    # From env vars and .env
    config = PipelineConfiguration.from_environment()

    # Explicit values, e.g. in tests
    config = PipelineConfiguration(llm_provider="mock")
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from loguru import logger

from clinical_suggestion_pipeline.core.constants import (
    DEFAULT_EXCERPT_LENGTH,
    TIME_SAVED_PER_SUGGESTION_MINUTES,
)
from clinical_suggestion_pipeline.core.enums import LLMProvider
from clinical_suggestion_pipeline.core.exceptions import ConfigurationError


# =============================================================================
# STAGE 1: DEFAULT VALUES
# =============================================================================


class ConfigDefaults:
    """Default configuration values."""

    # -------------------------------------------------------------------------
    # 1.1 LLM Provider Defaults
    # -------------------------------------------------------------------------
    DEFAULT_LLM_PROVIDER = LLMProvider.OPENAI.value
    DEFAULT_OPENAI_MODEL = "gpt-4"
    DEFAULT_GEMINI_MODEL = "gemini-1.5-flash"
    DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"
    DEFAULT_OLLAMA_MODEL = "llama3"
    DEFAULT_REQUEST_TIMEOUT = 60.0  # seconds

    # -------------------------------------------------------------------------
    # 1.2 Parsing & Validation Defaults
    # -------------------------------------------------------------------------
    DEFAULT_COERCE_UNKNOWN_TYPE_TO_INFO = True
    DEFAULT_EXCERPT_LENGTH = DEFAULT_EXCERPT_LENGTH
    DEFAULT_VALIDATE_SUGGESTIONS = False

    # -------------------------------------------------------------------------
    # 1.3 Metrics & Logging Defaults
    # -------------------------------------------------------------------------
    DEFAULT_TIME_SAVED_PER_SUGGESTION = TIME_SAVED_PER_SUGGESTION_MINUTES
    DEFAULT_LOG_LEVEL = "INFO"


_LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# =============================================================================
# STAGE 2: CONFIGURATION DATACLASS
# =============================================================================


@dataclass
class PipelineConfiguration:
    """
    Configuration for the clinical suggestion pipeline.

    Holds what the generation adapter, the response parser and the
    orchestrator read when they are built. A bad provider name or a
    missing key surfaces as ConfigurationError before the first visit.

    Example:
        >>> config = PipelineConfiguration(llm_provider="mock")
        >>> config.validate()
        >>> config.to_dict()["llm_provider"]
        'mock'
    """

    # -------------------------------------------------------------------------
    # 2.1 LLM Provider Configuration
    # -------------------------------------------------------------------------
    llm_provider: str = ConfigDefaults.DEFAULT_LLM_PROVIDER
    """Default provider id: 'openai', 'gemini', 'ollama' or 'mock'."""

    openai_api_key: Optional[str] = None
    """OpenAI API key. Required if using the OpenAI provider."""

    openai_model: str = ConfigDefaults.DEFAULT_OPENAI_MODEL

    gemini_api_key: Optional[str] = None
    """Google Gemini API key. Required if using the Gemini provider."""

    gemini_model: str = ConfigDefaults.DEFAULT_GEMINI_MODEL

    ollama_base_url: str = ConfigDefaults.DEFAULT_OLLAMA_BASE_URL
    """Base URL of the local Ollama server."""

    ollama_model: str = ConfigDefaults.DEFAULT_OLLAMA_MODEL

    request_timeout: float = ConfigDefaults.DEFAULT_REQUEST_TIMEOUT
    """Per-request timeout for provider calls in seconds."""

    # -------------------------------------------------------------------------
    # 2.2 Parsing & Validation Configuration
    # -------------------------------------------------------------------------
    coerce_unknown_type_to_info: bool = ConfigDefaults.DEFAULT_COERCE_UNKNOWN_TYPE_TO_INFO
    """Unknown suggestion types become 'info' when True, are dropped when False."""

    excerpt_length: int = ConfigDefaults.DEFAULT_EXCERPT_LENGTH
    """Characters of content kept in a suggestion's context origin excerpt."""

    validate_suggestions: bool = ConfigDefaults.DEFAULT_VALIDATE_SUGGESTIONS
    """Whether the orchestrator attaches validation verdicts by default."""

    # -------------------------------------------------------------------------
    # 2.3 Metrics & Logging Configuration
    # -------------------------------------------------------------------------
    time_saved_per_suggestion: float = ConfigDefaults.DEFAULT_TIME_SAVED_PER_SUGGESTION
    """Estimated reviewer minutes saved per generated suggestion."""

    log_level: str = ConfigDefaults.DEFAULT_LOG_LEVEL

    # -------------------------------------------------------------------------
    # 2.4 Validation Methods
    # -------------------------------------------------------------------------

    def validate(self) -> None:
        """
        Reject settings the pipeline cannot run with.

        Checks:
            1. The default provider is a built-in provider
            2. The provider's API key is configured (openai/gemini)
            3. Timeout and excerpt length are positive, time saved is not negative
            4. The log level is known to loguru

        Raises:
            ConfigurationError: First failing check, with the setting name in context
        """
        if self.llm_provider not in LLMProvider.all_values():
            raise ConfigurationError(
                f"Unknown LLM provider: {self.llm_provider}",
                context={"setting": "LLM_PROVIDER", "available": ", ".join(LLMProvider.all_values())},
            )

        if self.llm_provider == LLMProvider.OPENAI.value and not self.openai_api_key:
            raise ConfigurationError(
                "OpenAI API key required when using OpenAI provider",
                context={"setting": "OPENAI_API_KEY", "provider": "openai"},
            )

        if self.llm_provider == LLMProvider.GEMINI.value and not self.gemini_api_key:
            raise ConfigurationError(
                "Gemini API key required when using Gemini provider",
                context={"setting": "GEMINI_API_KEY", "provider": "gemini"},
            )

        if self.request_timeout <= 0:
            raise ConfigurationError(
                f"Request timeout must be positive, got {self.request_timeout}",
                context={"setting": "LLM_REQUEST_TIMEOUT"},
            )

        if self.excerpt_length <= 0:
            raise ConfigurationError(
                f"Excerpt length must be positive, got {self.excerpt_length}",
                context={"setting": "EXCERPT_LENGTH"},
            )

        if self.time_saved_per_suggestion < 0:
            raise ConfigurationError(
                f"Time saved per suggestion cannot be negative, got {self.time_saved_per_suggestion}",
                context={"setting": "TIME_SAVED_PER_SUGGESTION"},
            )

        if self.log_level.upper() not in _LOG_LEVELS:
            raise ConfigurationError(
                f"Unknown log level: {self.log_level}",
                context={"setting": "LOG_LEVEL"},
            )

    # -------------------------------------------------------------------------
    # 2.5 Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_environment(
        cls, env_file: Optional[str] = None, validate_on_load: bool = True
    ) -> "PipelineConfiguration":
        """
        Build a configuration from env vars.

        A .env file is loaded first: `env_file` when given, otherwise the
        first of ./.env and the package-parent .env that exists. Variables
        already set in the process win over the file.

        Args:
            env_file: Explicit .env path
            validate_on_load: Run validate() before returning

        Raises:
            ConfigurationError: Unparseable number or failed validation
        """
        # .env first
        if env_file:
            load_dotenv(env_file)
        else:
            candidates = [
                Path.cwd() / ".env",
                Path(__file__).parent.parent / ".env",
            ]
            for candidate in candidates:
                if candidate.exists():
                    load_dotenv(candidate)
                    break

        openai_key = os.getenv("OPENAI_API_KEY")
        gemini_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")

        try:
            config = cls(
                llm_provider=os.getenv("LLM_PROVIDER", ConfigDefaults.DEFAULT_LLM_PROVIDER).lower(),
                openai_api_key=openai_key,
                openai_model=os.getenv("OPENAI_MODEL", ConfigDefaults.DEFAULT_OPENAI_MODEL),
                gemini_api_key=gemini_key,
                gemini_model=os.getenv("GEMINI_MODEL", ConfigDefaults.DEFAULT_GEMINI_MODEL),
                ollama_base_url=os.getenv("OLLAMA_BASE_URL", ConfigDefaults.DEFAULT_OLLAMA_BASE_URL),
                ollama_model=os.getenv("OLLAMA_MODEL", ConfigDefaults.DEFAULT_OLLAMA_MODEL),
                request_timeout=float(
                    os.getenv("LLM_REQUEST_TIMEOUT", ConfigDefaults.DEFAULT_REQUEST_TIMEOUT)
                ),
                coerce_unknown_type_to_info=_env_flag(
                    "COERCE_UNKNOWN_TYPE_TO_INFO", ConfigDefaults.DEFAULT_COERCE_UNKNOWN_TYPE_TO_INFO
                ),
                excerpt_length=int(os.getenv("EXCERPT_LENGTH", ConfigDefaults.DEFAULT_EXCERPT_LENGTH)),
                validate_suggestions=_env_flag(
                    "VALIDATE_SUGGESTIONS", ConfigDefaults.DEFAULT_VALIDATE_SUGGESTIONS
                ),
                time_saved_per_suggestion=float(
                    os.getenv(
                        "TIME_SAVED_PER_SUGGESTION", ConfigDefaults.DEFAULT_TIME_SAVED_PER_SUGGESTION
                    )
                ),
                log_level=os.getenv("LOG_LEVEL", ConfigDefaults.DEFAULT_LOG_LEVEL).upper(),
            )
        except ValueError as e:
            raise ConfigurationError(
                "Numeric setting could not be parsed", context={"error": str(e)}
            ) from e

        if validate_on_load:
            config.validate()

        return config

    def configure_logging(self) -> None:
        """Reset loguru sinks to a single stderr sink at `log_level`."""
        logger.remove()
        logger.add(sys.stderr, level=self.log_level.upper())

    def to_dict(self) -> dict:
        """Convert configuration to dictionary (for logging/debugging)."""
        return {
            "llm_provider": self.llm_provider,
            "openai_model": self.openai_model,
            "gemini_model": self.gemini_model,
            "ollama_base_url": self.ollama_base_url,
            "ollama_model": self.ollama_model,
            "openai_api_key": "***" if self.openai_api_key else None,
            "gemini_api_key": "***" if self.gemini_api_key else None,
            "request_timeout": self.request_timeout,
            "coerce_unknown_type_to_info": self.coerce_unknown_type_to_info,
            "excerpt_length": self.excerpt_length,
            "validate_suggestions": self.validate_suggestions,
            "time_saved_per_suggestion": self.time_saved_per_suggestion,
            "log_level": self.log_level,
        }
