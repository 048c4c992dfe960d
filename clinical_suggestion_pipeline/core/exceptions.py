"""
Domain Exceptions for the Clinical Suggestion Pipeline

Every error the pipeline raises on purpose derives from
SuggestionPipelineError and carries a `context` dict (visit, provider,
setting) that is appended to its message.

Exception Hierarchy:
    SuggestionPipelineError (base)
    ├── ConfigurationError        → Invalid configuration
    ├── GenerationError           → Suggestion generation failures
    │   └── LLMError              → Provider call failed
    │       ├── LLMRateLimitError
    │       ├── LLMContentFilteredError
    │       └── UnknownProviderError
    ├── IntegrationError          → Clinical record integration failures
    │   ├── VisitNotFoundError
    │   └── RecordFormatError
    └── MetricValidationError     → Incomplete usage metric

Note:
    Persistence errors raised by injected stores are NOT wrapped. They reach
    the caller unmodified so that no audit/metric event follows a failed write.

Usage:
    from clinical_suggestion_pipeline.core.exceptions import VisitNotFoundError

    try:
        await engine.integrate(suggestion, visit_id, user_id)
    except VisitNotFoundError as e:
        logger.error(f"Visit not found: {e.visit_id}")
"""

from typing import Optional


# =============================================================================
# STAGE 1: BASE EXCEPTION
# =============================================================================


class SuggestionPipelineError(Exception):
    """
    Root of the pipeline error tree.

    Attributes:
        message: Text without the context suffix
        context: Key/value details rendered as " [k=v, ...]"
    """

    def __init__(self, message: str, context: Optional[dict] = None):
        """
        Args:
            message: What went wrong
            context: Additional debugging context (visit, provider, stage)
        """
        self.message = message
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """message, plus " [k=v, ...]" when context is non-empty."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{context_str}]"
        return self.message


# =============================================================================
# STAGE 2: CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(SuggestionPipelineError):
    """
    Settings the pipeline cannot start with.

    When raised:
        - Missing API key for the selected provider
        - Unknown default provider
        - Numeric settings out of range
        - Durable audit requested without an audit store

    Example:
        >>> str(ConfigurationError("Unknown log level: LOUD", context={"setting": "LOG_LEVEL"}))
        'Unknown log level: LOUD [setting=LOG_LEVEL]'
    """

    pass


# =============================================================================
# STAGE 3: GENERATION ERRORS
# =============================================================================


class GenerationError(SuggestionPipelineError):
    """Base exception for failures while generating suggestions."""

    pass


class LLMError(GenerationError):
    """
    Error communicating with an LLM provider.

    What it does:
        Wraps provider SDK/transport errors in a single domain type so the
        orchestrator can contain them without knowing the vendor.

    Attributes:
        provider: LLM provider name (openai, gemini, ollama, mock)
        original_error: The underlying exception, if any
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.provider = provider
        self.original_error = original_error
        context = {}
        if provider:
            context["provider"] = provider
        if original_error:
            context["original_error"] = str(original_error)
        super().__init__(message, context=context)


class LLMRateLimitError(LLMError):
    """
    The provider rejected the call because of rate limiting or quota.

    Attributes:
        retry_after: Seconds suggested by the provider before retrying
    """

    def __init__(
        self,
        provider: str,
        retry_after: Optional[float] = None,
        original_error: Optional[Exception] = None,
    ):
        self.retry_after = retry_after
        message = f"Rate limited by {provider}"
        if retry_after:
            message += f" (retry after {retry_after}s)"
        super().__init__(message, provider=provider, original_error=original_error)


class LLMContentFilteredError(LLMError):
    """
    The provider blocked the prompt or the response.

    Attributes:
        reason: Why content was filtered
    """

    def __init__(self, provider: str, reason: str):
        self.reason = reason
        super().__init__(f"Content filtered by {provider}: {reason}", provider=provider)


class UnknownProviderError(LLMError):
    """No client is registered for the requested provider id."""

    def __init__(self, provider: str, available: Optional[list] = None):
        self.available = available or []
        super().__init__(
            f"Unknown LLM provider: {provider} (available: {', '.join(self.available) or 'none'})",
            provider=provider,
        )


# =============================================================================
# STAGE 4: INTEGRATION ERRORS
# =============================================================================


class IntegrationError(SuggestionPipelineError):
    """Base exception for clinical record integration failures."""

    pass


class VisitNotFoundError(IntegrationError):
    """
    The visit could not be resolved when creating its first record.

    Attributes:
        visit_id: The visit that does not exist
    """

    def __init__(self, visit_id: str):
        self.visit_id = visit_id
        super().__init__("visit does not exist", context={"visit_id": visit_id})


class RecordFormatError(IntegrationError):
    """
    A stored clinical record has content this pipeline cannot read.

    Attributes:
        record_id: Store id of the unreadable record
    """

    def __init__(self, record_id: str, reason: str):
        self.record_id = record_id
        self.reason = reason
        super().__init__(
            f"Unreadable clinical record content: {reason}",
            context={"record_id": record_id},
        )


# =============================================================================
# STAGE 5: METRIC ERRORS
# =============================================================================


class MetricValidationError(SuggestionPipelineError):
    """
    A usage metric is missing required fields.

    Attributes:
        missing_fields: Names of the absent fields
    """

    def __init__(self, missing_fields: list):
        self.missing_fields = missing_fields
        super().__init__(
            "Usage metric is missing required fields",
            context={"missing": ", ".join(missing_fields)},
        )
