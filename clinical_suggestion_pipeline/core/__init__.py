"""
Core Layer - Domain Models, Enums, and Configuration

This layer contains the pure components that form the foundation of the
suggestion pipeline. Apart from configuration loading it has no side effects.

Submodules:
    models.py     → Data structures (AgentContext, AgentSuggestion, ClinicalRecord)
    enums.py      → Enumerations (MemoryTier, SuggestionType, RecordSection)
    constants.py  → Section mapping, marker, reason strings, event names
    config.py     → Configuration dataclass
    exceptions.py → Domain-specific exceptions

Dependency Rule:
    This layer depends on NOTHING else in the package.
    All other layers may depend on this layer.
"""

from clinical_suggestion_pipeline.core.models import (
    MemoryBlock,
    AgentContext,
    ContextOrigin,
    AgentSuggestion,
    SuggestionFeedback,
    ValidationResult,
    ClinicalRecord,
    AuditEvent,
    UsageMetric,
    MetricsSummary,
    LongitudinalMetric,
    AgentRunResult,
)
from clinical_suggestion_pipeline.core.enums import (
    MemoryTier,
    SuggestionType,
    RecordSection,
    FeedbackType,
    MetricType,
    LLMProvider,
    RiskLevel,
    ClinicalEvolution,
)
from clinical_suggestion_pipeline.core.config import PipelineConfiguration
from clinical_suggestion_pipeline.core.exceptions import (
    SuggestionPipelineError,
    ConfigurationError,
    GenerationError,
    LLMError,
    UnknownProviderError,
    IntegrationError,
    VisitNotFoundError,
    RecordFormatError,
    MetricValidationError,
)

__all__ = [
    # Models
    "MemoryBlock",
    "AgentContext",
    "ContextOrigin",
    "AgentSuggestion",
    "SuggestionFeedback",
    "ValidationResult",
    "ClinicalRecord",
    "AuditEvent",
    "UsageMetric",
    "MetricsSummary",
    "LongitudinalMetric",
    "AgentRunResult",
    # Enums
    "MemoryTier",
    "SuggestionType",
    "RecordSection",
    "FeedbackType",
    "MetricType",
    "LLMProvider",
    "RiskLevel",
    "ClinicalEvolution",
    # Configuration
    "PipelineConfiguration",
    # Exceptions
    "SuggestionPipelineError",
    "ConfigurationError",
    "GenerationError",
    "LLMError",
    "UnknownProviderError",
    "IntegrationError",
    "VisitNotFoundError",
    "RecordFormatError",
    "MetricValidationError",
]
