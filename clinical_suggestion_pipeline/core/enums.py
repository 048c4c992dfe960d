"""
Enumerations for the Clinical Suggestion Pipeline

This module defines the enumeration types used throughout the pipeline.
Enums provide:
    1. Type safety for categorical values
    2. IDE autocomplete support
    3. Clear domain semantics

Enumeration Categories:
    MemoryTier       → The three memory tiers that feed generation
    SuggestionType   → recommendation / warning / info
    RecordSection    → Sections of the structured clinical record
    FeedbackType     → Reviewer feedback categories
    MetricType       → Usage metric types
    LLMProvider      → Built-in generation providers
    RiskLevel        → Longitudinal risk summary
    ClinicalEvolution → Longitudinal clinical trend
"""

import unicodedata
from enum import Enum
from typing import Optional


# =============================================================================
# STAGE 1: MEMORY TIERS
# =============================================================================


class MemoryTier(str, Enum):
    """
    Memory tiers consumed by the Context Assembler.

    Tier Semantics:
        CONTEXTUAL: Notes captured during this visit
        PERSISTENT: Patient history carried across visits
        SEMANTIC:   General clinical knowledge
    """

    CONTEXTUAL = "contextual"
    PERSISTENT = "persistent"
    SEMANTIC = "semantic"

    @classmethod
    def all_values(cls) -> list:
        """Return all tier names as a list."""
        return [tier.value for tier in cls]


# =============================================================================
# STAGE 2: SUGGESTION TYPES
# =============================================================================


class SuggestionType(str, Enum):
    """
    Types of suggestion the agent can produce.

    Each type maps to one clinical record section on integration:
        RECOMMENDATION → plan
        WARNING        → assessment
        INFO           → notes
    """

    RECOMMENDATION = "recommendation"
    WARNING = "warning"
    INFO = "info"

    @classmethod
    def all_values(cls) -> list:
        """Return all type values as a list."""
        return [suggestion_type.value for suggestion_type in cls]

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional["SuggestionType"]:
        """
        Resolve a raw type label, tolerating case, accents and Spanish aliases.

        Args:
            value: Raw label as written by the LLM (e.g. "Advertencia")

        Returns:
            Matching SuggestionType, or None if the label is unknown
        """
        if not value or not isinstance(value, str):
            return None

        normalized = unicodedata.normalize("NFKD", value.strip().lower())
        normalized = "".join(ch for ch in normalized if not unicodedata.combining(ch))

        for suggestion_type in cls:
            if suggestion_type.value == normalized:
                return suggestion_type

        return _SUGGESTION_TYPE_ALIASES.get(normalized)


_SUGGESTION_TYPE_ALIASES = {
    "recomendacion": SuggestionType.RECOMMENDATION,
    "recommendations": SuggestionType.RECOMMENDATION,
    "advertencia": SuggestionType.WARNING,
    "alerta": SuggestionType.WARNING,
    "warnings": SuggestionType.WARNING,
    "informacion": SuggestionType.INFO,
    "information": SuggestionType.INFO,
}


# =============================================================================
# STAGE 3: CLINICAL RECORD SECTIONS
# =============================================================================


class RecordSection(str, Enum):
    """The five free-text sections of a SOAP-style clinical record."""

    SUBJECTIVE = "subjective"
    OBJECTIVE = "objective"
    ASSESSMENT = "assessment"
    PLAN = "plan"
    NOTES = "notes"

    @classmethod
    def all_values(cls) -> list:
        """Return all section names as a list."""
        return [section.value for section in cls]


# =============================================================================
# STAGE 4: REVIEWER FEEDBACK
# =============================================================================


class FeedbackType(str, Enum):
    """Feedback a reviewer can attach to a suggestion."""

    USEFUL = "useful"
    IRRELEVANT = "irrelevant"
    INCORRECT = "incorrect"
    DANGEROUS = "dangerous"


# =============================================================================
# STAGE 5: USAGE METRICS
# =============================================================================


class MetricType(str, Enum):
    """
    Usage metric types recorded by the analytics service.

    Summary Mapping:
        SUGGESTIONS_GENERATED    → generated
        SUGGESTIONS_ACCEPTED     → accepted
        SUGGESTIONS_INTEGRATED   → integrated
        SUGGESTION_FIELD_MATCHED → field_matched
        WARNINGS_GENERATED       → warnings
    """

    SUGGESTIONS_GENERATED = "suggestions_generated"
    SUGGESTIONS_ACCEPTED = "suggestions_accepted"
    SUGGESTIONS_INTEGRATED = "suggestions_integrated"
    SUGGESTIONS_REJECTED = "suggestions_rejected"
    SUGGESTION_FIELD_MATCHED = "suggestion_field_matched"
    WARNINGS_GENERATED = "warnings_generated"
    AGENT_EXECUTION_FAILED = "agent_execution_failed"


# =============================================================================
# STAGE 6: LLM PROVIDERS
# =============================================================================


class LLMProvider(str, Enum):
    """
    Built-in generation providers.

    The adapter accepts any registered string id; these are the ones that
    can be built from configuration alone.
    """

    OPENAI = "openai"
    GEMINI = "gemini"
    OLLAMA = "ollama"
    MOCK = "mock"

    @classmethod
    def all_values(cls) -> list:
        """Return all provider ids as a list."""
        return [provider.value for provider in cls]


# =============================================================================
# STAGE 7: LONGITUDINAL INDICATORS
# =============================================================================


class RiskLevel(str, Enum):
    """Risk summary derived from two visits' metric summaries."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ClinicalEvolution(str, Enum):
    """Clinical trend between two visits."""

    IMPROVED = "improved"
    STABLE = "stable"
    WORSENED = "worsened"
