"""
Constants for the Clinical Suggestion Pipeline

This module defines constant values used throughout the pipeline.
Constants are:
    1. Centralized for easy modification
    2. Type-hinted for IDE support
    3. Documented with usage context

Constant Categories:
    INTEGRATION      → Record section mapping and idempotence marker
    PARSING          → Sentinel ids, excerpt length, tag patterns
    VALIDATION       → Stable reason strings
    AUDIT            → Event type names
    METRICS          → Time-saved estimate, adherence threshold
"""

from typing import Dict

from clinical_suggestion_pipeline.core.enums import (
    MemoryTier,
    RecordSection,
    SuggestionType,
)


# =============================================================================
# STAGE 1: INTEGRATION
# =============================================================================

SUGGESTION_MARKER: str = "🔎 "
"""Visible prefix for integrated content. Its presence makes integration idempotent."""

SECTION_BY_SUGGESTION_TYPE: Dict[str, RecordSection] = {
    SuggestionType.RECOMMENDATION.value: RecordSection.PLAN,
    SuggestionType.WARNING.value: RecordSection.ASSESSMENT,
    SuggestionType.INFO.value: RecordSection.NOTES,
}

DEFAULT_RECORD_SECTION: RecordSection = RecordSection.NOTES

RECORD_FORM_TYPE: str = "SOAP"

RECORD_STATUS_DRAFT: str = "draft"


# =============================================================================
# STAGE 2: CONTEXT & PARSING
# =============================================================================

TIER_SCAN_ORDER = (MemoryTier.PERSISTENT, MemoryTier.CONTEXTUAL, MemoryTier.SEMANTIC)
"""Order used for deduplication and for prompt sections."""

IDENTITY_TIERS = (MemoryTier.PERSISTENT, MemoryTier.CONTEXTUAL)
"""Tiers scanned for embedded patient_id / visit_id."""

DEFAULT_SOURCE_BLOCK_ID: str = "default-block-id"

DEFAULT_EXCERPT_LENGTH: int = 30

EXCERPT_ELLIPSIS: str = "..."

LLM_SOURCE_TAG: str = "llm"


# =============================================================================
# STAGE 3: VALIDATION REASONS
# =============================================================================
# Stable strings so callers and dashboards can match on them.

MIN_CONTENT_LENGTH: int = 10

REASON_INVALID_TYPE = "Suggestion type must be one of: recommendation, warning, info"
REASON_EMPTY_CONTENT = "Suggestion content is empty"
REASON_CONTENT_TOO_SHORT = f"Suggestion content must be at least {MIN_CONTENT_LENGTH} characters"
REASON_MISSING_CONTEXT_ORIGIN = "Suggestion has no context origin"
REASON_INCOMPLETE_CONTEXT_ORIGIN = "Context origin must include a source block and text"
REASON_MISSING_ID = "Suggestion id is missing"
REASON_MISSING_SOURCE_BLOCK_ID = "Suggestion source block id is missing"


# =============================================================================
# STAGE 4: AUDIT EVENT TYPES
# =============================================================================

EVENT_SUGGESTION_INTEGRATED = "suggestion_integrated"
EVENT_SUGGESTIONS_APPROVED = "suggestions.approved"
EVENT_SUGGESTIONS_GENERATED = "suggestions_generated"
EVENT_SUGGESTION_FEEDBACK = "suggestion.feedback"
EVENT_SUGGESTION_ACCEPTED = "suggestion.accepted"
EVENT_SUGGESTION_REJECTED = "suggestion.rejected"
EVENT_RECORD_UPDATED = "emr.form.update"
EVENT_BLOCK_UPDATED = "memory_block.updated"


# =============================================================================
# STAGE 5: METRICS
# =============================================================================

TIME_SAVED_PER_SUGGESTION_MINUTES: int = 3
"""Fixed estimate of reviewer minutes saved per generated suggestion."""

LOW_ADHERENCE_THRESHOLD: float = 0.5
"""Accepted/generated ratio below which warnings escalate risk to high."""

EVOLUTION_STABILITY_RATIO: float = 0.1
"""Relative change below which two measurements count as stable."""

EVOLUTION_INDICATORS: Dict[str, str] = {
    "improved": "GREEN",
    "stable": "YELLOW",
    "worsened": "RED",
}
