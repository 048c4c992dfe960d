"""
Domain Models for the Clinical Suggestion Pipeline

This module defines the core data structures that flow through the pipeline.
All models are dataclasses designed for:
    1. Type safety and IDE support
    2. Serialization to/from plain dictionaries
    3. Clear domain semantics

Model Hierarchy:
    MemoryBlock         → One immutable memory note (contextual/persistent/semantic)
    AgentContext        → Normalized blocks for one visit
    ContextOrigin       → Where a suggestion came from (block + excerpt)
    AgentSuggestion     → A typed suggestion produced by the parser
    SuggestionFeedback  → Reviewer verdict on a suggestion
    ValidationResult    → Validator verdict with human-readable reasons
    ClinicalRecord      → SOAP-style record that integration appends to
    AuditEvent          → Append-only audit entry
    UsageMetric         → Append-only usage measurement
    MetricsSummary      → Per-visit reduction of usage metrics
    LongitudinalMetric  → Comparison between two visits
    AgentRunResult      → What the orchestrator returns

Usage:
    from clinical_suggestion_pipeline.core.models import AgentSuggestion

    suggestion = AgentSuggestion.from_dict({
        "id": "s-1",
        "sourceBlockId": "block-1",
        "type": "warning",
        "content": "Monitor blood pressure every 4 hours",
    })
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from clinical_suggestion_pipeline.core.enums import (
    ClinicalEvolution,
    FeedbackType,
    MemoryTier,
    RecordSection,
    RiskLevel,
    SuggestionType,
)
from clinical_suggestion_pipeline.core.constants import RECORD_FORM_TYPE, RECORD_STATUS_DRAFT
from clinical_suggestion_pipeline.core.exceptions import RecordFormatError


def utc_now() -> datetime:
    """Timezone-aware current time used for every generated timestamp."""
    return datetime.now(timezone.utc)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# =============================================================================
# STAGE 1: MEMORY & CONTEXT
# =============================================================================


@dataclass(frozen=True)
class MemoryBlock:
    """
    A single memory note as seen by the agent.

    What it does:
        Carries only the agent-facing shape of a memory record. Tier-specific
        extra fields from the memory subsystem are dropped on assembly.

    Attributes:
        id: Block identifier (non-empty)
        tier: Memory tier the block belongs to
        content: Free-text content (non-empty)
        created_at: When the memory subsystem created the block, if known
    """

    id: str
    tier: MemoryTier
    content: str
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "tier": self.tier.value,
            "content": self.content,
            "created_at": _isoformat(self.created_at),
        }


@dataclass
class AgentContext:
    """
    Normalized, deduplicated memory for one visit.

    Built fresh for every invocation and never persisted. Blocks are grouped
    by tier; no ordering is guaranteed across tiers.
    """

    visit_id: str = ""
    patient_id: str = ""
    blocks: List[MemoryBlock] = field(default_factory=list)

    def blocks_for_tier(self, tier: MemoryTier) -> List[MemoryBlock]:
        """Blocks of one tier, in assembly order."""
        return [block for block in self.blocks if block.tier == tier]

    @property
    def block_ids(self) -> List[str]:
        return [block.id for block in self.blocks]

    @property
    def is_empty(self) -> bool:
        return not self.blocks

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "visit_id": self.visit_id,
            "patient_id": self.patient_id,
            "blocks": [block.to_dict() for block in self.blocks],
        }


# =============================================================================
# STAGE 2: SUGGESTIONS & FEEDBACK
# =============================================================================


@dataclass(frozen=True)
class ContextOrigin:
    """
    Provenance of a suggestion.

    Attributes:
        source_block: Id of the memory block the suggestion derives from
        text: Short excerpt shown to the reviewer
    """

    source_block: str
    text: str

    @property
    def excerpt(self) -> str:
        return self.text

    def to_dict(self) -> Dict[str, str]:
        return {"source_block": self.source_block, "text": self.text}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContextOrigin":
        """Accepts both snake_case and camelCase keys, and 'excerpt' for 'text'."""
        return cls(
            source_block=data.get("source_block") or data.get("sourceBlock") or "",
            text=data.get("text") or data.get("excerpt") or "",
        )


@dataclass(frozen=True)
class SuggestionFeedback:
    """
    A reviewer's verdict on one suggestion.

    Never mutated. A later row for the same (user, suggestion) supersedes
    earlier ones.
    """

    suggestion_id: str
    user_id: str
    visit_id: str
    feedback_type: FeedbackType
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "suggestion_id": self.suggestion_id,
            "user_id": self.user_id,
            "visit_id": self.visit_id,
            "feedback_type": self.feedback_type.value,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class AgentSuggestion:
    """
    A generated suggestion tied to a source memory block.

    What it does:
        The single suggestion shape used by every stage after parsing. The
        optional enrichment fields (context_origin, source, target_field)
        replace the ad hoc variants different call sites used to pass around.

    Why `type` is a plain string:
        The validator must be able to flag an unknown type before any
        coercion, so the raw label is preserved. Use `suggestion_type` for
        the enum.

    Attributes:
        id: Unique suggestion identifier
        source_block_id: Id of an originating block, or the sentinel id
        type: Raw type label ("recommendation", "warning", "info", ...)
        content: Suggestion text (non-empty)
        context_origin: Block reference plus excerpt, if available
        source: Producer tag, "llm" for real generation
        target_field: Explicit record section requested by the producer
        feedback: Reviewer feedback attached after creation
    """

    id: str
    source_block_id: str
    type: str
    content: str
    context_origin: Optional[ContextOrigin] = None
    source: Optional[str] = None
    target_field: Optional[str] = None
    feedback: List[SuggestionFeedback] = field(default_factory=list)

    def __post_init__(self) -> None:
        if isinstance(self.type, SuggestionType):
            self.type = self.type.value

    @property
    def suggestion_type(self) -> Optional[SuggestionType]:
        """The enum for `type`, or None if the label is not a known type."""
        try:
            return SuggestionType(self.type)
        except ValueError:
            return None

    def attach_feedback(self, feedback: SuggestionFeedback) -> None:
        """Attach reviewer feedback. The only mutation allowed after creation."""
        self.feedback.append(feedback)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "source_block_id": self.source_block_id,
            "type": self.type,
            "content": self.content,
            "context_origin": self.context_origin.to_dict() if self.context_origin else None,
            "source": self.source,
            "field": self.target_field,
            "feedback": [item.to_dict() for item in self.feedback],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgentSuggestion":
        """
        Map any known suggestion shape onto AgentSuggestion.

        Accepts:
            - snake_case keys (source_block_id, context_origin)
            - camelCase keys (sourceBlockId, contextOrigin)
            - the field-bearing variant ({"field": "plan", ...})

        When no source block id is given, the context origin's block is used.
        """
        origin_data = data.get("context_origin") or data.get("contextOrigin")
        origin = ContextOrigin.from_dict(origin_data) if origin_data else None

        source_block_id = data.get("source_block_id") or data.get("sourceBlockId") or ""
        if not source_block_id and origin:
            source_block_id = origin.source_block

        return cls(
            id=data.get("id") or "",
            source_block_id=source_block_id,
            type=data.get("type") or "",
            content=data.get("content") or "",
            context_origin=origin,
            source=data.get("source"),
            target_field=data.get("field") or data.get("target_field"),
        )


# =============================================================================
# STAGE 3: VALIDATION RESULT
# =============================================================================


@dataclass
class ValidationResult:
    """
    Outcome of validating one suggestion.

    Attributes:
        is_valid: True only if every check passed
        reasons: One human-readable reason per failed check
        suggestion_id: Id of the evaluated suggestion, when it has one
    """

    is_valid: bool
    reasons: List[str] = field(default_factory=list)
    suggestion_id: Optional[str] = None

    @property
    def reason_count(self) -> int:
        return len(self.reasons)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "reasons": list(self.reasons),
            "suggestion_id": self.suggestion_id,
        }


# =============================================================================
# STAGE 4: CLINICAL RECORD
# =============================================================================


@dataclass
class ClinicalRecord:
    """
    Structured clinical record (EMR form) for one visit.

    What it does:
        Holds the five free-text sections that integration appends to. The
        record store only sees an opaque JSON string in the `content` column.

    Invariant:
        Integration appends to a section and never overwrites it.

    Example:
        >>> record = ClinicalRecord(visit_id="visit-1")
        >>> record.append_to_section(RecordSection.PLAN, "🔎 Start physiotherapy")
        >>> record.plan
        '🔎 Start physiotherapy'
    """

    visit_id: str
    patient_id: str = ""
    professional_id: str = ""

    # -------------------------------------------------------------------------
    # 4.1 Sections
    # -------------------------------------------------------------------------
    subjective: str = ""
    objective: str = ""
    assessment: str = ""
    plan: str = ""
    notes: str = ""

    # -------------------------------------------------------------------------
    # 4.2 Store metadata
    # -------------------------------------------------------------------------
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def get_section(self, section: RecordSection) -> str:
        return getattr(self, RecordSection(section).value)

    def set_section(self, section: RecordSection, text: str) -> None:
        setattr(self, RecordSection(section).value, text)

    def append_to_section(self, section: RecordSection, text: str) -> None:
        """Append `text` to a section, newline-separated from existing content."""
        current = self.get_section(section)
        self.set_section(section, f"{current}\n{text}" if current else text)

    def sections(self) -> Dict[str, str]:
        return {section.value: self.get_section(section) for section in RecordSection}

    def to_content(self) -> str:
        """Serialize the sections into the store's opaque content string."""
        return json.dumps(self.sections(), ensure_ascii=False)

    def to_store_row(self) -> Dict[str, Any]:
        """Row payload for RecordStore.create_record / update_record."""
        return {
            "visit_id": self.visit_id,
            "patient_id": self.patient_id,
            "professional_id": self.professional_id,
            "form_type": RECORD_FORM_TYPE,
            "content": self.to_content(),
            "status": RECORD_STATUS_DRAFT,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_store_row(cls, row: Dict[str, Any]) -> "ClinicalRecord":
        """
        Rebuild a record from a store row.

        Raises:
            RecordFormatError: If the content column is not a JSON object
        """
        record_id = str(row.get("id") or "")
        raw_content = row.get("content") or "{}"

        try:
            content = json.loads(raw_content) if isinstance(raw_content, str) else raw_content
        except json.JSONDecodeError as e:
            raise RecordFormatError(record_id, f"invalid JSON ({e.msg})")

        if not isinstance(content, dict):
            raise RecordFormatError(record_id, "content is not an object")

        return cls(
            id=row.get("id"),
            visit_id=row.get("visit_id") or "",
            patient_id=row.get("patient_id") or "",
            professional_id=row.get("professional_id") or "",
            subjective=content.get("subjective") or "",
            objective=content.get("objective") or "",
            assessment=content.get("assessment") or "",
            plan=content.get("plan") or "",
            notes=content.get("notes") or "",
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


# =============================================================================
# STAGE 5: AUDIT & METRICS
# =============================================================================


@dataclass(frozen=True)
class AuditEvent:
    """Append-only audit entry. The log is the source of truth for "did X happen"."""

    type: str
    user_id: str
    visit_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "user_id": self.user_id,
            "visit_id": self.visit_id,
            "metadata": dict(self.metadata),
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class UsageMetric:
    """
    Append-only usage measurement.

    Summaries are derived views over these rows and are never stored as
    mutable state.
    """

    type: str
    user_id: str
    visit_id: str
    value: float
    timestamp: str = field(default_factory=lambda: utc_now().isoformat())
    estimated_time_saved_minutes: Optional[float] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "user_id": self.user_id,
            "visit_id": self.visit_id,
            "value": self.value,
            "timestamp": self.timestamp,
            "estimated_time_saved_minutes": self.estimated_time_saved_minutes,
            "details": dict(self.details),
        }


@dataclass
class MetricsSummary:
    """Per-visit reduction of usage metrics."""

    generated: float = 0
    accepted: float = 0
    integrated: float = 0
    field_matched: float = 0
    warnings: float = 0
    estimated_time_saved_minutes: float = 0

    @property
    def adherence_rate(self) -> float:
        """Accepted / generated. A visit with no suggestions counts as full adherence."""
        if self.generated == 0:
            return 1.0
        return self.accepted / self.generated

    def to_dict(self) -> Dict[str, float]:
        return {
            "generated": self.generated,
            "accepted": self.accepted,
            "integrated": self.integrated,
            "field_matched": self.field_matched,
            "warnings": self.warnings,
            "estimated_time_saved_minutes": self.estimated_time_saved_minutes,
        }


@dataclass
class LongitudinalMetric:
    """
    Comparison between a visit and an earlier one for the same patient.

    `details` stores both source summaries verbatim so the derivation of
    `risk_level_summary` can be audited later.
    """

    visit_id: str
    previous_visit_id: str
    patient_id: str
    user_id: str
    risk_level_summary: RiskLevel
    clinical_evolution: ClinicalEvolution
    date: str = field(default_factory=lambda: utc_now().isoformat())
    fields_changed: int = 0
    suggestions_generated: float = 0
    suggestions_accepted: float = 0
    suggestions_integrated: float = 0
    audio_items_validated: int = 0
    time_saved_minutes: float = 0
    notes: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "visit_id": self.visit_id,
            "previous_visit_id": self.previous_visit_id,
            "patient_id": self.patient_id,
            "user_id": self.user_id,
            "date": self.date,
            "fields_changed": self.fields_changed,
            "suggestions_generated": self.suggestions_generated,
            "suggestions_accepted": self.suggestions_accepted,
            "suggestions_integrated": self.suggestions_integrated,
            "audio_items_validated": self.audio_items_validated,
            "time_saved_minutes": self.time_saved_minutes,
            "risk_level_summary": self.risk_level_summary.value,
            "clinical_evolution": self.clinical_evolution.value,
            "notes": self.notes,
            "details": self.details,
        }


# =============================================================================
# STAGE 6: ORCHESTRATOR RESULT
# =============================================================================


@dataclass
class AgentRunResult:
    """
    What SuggestionPipeline.run returns.

    An empty result means "nothing to show", never an error.
    """

    suggestions: List[AgentSuggestion] = field(default_factory=list)
    audit_logs: List[AuditEvent] = field(default_factory=list)
    validation: List[ValidationResult] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "AgentRunResult":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.suggestions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "suggestions": [s.to_dict() for s in self.suggestions],
            "audit_logs": [event.to_dict() for event in self.audit_logs],
            "validation": [result.to_dict() for result in self.validation],
        }
